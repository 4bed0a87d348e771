"""Shared utilities for LocalHostify."""

from .config import Config, get_config
from .errors import (
    LocalHostifyError,
    ConfigurationError,
    NoSitesError,
    PortConflictError,
    TLSUnavailableError,
    BindError,
    ProxyError,
    ProxyMisconfiguredError,
)
from .logging_config import get_component_logger, get_site_logger, setup_logging

__all__ = [
    'Config',
    'get_config',
    'LocalHostifyError',
    'ConfigurationError',
    'NoSitesError',
    'PortConflictError',
    'TLSUnavailableError',
    'BindError',
    'ProxyError',
    'ProxyMisconfiguredError',
    'get_component_logger',
    'get_site_logger',
    'setup_logging',
]

"""Proxy module - request classification and backend forwarding."""

from .classifier import RoutingDecision, classify
from .forwarder import ProxyForwarder
from .headers import HeaderMap, HOP_BY_HOP_HEADERS

__all__ = [
    'RoutingDecision',
    'classify',
    'ProxyForwarder',
    'HeaderMap',
    'HOP_BY_HOP_HEADERS',
]

"""Site serving: per-site application, site server and multi-site orchestration."""

from .app import HEALTH_PAYLOAD, SiteApplication, create_site_app
from .models import SiteDescriptor, SiteOutcome, SiteState, SupervisorResult
from .orchestrator import MultiSiteOrchestrator, validate_sites
from .site_server import SiteServer
from .static import StaticResponder

__all__ = [
    'HEALTH_PAYLOAD',
    'SiteApplication',
    'create_site_app',
    'SiteDescriptor',
    'SiteOutcome',
    'SiteState',
    'SupervisorResult',
    'MultiSiteOrchestrator',
    'validate_sites',
    'SiteServer',
    'StaticResponder',
]

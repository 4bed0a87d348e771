"""Run a set of sites until the first one terminates."""

import asyncio
import logging
from typing import Optional, Sequence

from rich.console import Console

from .certs import SelfSignedCertificateProvider
from .network import display_network_info
from .server import MultiSiteOrchestrator, SiteDescriptor, SupervisorResult
from .shared.config import Config
from .shared.logging_config import get_component_logger

logger = get_component_logger("main")


async def run_sites(
    sites: Sequence[SiteDescriptor],
    host: Optional[str] = None,
    lookup_public_ip: bool = True,
    console: Optional[Console] = None,
    certificate_provider=None,
    log: Optional[logging.Logger] = None,
) -> SupervisorResult:
    """Bind every site, report where they are reachable, then serve.

    Raises:
        LocalHostifyError: Invalid site set or a site failed to bind
    """
    log = log or logger
    if certificate_provider is None and any(site.tls_enabled for site in sites):
        certificate_provider = SelfSignedCertificateProvider()

    orchestrator = MultiSiteOrchestrator(
        sites,
        host=host,
        certificate_provider=certificate_provider,
    )
    servers = orchestrator.start()

    try:
        await display_network_info(
            sites,
            console=console,
            lookup_public_ip=lookup_public_ip,
            ports={server.site.name: server.port for server in servers},
            public_ip_timeout=Config.PUBLIC_IP_TIMEOUT,
        )
    except asyncio.CancelledError:
        orchestrator.stop()
        raise
    except Exception as e:
        # Informational only; never blocks serving
        log.warning(f"Could not display network info: {e}")

    result = await orchestrator.run()
    if result.ok:
        log.info("👋 LocalHostify stopped")
    else:
        log.error(f"❌ Site '{result.first.site.name}' failed: {result.first.error}")
    return result

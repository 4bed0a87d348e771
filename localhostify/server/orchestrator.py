"""Multi-site orchestration with all-or-nothing supervision.

Sites are meant to run together: the first site server to terminate, for
whatever reason, ends the whole run and the remaining servers are stopped.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..shared.config import Config
from ..shared.errors import (
    ConfigurationError,
    NoSitesError,
    PortConflictError,
    TLSUnavailableError,
)
from ..shared.logging_config import get_component_logger, get_site_logger
from .models import SiteDescriptor, SiteOutcome, SiteState, SupervisorResult
from .site_server import SiteServer


def validate_sites(sites: Sequence[SiteDescriptor], certificate_provider=None) -> None:
    """Check the whole-run preconditions before anything binds.

    Raises:
        NoSitesError: No sites were given
        ConfigurationError: Duplicate names or a root that vanished
        PortConflictError: Two sites share a (non-zero) port
        TLSUnavailableError: HTTPS requested without a certificate provider
    """
    if not sites:
        raise NoSitesError(
            "No sites configured. Use --root for single site or --site for multiple sites or --config for config file"
        )

    names: Dict[str, SiteDescriptor] = {}
    ports: Dict[int, SiteDescriptor] = {}
    for site in sites:
        if site.name in names:
            raise ConfigurationError(f"Duplicate site name '{site.name}' (ports {names[site.name].port} and {site.port})")
        names[site.name] = site

        # Port 0 is assigned by the OS and never collides.
        if site.port != 0:
            if site.port in ports:
                raise PortConflictError(site.port, ports[site.port].name, site.name)
            ports[site.port] = site

        root = Path(site.root)
        if not root.exists():
            raise ConfigurationError(f"Site '{site.name}' (port {site.port}): root directory does not exist: {root}")
        if not root.is_dir():
            raise ConfigurationError(f"Site '{site.name}' (port {site.port}): root path is not a directory: {root}")

        if site.tls_enabled and certificate_provider is None:
            raise TLSUnavailableError(
                f"Site '{site.name}' (port {site.port}) requests HTTPS but no certificate provider is available"
            )


class MultiSiteOrchestrator:
    """Starts one site server per descriptor and supervises them."""

    def __init__(
        self,
        sites: Sequence[SiteDescriptor],
        host: Optional[str] = None,
        certificate_provider=None,
        logger: Optional[logging.Logger] = None,
        shutdown_timeout: Optional[float] = None,
        **server_options,
    ):
        """Initialize the orchestrator.

        Args:
            sites: Site descriptors for this run
            host: Address every site binds to
            certificate_provider: Provider for TLS-enabled sites
            logger: Injected orchestrator logger
            shutdown_timeout: Seconds to wait for remaining servers to stop
            **server_options: Extra keyword arguments for each SiteServer
        """
        self.sites = list(sites)
        self.host = host if host is not None else Config.SERVER_HOST
        self.certificate_provider = certificate_provider
        self.logger = logger or get_component_logger("orchestrator")
        self.shutdown_timeout = shutdown_timeout if shutdown_timeout is not None else Config.SHUTDOWN_TIMEOUT
        self.server_options = server_options
        self.servers: List[SiteServer] = []

    def create_servers(self) -> List[SiteServer]:
        """Validate the run and create (but not bind) one server per site."""
        validate_sites(self.sites, self.certificate_provider)
        self.servers = [
            SiteServer(
                site,
                host=self.host,
                certificate_provider=self.certificate_provider,
                logger=get_site_logger(site.name),
                shutdown_timeout=self.shutdown_timeout,
                **self.server_options,
            )
            for site in self.sites
        ]
        return self.servers

    def bind_all(self) -> None:
        """Bind every server; on the first failure release the others and re-raise."""
        try:
            for server in self.servers:
                server.bind()
        except Exception:
            for server in self.servers:
                server.stop()
            raise

    def start(self) -> List[SiteServer]:
        """Validate, create and bind all site servers."""
        self.create_servers()
        self.bind_all()
        return self.servers

    async def run(self) -> SupervisorResult:
        """Run every site until the first one terminates."""
        if not self.servers:
            self.start()

        if len(self.servers) == 1:
            return await self._run_single(self.servers[0])
        return await self._run_multi()

    async def _run_single(self, server: SiteServer) -> SupervisorResult:
        self.logger.info("🚀 LocalHostify server starting...")
        try:
            await server.serve()
        except asyncio.CancelledError:
            server.stop()
            raise
        except Exception as e:
            return SupervisorResult(SiteOutcome(server.site, server.state, e), site_count=1)
        return SupervisorResult(SiteOutcome(server.site, server.state), site_count=1)

    async def _run_multi(self) -> SupervisorResult:
        self.logger.info("🚀 LocalHostify multi-site server starting...")
        self.logger.info(f"📊 Running {len(self.servers)} sites")

        tasks: Dict[asyncio.Task, SiteServer] = {
            asyncio.create_task(server.serve(), name=f"site:{server.site.name}"): server
            for server in self.servers
        }
        self.logger.info("✅ All servers ready! Press Ctrl+C to stop")

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await self._shutdown(tasks)
            raise

        # Prefer a failure when several servers ended in the same iteration.
        first = sorted(done, key=lambda t: t.cancelled() or t.exception() is None)[0]
        server = tasks[first]
        error = None if first.cancelled() else first.exception()
        outcome = SiteOutcome(server.site, server.state if error is None else SiteState.FAILED, error)

        if error is not None:
            self.logger.error(f"Site '{server.site.name}' (port {server.port}) failed: {error}")
        else:
            self.logger.info(f"Site '{server.site.name}' (port {server.port}) completed")

        if pending:
            self.logger.info(f"Stopping {len(pending)} remaining site(s)")
        await self._shutdown({task: tasks[task] for task in pending})

        return SupervisorResult(outcome, site_count=len(self.servers))

    async def _shutdown(self, tasks: Dict[asyncio.Task, SiteServer]) -> None:
        """Stop servers gracefully, cancelling any that outlive the timeout."""
        if not tasks:
            return
        for server in tasks.values():
            server.stop()
        done, pending = await asyncio.wait(tasks, timeout=self.shutdown_timeout)
        for task in pending:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for task, result in zip(tasks, results):
            if isinstance(result, Exception):
                self.logger.debug(f"Site '{tasks[task].site.name}' ended during shutdown with: {result}")

    def stop(self) -> None:
        """Request every server to stop."""
        for server in self.servers:
            server.stop()

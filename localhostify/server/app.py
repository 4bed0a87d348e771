"""Per-site ASGI application.

Routes, in order:
    /health, /healthz   fixed 200 payload, independent of the site root
    everything else     classifier -> proxy forwarder or static responder

Without a backend every non-health request is static. With a backend only
classifier-selected paths are proxied; a static miss stays a 404.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from starlette.applications import Starlette
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route

from ..proxy.classifier import RoutingDecision, classify
from ..proxy.forwarder import ProxyForwarder
from ..shared.logging_config import get_site_logger
from .models import SiteDescriptor
from .static import StaticResponder

HEALTH_PAYLOAD = "LocalHostify server is healthy"


class AnyMethodEndpoint:
    """Raw ASGI endpoint, so Starlette applies no method filter.

    Backends may use WebDAV and other extension methods (PROPFIND, REPORT).
    The static responder still answers 405 for anything but GET and HEAD.
    """

    def __init__(self, handler: Callable[[Request], Awaitable[Response]]):
        self.handler = handler

    async def __call__(self, scope, receive, send):
        request = Request(scope, receive, send)
        response = await self.handler(request)
        await response(scope, receive, send)


class SiteApplication:
    """Router for one site: health endpoints, static files and API forwarding."""

    def __init__(
        self,
        site: SiteDescriptor,
        logger: Optional[logging.Logger] = None,
        forwarder: Optional[ProxyForwarder] = None,
    ):
        """Initialize the site application.

        Args:
            site: Descriptor of the site being served
            logger: Injected per-site logger
            forwarder: Proxy forwarder to use; created from ``site.backend_port``
                when the site has a backend and none is given
        """
        self.site = site
        self.logger = logger or get_site_logger(site.name)
        self.static = StaticResponder(site.root, logger=self.logger)

        if forwarder is None and site.has_backend:
            forwarder = ProxyForwarder(site.backend_port, site_name=site.name, logger=self.logger)
        self.forwarder = forwarder

        self.app = Starlette(
            routes=[
                Route("/health", self.handle_health, methods=["GET"]),
                Route("/healthz", self.handle_health, methods=["GET"]),
                Route("/{path:path}", AnyMethodEndpoint(self.handle_request)),
            ],
            lifespan=self.lifespan,
        )
        self.app.add_middleware(BaseHTTPMiddleware, dispatch=self.log_request)

    @asynccontextmanager
    async def lifespan(self, app: Starlette):
        """Site startup/shutdown: owns the forwarder's HTTP client."""
        self.logger.debug(f"Site application '{self.site.name}' starting")
        try:
            yield
        finally:
            await self.close()
            self.logger.debug(f"Site application '{self.site.name}' stopped")

    async def close(self):
        if self.forwarder is not None:
            await self.forwarder.close()

    async def handle_health(self, request: Request) -> Response:
        return PlainTextResponse(HEALTH_PAYLOAD)

    def route(self, path: str) -> RoutingDecision:
        """Decide where a request goes; without a backend everything is static."""
        if self.forwarder is None:
            return RoutingDecision.STATIC
        return classify(path)

    async def handle_request(self, request: Request) -> Response:
        decision = self.route(request.url.path)
        request.state.routing_decision = decision
        if decision is RoutingDecision.PROXY:
            return await self.forwarder.forward(request)
        return await self.static.respond(request)

    async def log_request(self, request: Request, call_next):
        """Access log for every request served by this site."""
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000
        decision = getattr(request.state, "routing_decision", None)
        route = decision.value if decision else "internal"
        self.logger.info(
            f"{request.method} {request.url.path} [{route}] -> {response.status_code} ({duration_ms:.1f}ms)"
        )
        return response

    async def __call__(self, scope, receive, send):
        await self.app(scope, receive, send)


def create_site_app(
    site: SiteDescriptor,
    logger: Optional[logging.Logger] = None,
    forwarder: Optional[ProxyForwarder] = None,
) -> SiteApplication:
    """Create the ASGI application serving one site."""
    return SiteApplication(site, logger=logger, forwarder=forwarder)

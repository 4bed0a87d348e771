"""One listening site: socket, router and optional TLS termination.

Lifecycle: CREATED -> BOUND -> SERVING -> STOPPED | FAILED

The listening socket is acquired by ``bind()`` so bind failures surface as
``BindError`` before hypercorn is involved. ``serve()`` then hands the bound
socket to hypercorn through an ``fd://`` bind.
"""

import asyncio
import logging
import os
import socket
import ssl
from contextlib import ExitStack
from typing import Optional

from hypercorn.asyncio import serve
from hypercorn.config import Config as HypercornConfig

from ..certs.self_signed import CertificatePem, write_certificate_files
from ..shared.config import Config
from ..shared.errors import BindError, TLSUnavailableError
from ..shared.logging_config import get_site_logger
from .app import SiteApplication, create_site_app
from .models import SiteDescriptor, SiteState

WILDCARD_HOSTS = ("0.0.0.0", "::", "")

LISTEN_BACKLOG = 100

# Raised while a handshake is still in progress
HANDSHAKE_AGAIN_ERRORS = (ssl.SSLWantReadError, ssl.SSLWantWriteError, ssl.SSLSyscallError)


def handshake_logging_sslobject(site_name: str, port: int, logger: logging.Logger) -> type:
    """SSLObject class that logs failed handshakes through the site logger.

    asyncio reports these only in debug mode. The connection is still closed.
    """

    class SiteSSLObject(ssl.SSLObject):
        def do_handshake(self):
            try:
                super().do_handshake()
            except HANDSHAKE_AGAIN_ERRORS:
                raise
            except ssl.SSLError as e:
                logger.warning(
                    f"🔒 TLS handshake failed on site '{site_name}' port {port}: {e.reason or e}"
                )
                raise

    return SiteSSLObject


class SiteHypercornConfig(HypercornConfig):
    """Hypercorn config whose SSL context uses a custom SSLObject class."""

    sslobject_class: Optional[type] = None

    def create_ssl_context(self) -> Optional[ssl.SSLContext]:
        context = super().create_ssl_context()
        if context is not None and self.sslobject_class is not None:
            context.sslobject_class = self.sslobject_class
        return context


class SiteServer:
    """Runs one site until it is stopped or fails."""

    def __init__(
        self,
        site: SiteDescriptor,
        host: Optional[str] = None,
        certificate_provider=None,
        logger: Optional[logging.Logger] = None,
        application: Optional[SiteApplication] = None,
        tls_hostname: Optional[str] = None,
        handshake_timeout: Optional[float] = None,
        shutdown_timeout: Optional[float] = None,
        keep_alive_timeout: Optional[float] = None,
    ):
        """Initialize the site server.

        Args:
            site: Descriptor of the site to serve
            host: Address to bind (defaults to Config.SERVER_HOST)
            certificate_provider: Object with ``create(hostname) -> CertificatePem``,
                required when the site has TLS enabled
            logger: Injected per-site logger
            application: Pre-built site application (built from ``site`` if None)
            tls_hostname: Hostname the certificate is issued for
            handshake_timeout: TLS handshake timeout in seconds
            shutdown_timeout: Graceful shutdown timeout in seconds
            keep_alive_timeout: HTTP keep-alive timeout in seconds
        """
        if site.tls_enabled and certificate_provider is None:
            raise TLSUnavailableError(
                f"Site '{site.name}' (port {site.port}) requests HTTPS but no certificate provider is available"
            )

        self.site = site
        self.host = (host if host is not None else Config.SERVER_HOST).strip("[]")
        self.certificate_provider = certificate_provider
        self.logger = logger or get_site_logger(site.name)
        self.application = application or create_site_app(site, logger=self.logger)
        self.tls_hostname = tls_hostname or Config.TLS_HOSTNAME
        self.handshake_timeout = handshake_timeout if handshake_timeout is not None else Config.TLS_HANDSHAKE_TIMEOUT
        self.shutdown_timeout = shutdown_timeout if shutdown_timeout is not None else Config.SHUTDOWN_TIMEOUT
        self.keep_alive_timeout = keep_alive_timeout if keep_alive_timeout is not None else Config.KEEP_ALIVE_TIMEOUT

        self.state = SiteState.CREATED
        self.socket: Optional[socket.socket] = None
        self.bound_port: Optional[int] = None
        self.certificate: Optional[CertificatePem] = None
        self._shutdown_event = asyncio.Event()

    @property
    def port(self) -> int:
        """Actual listening port once bound, configured port before."""
        return self.bound_port if self.bound_port is not None else self.site.port

    @property
    def url(self) -> str:
        host = "localhost" if self.host in WILDCARD_HOSTS else self.host
        if ":" in host:
            host = f"[{host}]"
        return f"{self.site.scheme}://{host}:{self.port}"

    def bind(self) -> None:
        """Acquire the listening socket (CREATED -> BOUND)."""
        if self.state is not SiteState.CREATED:
            raise RuntimeError(f"Site '{self.site.name}' cannot bind in state {self.state.value}")

        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            if os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.site.port))
            sock.listen(LISTEN_BACKLOG)
        except OSError as e:
            sock.close()
            self.state = SiteState.FAILED
            self.logger.error(f"Site '{self.site.name}' failed to bind {self.host}:{self.site.port}: {e}")
            raise BindError(self.site.name, self.host, self.site.port, e) from e

        sock.setblocking(False)
        self.socket = sock
        self.bound_port = sock.getsockname()[1]
        self.state = SiteState.BOUND
        self.logger.debug(f"Site '{self.site.name}' bound to {self.host}:{self.bound_port}")

    def build_hypercorn_config(self) -> SiteHypercornConfig:
        """Hypercorn configuration for this site (bind and TLS are set by ``serve``)."""
        config = SiteHypercornConfig()
        config.errorlog = self.logger
        config.accesslog = None  # requests are logged by the site application
        config.alpn_protocols = ["http/1.1"]
        config.keep_alive_timeout = self.keep_alive_timeout
        config.graceful_timeout = self.shutdown_timeout
        config.shutdown_timeout = self.shutdown_timeout
        config.ssl_handshake_timeout = self.handshake_timeout
        return config

    def _release_socket(self) -> int:
        """Give up ownership of the listening socket, returning its descriptor."""
        fd = self.socket.detach()
        self.socket = None
        return fd

    def _close_socket(self) -> None:
        if self.socket is not None:
            self.socket.close()
            self.socket = None

    async def serve(self) -> None:
        """Serve until stopped (BOUND -> SERVING -> STOPPED | FAILED).

        Binds first when still CREATED. Returns normally on a requested stop
        and re-raises anything that ends serving otherwise.
        """
        if self.state is SiteState.STOPPED:
            return
        if self.state is SiteState.CREATED:
            self.bind()
        if self.state is not SiteState.BOUND:
            raise RuntimeError(f"Site '{self.site.name}' cannot serve in state {self.state.value}")

        config = self.build_hypercorn_config()

        try:
            with ExitStack() as stack:
                if self.site.tls_enabled:
                    # RSA key generation is CPU bound
                    self.certificate = await asyncio.to_thread(self.certificate_provider.create, self.tls_hostname)
                    config.certfile, config.keyfile = stack.enter_context(
                        write_certificate_files(self.certificate)
                    )
                    config.sslobject_class = handshake_logging_sslobject(self.site.name, self.port, self.logger)

                config.bind = [f"fd://{self._release_socket()}"]
                self.state = SiteState.SERVING
                self.log_serving()

                await serve(self.application.app, config, shutdown_trigger=self._shutdown_event.wait)
        except asyncio.CancelledError:
            self._close_socket()
            self.state = SiteState.STOPPED
            raise
        except Exception as e:
            self._close_socket()
            self.state = SiteState.FAILED
            self.logger.error(f"Site '{self.site.name}' on port {self.port} failed: {e}", exc_info=True)
            raise

        self.state = SiteState.STOPPED
        self.logger.info(f"Site '{self.site.name}' on port {self.port} stopped")

    def stop(self) -> None:
        """Request a graceful shutdown; a bound but unserved socket is closed."""
        if self.state is SiteState.BOUND or self.state is SiteState.CREATED:
            self._close_socket()
            self.state = SiteState.STOPPED
        self._shutdown_event.set()

    def log_serving(self):
        self.logger.info(f"📁 {self.site.name}: {self.site.root} → {self.url}")
        if self.site.has_backend:
            self.logger.info(f"🔄 {self.site.name} proxying API → localhost:{self.site.backend_port}")
        if self.site.tls_enabled:
            self.logger.info(f"🔒 HTTPS enabled with self-signed certificate for {', '.join(self.certificate.hostnames)}")
            self.logger.warning("⚠️  Browsers will show a security warning for self-signed certificates")

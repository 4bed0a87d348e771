"""Exception hierarchy for LocalHostify.

Configuration errors are raised before any listener is bound, bind errors
while acquiring a site's socket, and proxy errors only for programming
mistakes (per-request backend failures become HTTP responses instead).
"""

from typing import Optional


class LocalHostifyError(Exception):
    """Base class for all fatal LocalHostify errors."""


class ConfigurationError(LocalHostifyError):
    """Invalid or inconsistent site configuration."""


class NoSitesError(ConfigurationError):
    """No site could be resolved from the given sources."""


class PortConflictError(ConfigurationError):
    """Two sites in one run want the same port."""

    def __init__(self, port: int, first_site: str, second_site: str):
        self.port = port
        self.first_site = first_site
        self.second_site = second_site
        super().__init__(
            f"Port conflict: sites '{first_site}' and '{second_site}' both use port {port}"
        )


class TLSUnavailableError(ConfigurationError):
    """HTTPS was requested but no certificate provider is available."""


class BindError(LocalHostifyError):
    """A site server could not acquire its listening socket."""

    def __init__(self, site_name: str, host: str, port: int, cause: OSError):
        self.site_name = site_name
        self.host = host
        self.port = port
        self.cause = cause
        super().__init__(
            f"Site '{site_name}' failed to bind {host}:{port}: {cause}"
        )


class ProxyError(LocalHostifyError):
    """Error in the proxy forwarding layer."""


class ProxyMisconfiguredError(ProxyError):
    """A proxy forwarder was requested for a site without a backend port."""

    def __init__(self, site_name: Optional[str] = None):
        self.site_name = site_name
        where = f" for site '{site_name}'" if site_name else ""
        super().__init__(f"Proxy forwarding requested{where} but no backend port is configured")

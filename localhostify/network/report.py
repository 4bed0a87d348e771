"""Console report of where the running sites can be reached."""

import logging
from typing import Mapping, Optional, Sequence

from rich.console import Console
from rich.table import Table

from ..server.models import SiteDescriptor
from ..shared.logging_config import get_component_logger
from .ip_detection import PublicIPError, get_local_ips, get_public_ip, is_private_ip

logger = get_component_logger("network")


def _format_host(ip) -> str:
    return f"[{ip}]" if ip.version == 6 else str(ip)


async def display_network_info(
    sites: Sequence[SiteDescriptor],
    console: Optional[Console] = None,
    lookup_public_ip: bool = True,
    ports: Optional[Mapping[str, int]] = None,
    public_ip_timeout: Optional[float] = None,
    log: Optional[logging.Logger] = None,
) -> None:
    """Print local, network and internet URLs for each site.

    Args:
        sites: Sites that are about to be served
        console: Rich console to print to (stdout if None)
        lookup_public_ip: Query external services for the public address
        ports: Actual listening port per site name (for OS-assigned ports)
        public_ip_timeout: Timeout for each public IP service
        log: Logger for lookup failures
    """
    console = console or Console()
    log = log or logger
    ports = ports or {}

    local_ips = get_local_ips()

    public_ip = None
    if lookup_public_ip:
        try:
            public_ip = await get_public_ip(timeout=public_ip_timeout, log=log)
        except PublicIPError as e:
            log.warning(f"⚠️  {e}; showing local URLs only")

    table = Table(title="LocalHostify Sites")
    table.add_column("Site", style="cyan", no_wrap=True)
    table.add_column("Local")
    table.add_column("Network")
    table.add_column("Internet")
    table.add_column("Proxy")

    for site in sites:
        port = ports.get(site.name, site.port)
        local_url = f"{site.scheme}://localhost:{port}"
        network_urls = "\n".join(f"{site.scheme}://{_format_host(ip)}:{port}" for ip in local_ips) or "-"
        internet_url = f"{site.scheme}://{public_ip}:{port}" if public_ip else "-"
        proxy = f"API → localhost:{site.backend_port}" if site.has_backend else "-"
        table.add_row(site.name, local_url, network_urls, internet_url, proxy)

    console.print()
    console.print(table)

    if public_ip:
        forwarded = ", ".join(str(ports.get(site.name, site.port)) for site in sites)
        console.print(f"[yellow]🌍 Internet access requires forwarding port(s) {forwarded} on your router to this machine[/yellow]")
        private = [ip for ip in local_ips if ip.version == 4 and is_private_ip(ip)]
        if private:
            console.print(f"[yellow]   Forward to: {private[0]}[/yellow]")
    if any(site.tls_enabled for site in sites):
        console.print("[yellow]🔒 HTTPS sites use a self-signed certificate; browsers will warn[/yellow]")
    console.print()

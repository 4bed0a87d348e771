"""Local and public IP address discovery (informational only)."""

import ipaddress
import logging
import socket
from typing import List, Optional, Union

import httpx

from ..shared.config import Config
from ..shared.logging_config import get_component_logger

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# Tried in order until one answers with a valid address.
PUBLIC_IP_SERVICES = [
    "https://api.ipify.org?format=json",
    "https://api64.ipify.org?format=json",  # IPv6 support
    "https://ifconfig.me/ip",
    "https://icanhazip.com",
]

# Any routable address works; no packet is sent for a UDP "connect".
PROBE_ADDRESS = ("8.8.8.8", 80)

logger = get_component_logger("network")


class PublicIPError(Exception):
    """No public IP service returned a usable address."""


def _usable(ip: IPAddress) -> bool:
    return not (ip.is_loopback or ip.is_multicast or ip.is_unspecified)


def _primary_interface_ip() -> Optional[IPAddress]:
    """Address of the interface used for outbound traffic."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(PROBE_ADDRESS)
            return ipaddress.ip_address(sock.getsockname()[0])
    except OSError as e:
        logger.debug(f"Could not determine primary interface address: {e}")
        return None


def _hostname_ips() -> List[IPAddress]:
    """Addresses the local hostname resolves to."""
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, proto=socket.IPPROTO_TCP)
    except OSError as e:
        logger.debug(f"Failed to resolve local hostname: {e}")
        return []
    ips = []
    for info in infos:
        address = info[4][0].split("%", 1)[0]  # drop IPv6 zone id
        try:
            ips.append(ipaddress.ip_address(address))
        except ValueError:
            continue
    return ips


def get_local_ips() -> List[IPAddress]:
    """All usable local IP addresses, primary interface first."""
    candidates = []
    primary = _primary_interface_ip()
    if primary is not None:
        candidates.append(primary)
    candidates.extend(_hostname_ips())

    local_ips = []
    for ip in candidates:
        if _usable(ip) and ip not in local_ips:
            local_ips.append(ip)
    return local_ips


def is_private_ip(ip: IPAddress) -> bool:
    """Check if an IP address is in a private, loopback or link-local range."""
    return ip.is_private or ip.is_loopback or ip.is_link_local


def _parse_service_response(service: str, response: httpx.Response) -> str:
    if "format=json" in service:
        return str(response.json()["ip"]).strip()
    return response.text.strip()


async def get_public_ip(
    timeout: Optional[float] = None,
    services: Optional[List[str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    log: Optional[logging.Logger] = None,
) -> str:
    """Get the public IP address by querying external services.

    Raises:
        PublicIPError: If no service returned a valid address
    """
    log = log or logger
    timeout = timeout if timeout is not None else Config.PUBLIC_IP_TIMEOUT

    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        for service in services or PUBLIC_IP_SERVICES:
            log.debug(f"Trying public IP service: {service}")
            try:
                response = await client.get(service)
            except httpx.HTTPError as e:
                log.warning(f"Request failed to {service}: {e}")
                continue

            if response.status_code != 200:
                log.warning(f"HTTP error from {service}: {response.status_code}")
                continue

            try:
                ip = _parse_service_response(service, response)
                ipaddress.ip_address(ip)
            except (ValueError, KeyError) as e:
                log.warning(f"Invalid IP response from {service}: {e}")
                continue

            log.debug(f"✅ Got public IP from {service}: {ip}")
            return ip

    raise PublicIPError("Failed to determine public IP from any service")

"""Network address discovery and reporting."""

from .ip_detection import (
    PUBLIC_IP_SERVICES,
    PublicIPError,
    get_local_ips,
    get_public_ip,
    is_private_ip,
)
from .report import display_network_info

__all__ = [
    "PUBLIC_IP_SERVICES",
    "PublicIPError",
    "get_local_ips",
    "get_public_ip",
    "is_private_ip",
    "display_network_info",
]

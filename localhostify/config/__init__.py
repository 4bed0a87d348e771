"""Site configuration loading."""

from .loader import (
    ConfigSite,
    MultiSiteConfig,
    build_site,
    load_sites_from_file,
    parse_site_spec,
    resolve_sites,
)

__all__ = [
    'ConfigSite',
    'MultiSiteConfig',
    'build_site',
    'load_sites_from_file',
    'parse_site_spec',
    'resolve_sites',
]

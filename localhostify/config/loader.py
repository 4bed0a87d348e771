"""Site configuration sources: config files, ``--site`` specs and ``--root``.

Config file format (JSON, or TOML for any other extension)::

    host = "0.0.0.0"

    [[sites]]
    name = "frontend"
    root = "./dist"
    port = 8080
    https = true
    proxy_to = 3000
"""

import json
import tomllib
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError

from ..server.models import SiteDescriptor
from ..shared.errors import ConfigurationError

SITE_SPEC_FORMAT = "name:root:port[:https][:proxy=PORT]"


class ConfigSite(BaseModel):
    """One site entry of a configuration file."""
    name: str
    root: Path
    port: int = Field(..., ge=0, le=65535)
    https: Optional[bool] = None
    proxy_to: Optional[int] = Field(None, ge=1, le=65535)


class MultiSiteConfig(BaseModel):
    """Top level of a configuration file."""
    sites: List[ConfigSite]
    host: Optional[str] = None


def _format_validation_error(e: ValidationError) -> str:
    problems = []
    for error in e.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(problems)


def build_site(
    name: str,
    root: Path,
    port: int,
    https: bool = False,
    proxy_to: Optional[int] = None,
) -> SiteDescriptor:
    """Build a validated site descriptor, converting validation errors."""
    try:
        return SiteDescriptor(
            name=name,
            root=root,
            port=port,
            tls_enabled=https,
            backend_port=proxy_to,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid site '{name}' (port {port}, root {root}): {_format_validation_error(e)}") from e


def parse_site_spec(spec: str) -> SiteDescriptor:
    """Parse a ``name:root:port[:https][:proxy=PORT]`` site argument."""
    parts = spec.split(":")
    if len(parts) < 3:
        raise ConfigurationError(f"Site format should be: {SITE_SPEC_FORMAT} (got '{spec}')")

    name, root, port_str = parts[0], parts[1], parts[2]
    try:
        port = int(port_str)
    except ValueError:
        raise ConfigurationError(f"Invalid port number '{port_str}' in site '{spec}'")

    https = False
    proxy_to = None
    for option in parts[3:]:
        if option == "https":
            https = True
        elif option.startswith("proxy="):
            try:
                proxy_to = int(option[len("proxy="):])
            except ValueError:
                raise ConfigurationError(f"Invalid proxy port number in site '{spec}'")
        else:
            raise ConfigurationError(f"Unknown site option: {option}")

    return build_site(name, Path(root), port, https=https, proxy_to=proxy_to)


def read_config_file(config_path: Path) -> MultiSiteConfig:
    """Read and validate a JSON or TOML configuration file."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        if config_path.suffix.lower() == ".json":
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Failed to parse configuration file {config_path}: {e}") from e

    try:
        return MultiSiteConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration file {config_path}: {_format_validation_error(e)}") from e


def load_sites_from_file(config_path: Path) -> Tuple[List[SiteDescriptor], Optional[str]]:
    """Load site descriptors from a configuration file.

    Relative roots are resolved against the configuration file's directory.

    Returns:
        Tuple of (sites, host from the file or None)
    """
    config_path = Path(config_path)
    config = read_config_file(config_path)
    base_dir = config_path.resolve().parent

    sites = []
    for entry in config.sites:
        root = entry.root.expanduser()
        if not root.is_absolute():
            root = base_dir / root
        sites.append(build_site(entry.name, root, entry.port, https=bool(entry.https), proxy_to=entry.proxy_to))
    return sites, config.host


def resolve_sites(
    config_path: Optional[Path] = None,
    site_specs: Sequence[str] = (),
    root: Optional[Path] = None,
    port: int = 8080,
    https: bool = False,
    proxy_to: Optional[int] = None,
) -> Tuple[List[SiteDescriptor], Optional[str]]:
    """Resolve the sites to run: config file, else ``--site`` specs, else ``--root``.

    Returns:
        Tuple of (sites, host override or None); sites is empty when
        nothing was given
    """
    if config_path is not None:
        return load_sites_from_file(config_path)
    if site_specs:
        return [parse_site_spec(spec) for spec in site_specs], None
    if root is not None:
        return [build_site("main", Path(root), port, https=https, proxy_to=proxy_to)], None
    return [], None

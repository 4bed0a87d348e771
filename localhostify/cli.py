"""Command-line interface for LocalHostify."""

import asyncio
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console

# Environment must be loaded before Config reads it
load_dotenv()

from . import __version__  # noqa: E402
from .certs import SelfSignedCertificateProvider  # noqa: E402
from .config import resolve_sites  # noqa: E402
from .main import run_sites  # noqa: E402
from .server import validate_sites  # noqa: E402
from .shared.config import Config, get_config  # noqa: E402
from .shared.errors import LocalHostifyError  # noqa: E402
from .shared.logging_config import get_component_logger, setup_logging, silence_noisy_loggers  # noqa: E402

console = Console()
error_console = Console(stderr=True)

LOG_LEVELS = ['TRACE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

EPILOG = """
\b
Examples:
  localhostify --root ./dist
  localhostify --root ./dist --port 3000 --https
  localhostify --root ./dist --proxy-to 5000
  localhostify --site frontend:./dist:8080:https --site admin:./admin:8081:proxy=4000
  localhostify --config sites.toml
"""


@click.command('localhostify', epilog=EPILOG)
@click.option('--root', '-r', type=click.Path(path_type=Path), help='Directory to serve')
@click.option('--port', '-p', type=int, default=Config.DEFAULT_PORT, show_default=True, help='Port for --root')
@click.option('--https', 'https', is_flag=True, help='Enable HTTPS with a self-signed certificate')
@click.option('--proxy-to', type=int, help='Proxy API requests to this local port')
@click.option('--host', help=f'Address to bind (default: {Config.SERVER_HOST})')
@click.option('--config', '-c', 'config_path', type=click.Path(path_type=Path), help='Multi-site config file (TOML or JSON)')
@click.option('--site', 'site_specs', multiple=True, metavar='SPEC',
              help='Site as name:root:port[:https][:proxy=PORT] (repeatable)')
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), help='Logging level (env: LOG_LEVEL)')
@click.option('--no-public-ip', is_flag=True, help='Skip the public IP lookup')
@click.version_option(__version__, prog_name='localhostify')
def main(root, port, https, proxy_to, host, config_path, site_specs, log_level, no_public_ip):
    """Serve local directories over HTTP/HTTPS with optional API proxying."""
    if config_path is not None:
        conflicting = [
            flag for flag, given in (
                ('--root', root is not None),
                ('--site', bool(site_specs)),
                ('--https', https),
                ('--proxy-to', proxy_to is not None),
            ) if given
        ]
        if conflicting:
            raise click.UsageError(f"--config cannot be combined with {', '.join(conflicting)}")

    setup_logging(log_level)
    silence_noisy_loggers()
    logger = get_component_logger('cli')

    try:
        get_config()
        sites, config_host = resolve_sites(
            config_path=config_path,
            site_specs=site_specs,
            root=root,
            port=port,
            https=https,
            proxy_to=proxy_to,
        )
        bind_host = host or config_host or Config.SERVER_HOST
        logger.debug(f"Resolved {len(sites)} site(s), binding {bind_host}")

        certificate_provider = SelfSignedCertificateProvider() if any(site.tls_enabled for site in sites) else None
        validate_sites(sites, certificate_provider)

        result = asyncio.run(run_sites(
            sites,
            host=bind_host,
            lookup_public_ip=not no_public_ip,
            console=console,
            certificate_provider=certificate_provider,
        ))
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Shutting down LocalHostify[/yellow]")
        sys.exit(0)
    except LocalHostifyError as e:
        logger.debug("Startup failed", exc_info=True)
        error_console.print(f"[red]❌ Error: {e}[/red]")
        sys.exit(1)

    if not result.ok:
        error_console.print(f"[red]❌ Site '{result.first.site.name}' failed: {result.first.error}[/red]")
        sys.exit(1)
    sys.exit(0)


if __name__ == '__main__':
    main()

"""Shared fixtures for LocalHostify tests."""

import asyncio
import socket
from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from localhostify.server.models import SiteDescriptor

INDEX_HTML = "<!doctype html><title>home</title>"


def free_port() -> int:
    """Ask the OS for a port that is currently free on loopback."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def wait_for_health(url: str, verify=True, attempts: int = 50) -> httpx.Response:
    """Poll a site's /health endpoint until it answers."""
    async with httpx.AsyncClient(verify=verify, trust_env=False) as client:
        for _ in range(attempts):
            try:
                return await client.get(f"{url}/health")
            except httpx.TransportError:
                await asyncio.sleep(0.1)
    raise AssertionError(f"Site at {url} never became healthy")


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """A small site: index, stylesheet, nested docs and an asset under /api/."""
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text(INDEX_HTML)
    (root / "style.css").write_text("body { color: red; }")
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_text("<h1>docs</h1>")
    (root / "api").mkdir()
    (root / "api" / "users").mkdir()
    (root / "api" / "users" / "style.css").write_text("h1 { margin: 0; }")
    (tmp_path / "secret.txt").write_text("outside the root")
    return root


@pytest.fixture
def empty_root(tmp_path: Path) -> Path:
    root = tmp_path / "empty"
    root.mkdir()
    return root


@pytest.fixture
def make_site(site_root: Path) -> Callable[..., SiteDescriptor]:
    """Factory for site descriptors rooted at ``site_root`` by default."""

    def _make_site(
        name: str = "main",
        port: int = 0,
        root: Optional[Path] = None,
        tls_enabled: bool = False,
        backend_port: Optional[int] = None,
    ) -> SiteDescriptor:
        return SiteDescriptor(
            name=name,
            root=root or site_root,
            port=port,
            tls_enabled=tls_enabled,
            backend_port=backend_port,
        )

    return _make_site


async def echo(request: Request) -> Response:
    """Echo the request back as JSON so tests can inspect what arrived."""
    if request.url.path == "/api/teapot":
        return Response(b"short and stout", status_code=418, headers={"x-backend": "teapot"})
    if request.url.path == "/api/cookies":
        response = Response(b"", status_code=200)
        response.raw_headers.append((b"set-cookie", b"a=1"))
        response.raw_headers.append((b"set-cookie", b"b=2"))
        response.raw_headers.append((b"access-control-allow-origin", b"https://example.com"))
        return response

    body = await request.body()
    return JSONResponse({
        "method": request.method,
        "path": request.url.path,
        "query": request.url.query,
        "headers": [[name.decode("latin-1"), value.decode("latin-1")] for name, value in request.headers.raw],
        "body": body.decode("utf-8", errors="replace"),
    })


@pytest.fixture
def echo_backend() -> Starlette:
    """In-process backend answering every path and method."""
    return Starlette(routes=[
        Route("/{path:path}", echo, methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "PROPFIND", "REPORT"]),
    ])


@pytest.fixture
def echo_transport(echo_backend: Starlette) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=echo_backend)

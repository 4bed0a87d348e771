"""Forwarding of API requests to a site's loopback backend."""

import logging
import time
from typing import Optional

import httpx
from starlette.requests import ClientDisconnect, Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from ..shared.config import Config
from ..shared.errors import ProxyMisconfiguredError
from ..shared.logging_config import get_component_logger
from .headers import HeaderMap

# Backends are assumed local and not independently secured, so they are
# only ever addressed through loopback.
BACKEND_HOST = "127.0.0.1"

# Statuses that never carry a body (and never get a Content-Length added).
BODYLESS_STATUSES = (204, 304)


class RequestBodyTooLarge(Exception):
    """Inbound body exceeded the forwarder's size limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Request body exceeds {limit} bytes")


class ProxyForwarder:
    """Forwards one site's API requests to ``127.0.0.1:<backend_port>``.

    Each site owns one forwarder (and one httpx client); nothing is shared
    between sites. Requests are never retried.
    """

    def __init__(
        self,
        backend_port: Optional[int],
        site_name: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        connect_timeout: Optional[float] = None,
        request_timeout: Optional[float] = None,
        max_body_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the forwarder.

        Args:
            backend_port: Loopback port of the backend (None is a programming error)
            site_name: Name of the owning site, used in logs and errors
            logger: Injected logger (defaults to ``localhostify.proxy``)
            connect_timeout: Backend connect timeout in seconds
            request_timeout: Backend read/write timeout in seconds
            max_body_size: Largest inbound body accepted, in bytes
            transport: Optional httpx transport (used to plug in test backends)
        """
        if backend_port is None:
            raise ProxyMisconfiguredError(site_name)

        self.backend_port = backend_port
        self.site_name = site_name
        self.logger = logger or get_component_logger("proxy")
        self.backend_url = f"http://{BACKEND_HOST}:{backend_port}"
        self.connect_timeout = connect_timeout if connect_timeout is not None else Config.PROXY_CONNECT_TIMEOUT
        self.request_timeout = request_timeout if request_timeout is not None else Config.PROXY_REQUEST_TIMEOUT
        self.max_body_size = max_body_size if max_body_size is not None else Config.PROXY_MAX_BODY_SIZE

        self.client = httpx.AsyncClient(
            follow_redirects=False,
            trust_env=False,  # never route loopback traffic through HTTP_PROXY
            timeout=httpx.Timeout(
                connect=self.connect_timeout,
                read=self.request_timeout,
                write=self.request_timeout,
                pool=self.request_timeout,
            ),
            transport=transport,
        )

    def build_target_url(self, request: Request) -> str:
        """Build the backend URL, keeping the raw path and query string."""
        raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
        # Some servers include the query in raw_path; the scope's query_string is authoritative.
        raw_path = raw_path.split(b"?", 1)[0]
        url = self.backend_url + raw_path.decode("latin-1")
        query_string = request.scope.get("query_string", b"")
        if query_string:
            url += "?" + query_string.decode("latin-1")
        return url

    async def read_body(self, request: Request) -> bytes:
        """Read the whole inbound body, enforcing ``max_body_size``."""
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.max_body_size:
            raise RequestBodyTooLarge(self.max_body_size)

        chunks = []
        size = 0
        async for chunk in request.stream():
            size += len(chunk)
            if size > self.max_body_size:
                raise RequestBodyTooLarge(self.max_body_size)
            chunks.append(chunk)
        return b"".join(chunks)

    async def forward(self, request: Request) -> Response:
        """Forward an inbound request to the backend and translate the response back."""
        start_time = time.perf_counter()
        proxy_url = self.build_target_url(request)

        self.logger.info(f"🔄 Proxying {request.method} {request.url.path} to {proxy_url}")

        try:
            body = await self.read_body(request)
        except RequestBodyTooLarge as e:
            self.logger.warning(f"Rejected {request.method} {request.url.path}: {e}")
            return self.payload_too_large_response(e.limit)
        except ClientDisconnect:
            self.logger.warning(f"Client disconnected while sending body for {request.url.path}")
            return PlainTextResponse("Bad Request", status_code=400)

        headers = HeaderMap.from_raw(request.headers.raw).without_hop_by_hop()
        self.logger.trace(f"Request headers to backend: {headers.items()}")

        outbound = self.client.build_request(
            method=request.method,
            url=proxy_url,
            headers=headers.raw(),
            content=body,
        )

        try:
            response = await self.client.send(outbound, stream=True)
            try:
                # Raw bytes: the backend's Content-Encoding is passed through untouched.
                content = b"".join([chunk async for chunk in response.aiter_raw()])
            finally:
                await response.aclose()
        except httpx.ConnectError as e:
            self.logger.warning(f"❌ Proxy request failed: {e}")
            self.logger.error(f"Backend server not reachable at localhost:{self.backend_port}")
            return self.backend_unavailable_response()
        except httpx.TimeoutException as e:
            self.logger.error(f"❌ Proxy request timeout: {e} (URL: {proxy_url})")
            return self.backend_timeout_response()
        except httpx.HTTPError as e:
            self.logger.error(f"❌ Proxy request failed: {e} (URL: {proxy_url})")
            return PlainTextResponse("Bad Gateway", status_code=502)

        duration_ms = (time.perf_counter() - start_time) * 1000
        self.logger.info(f"✅ Proxy response: {response.status_code} in {duration_ms:.2f}ms")

        return self.translate_response(request, response.status_code, response.headers.raw, content)

    def translate_response(self, request: Request, status_code: int, raw_headers, content: bytes) -> Response:
        """Build the outbound response from the backend's status, headers and body."""
        headers = HeaderMap.from_raw(raw_headers).without_hop_by_hop().apply_cors()

        if (
            "content-length" not in headers
            and request.method != "HEAD"
            and status_code >= 200
            and status_code not in BODYLESS_STATUSES
        ):
            headers.set("content-length", str(len(content)))

        proxied = Response(content=content, status_code=status_code)
        proxied.raw_headers = headers.raw()
        return proxied

    def backend_unavailable_response(self) -> JSONResponse:
        """Diagnostic 502 for the common "backend not started yet" case."""
        return JSONResponse(
            {
                "error": "Backend server not available",
                "message": f"No server found at localhost:{self.backend_port}.",
                "suggestion": f"Start your backend on port {self.backend_port}",
            },
            status_code=502,
            headers={"access-control-allow-origin": "*"},
        )

    def backend_timeout_response(self) -> JSONResponse:
        return JSONResponse(
            {
                "error": "Backend server timeout",
                "message": f"No response from localhost:{self.backend_port} within {self.request_timeout:g}s.",
            },
            status_code=504,
            headers={"access-control-allow-origin": "*"},
        )

    def payload_too_large_response(self, limit: int) -> JSONResponse:
        return JSONResponse(
            {
                "error": "Request body too large",
                "message": f"Request bodies are limited to {limit} bytes.",
            },
            status_code=413,
            headers={"access-control-allow-origin": "*"},
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

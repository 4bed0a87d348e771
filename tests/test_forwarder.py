"""Tests for forwarding API requests to a loopback backend."""

import httpx
import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.routing import Route

from conftest import free_port
from localhostify.proxy.forwarder import ProxyForwarder
from localhostify.server.app import AnyMethodEndpoint
from localhostify.shared.errors import ProxyMisconfiguredError


def forwarding_app(forwarder: ProxyForwarder) -> Starlette:
    """Minimal app sending every request through the forwarder."""
    return Starlette(routes=[Route("/{path:path}", AnyMethodEndpoint(forwarder.forward))])


def client_for(forwarder: ProxyForwarder) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=forwarding_app(forwarder)), base_url="http://testsite")


def plain_request(method: str = "GET") -> Request:
    return Request({"type": "http", "method": method, "path": "/api/x", "headers": []})


class TestForwarding:
    """Requests reach the backend intact and responses come back intact."""

    async def test_request_is_forwarded_faithfully(self, echo_transport):
        forwarder = ProxyForwarder(4321, site_name="main", transport=echo_transport)
        async with client_for(forwarder) as client:
            response = await client.post(
                "/api/items/a%20b?x=1&y=two",
                content=b'{"name": "widget"}',
                headers=[
                    ("Content-Type", "application/json"),
                    ("X-Custom", "yes"),
                    ("Accept", "application/json"),
                    ("Accept", "text/plain"),
                    ("Keep-Alive", "timeout=5"),
                    ("Proxy-Authorization", "Basic c2VjcmV0"),
                    ("Upgrade", "websocket"),
                ],
            )
        await forwarder.close()

        assert response.status_code == 200, f"Unexpected status: {response.status_code} {response.text}"
        echoed = response.json()
        assert echoed["method"] == "POST"
        assert echoed["path"] == "/api/items/a b"
        assert echoed["query"] == "x=1&y=two"
        assert echoed["body"] == '{"name": "widget"}'

        names = [name.lower() for name, _ in echoed["headers"]]
        values = {name.lower(): value for name, value in echoed["headers"]}
        assert values["x-custom"] == "yes"
        assert [v for n, v in echoed["headers"] if n.lower() == "accept"] == ["application/json", "text/plain"]
        assert values["host"] == "127.0.0.1:4321", "Host must be rewritten for the backend"
        for hop in ("keep-alive", "proxy-authorization", "upgrade"):
            assert hop not in names, f"Hop-by-hop header {hop} leaked to backend"

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "OPTIONS"])
    async def test_method_is_preserved(self, echo_transport, method: str):
        forwarder = ProxyForwarder(4321, transport=echo_transport)
        async with client_for(forwarder) as client:
            response = await client.request(method, "/api/things")
        await forwarder.close()

        assert response.status_code == 200
        assert response.json()["method"] == method

    async def test_response_status_headers_and_body_pass_through(self, echo_transport):
        forwarder = ProxyForwarder(4321, transport=echo_transport)
        async with client_for(forwarder) as client:
            response = await client.get("/api/teapot")
        await forwarder.close()

        assert response.status_code == 418
        assert response.content == b"short and stout"
        assert response.headers["x-backend"] == "teapot"
        assert response.headers["content-length"] == str(len(b"short and stout"))

    async def test_cors_headers_override_backend_values(self, echo_transport):
        forwarder = ProxyForwarder(4321, transport=echo_transport)
        async with client_for(forwarder) as client:
            response = await client.get("/api/cookies")
        await forwarder.close()

        assert response.headers.get_list("set-cookie") == ["a=1", "b=2"]
        assert response.headers.get_list("access-control-allow-origin") == ["*"]
        assert response.headers["access-control-allow-methods"] == "GET, POST, PUT, DELETE, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "content-type, authorization"

    async def test_extension_methods_are_forwarded(self, echo_transport):
        forwarder = ProxyForwarder(4321, transport=echo_transport)
        async with client_for(forwarder) as client:
            response = await client.request("PROPFIND", "/api/files", headers={"Depth": "1"})
        await forwarder.close()

        assert response.status_code == 200
        assert response.json()["method"] == "PROPFIND"


class TestForwardingFailures:
    """Backend failures become HTTP responses, never exceptions."""

    async def test_unreachable_backend_returns_diagnostic_502(self):
        port = free_port()
        forwarder = ProxyForwarder(port, connect_timeout=2)
        async with client_for(forwarder) as client:
            response = await client.get("/api/users")
        await forwarder.close()

        assert response.status_code == 502
        payload = response.json()
        assert payload["error"] == "Backend server not available"
        assert str(port) in payload["message"]
        assert str(port) in payload["suggestion"]
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_backend_timeout_returns_504(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("backend too slow", request=request)

        forwarder = ProxyForwarder(4321, request_timeout=1, transport=httpx.MockTransport(handler))
        async with client_for(forwarder) as client:
            response = await client.get("/api/slow")
        await forwarder.close()

        assert response.status_code == 504
        assert response.json()["error"] == "Backend server timeout"

    async def test_oversized_body_is_rejected_before_forwarding(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        forwarder = ProxyForwarder(4321, max_body_size=10, transport=httpx.MockTransport(handler))
        async with client_for(forwarder) as client:
            response = await client.post("/api/upload", content=b"x" * 11)
        await forwarder.close()

        assert response.status_code == 413
        assert calls == [], "Backend must not be contacted for an oversized body"

    async def test_body_at_limit_is_forwarded(self, echo_transport):
        forwarder = ProxyForwarder(4321, max_body_size=10, transport=echo_transport)
        async with client_for(forwarder) as client:
            response = await client.post("/api/upload", content=b"x" * 10)
        await forwarder.close()

        assert response.status_code == 200
        assert response.json()["body"] == "x" * 10

    async def test_other_transport_error_returns_502(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.RemoteProtocolError("server disconnected without sending a response", request=request)

        forwarder = ProxyForwarder(4321, transport=httpx.MockTransport(handler))
        async with client_for(forwarder) as client:
            response = await client.get("/api/flaky")
        await forwarder.close()

        assert response.status_code == 502
        assert response.text == "Bad Gateway"

    async def test_client_disconnect_while_sending_body_returns_400(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        async def receive():
            return {"type": "http.disconnect"}

        scope = {"type": "http", "method": "POST", "path": "/api/upload", "query_string": b"", "headers": []}
        forwarder = ProxyForwarder(4321, transport=httpx.MockTransport(handler))
        response = await forwarder.forward(Request(scope, receive))
        await forwarder.close()

        assert response.status_code == 400
        assert response.body == b"Bad Request"
        assert calls == [], "Backend must not be contacted for a broken inbound body"

    def test_missing_backend_port_is_a_programming_error(self):
        with pytest.raises(ProxyMisconfiguredError):
            ProxyForwarder(None, site_name="main")


class TestTranslateResponse:
    """Response header translation rules."""

    def test_hop_by_hop_stripped_and_length_added(self):
        forwarder = ProxyForwarder(4321)
        response = forwarder.translate_response(
            plain_request(),
            200,
            [(b"Transfer-Encoding", b"chunked"), (b"Connection", b"close"), (b"Content-Type", b"text/plain")],
            b"hello",
        )
        names = [name for name, _ in response.raw_headers]
        assert b"transfer-encoding" not in names
        assert b"connection" not in names
        assert (b"content-length", b"5") in response.raw_headers
        assert (b"content-type", b"text/plain") in response.raw_headers

    def test_content_encoding_is_kept(self):
        forwarder = ProxyForwarder(4321)
        response = forwarder.translate_response(
            plain_request(), 200, [(b"Content-Encoding", b"gzip"), (b"Content-Length", b"3")], b"\x1f\x8b\x08"
        )
        assert (b"content-encoding", b"gzip") in response.raw_headers
        assert response.body == b"\x1f\x8b\x08"

    @pytest.mark.parametrize("method,status", [("HEAD", 200), ("GET", 204), ("GET", 304)])
    def test_no_length_added_for_bodyless_responses(self, method: str, status: int):
        forwarder = ProxyForwarder(4321)
        response = forwarder.translate_response(plain_request(method), status, [], b"")
        assert b"content-length" not in [name for name, _ in response.raw_headers]

    def test_target_url_uses_loopback(self):
        forwarder = ProxyForwarder(4321)
        request = Request({
            "type": "http",
            "method": "GET",
            "path": "/api/a b",
            "raw_path": b"/api/a%20b",
            "query_string": b"q=1",
            "headers": [],
        })
        assert forwarder.build_target_url(request) == "http://127.0.0.1:4321/api/a%20b?q=1"

"""Tests for the shared header mapping."""

from localhostify.proxy.headers import CORS_HEADERS, HOP_BY_HOP_HEADERS, HeaderMap


class TestHeaderMap:
    """Case-insensitive multi-value header handling."""

    def test_names_are_case_insensitive(self):
        headers = HeaderMap([("Content-Type", "text/plain")])
        assert headers.get("content-type") == "text/plain"
        assert headers.get("CONTENT-TYPE") == "text/plain"
        assert "Content-Type" in headers

    def test_duplicates_keep_every_value_in_order(self):
        headers = HeaderMap([("Set-Cookie", "a=1"), ("X-Other", "x"), ("set-cookie", "b=2")])
        assert headers.get_all("set-cookie") == ["a=1", "b=2"]
        assert headers.items() == [("set-cookie", "a=1"), ("set-cookie", "b=2"), ("x-other", "x")]

    def test_from_raw_decodes_latin1(self):
        headers = HeaderMap.from_raw([(b"X-Name", "café".encode("latin-1"))])
        assert headers.get("x-name") == "café"
        assert headers.raw() == [(b"x-name", b"caf\xe9")]

    def test_set_replaces_and_remove_deletes(self):
        headers = HeaderMap([("Accept", "a"), ("Accept", "b")])
        headers.set("accept", "c")
        assert headers.get_all("accept") == ["c"]
        headers.remove("ACCEPT")
        assert "accept" not in headers
        assert headers.get("accept", "none") == "none"

    def test_without_hop_by_hop_strips_every_listed_header(self):
        pairs = [(name, "x") for name in HOP_BY_HOP_HEADERS] + [("Content-Type", "application/json")]
        filtered = HeaderMap(pairs).without_hop_by_hop()
        assert list(filtered) == ["content-type"]

    def test_without_hop_by_hop_returns_a_copy(self):
        headers = HeaderMap([("Connection", "close"), ("X-Keep", "1")])
        headers.without_hop_by_hop().add("x-keep", "2")
        assert "connection" in headers
        assert headers.get_all("x-keep") == ["1"]

    def test_apply_cors_overrides_existing_values(self):
        headers = HeaderMap([("Access-Control-Allow-Origin", "https://example.com")])
        headers.apply_cors()
        for name, value in CORS_HEADERS:
            assert headers.get_all(name) == [value]

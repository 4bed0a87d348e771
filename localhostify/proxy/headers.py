"""Header mapping shared by the inbound (Starlette) and outbound (httpx) sides.

Both HTTP representations are converted to a ``HeaderMap`` once, so the
hop-by-hop filter and the CORS injection only ever see one type.
"""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

HeaderValue = Union[str, bytes]

HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
})

CORS_HEADERS = (
    ("access-control-allow-origin", "*"),
    ("access-control-allow-methods", "GET, POST, PUT, DELETE, OPTIONS"),
    ("access-control-allow-headers", "content-type, authorization"),
)


def _to_str(value: HeaderValue) -> str:
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return value


class HeaderMap:
    """Ordered mapping of lower-cased header names to lists of values.

    Duplicate names (``Set-Cookie``, repeated ``Accept``) keep every value,
    in arrival order.
    """

    def __init__(self, items: Optional[Iterable[Tuple[HeaderValue, HeaderValue]]] = None):
        self._headers: Dict[str, List[str]] = {}
        if items is not None:
            for name, value in items:
                self.add(name, value)

    @classmethod
    def from_raw(cls, raw: Iterable[Tuple[bytes, bytes]]) -> "HeaderMap":
        """Build from raw ``(name, value)`` byte pairs (ASGI scope, httpx ``Headers.raw``)."""
        return cls(raw)

    def add(self, name: HeaderValue, value: HeaderValue) -> None:
        """Append a value, keeping any existing values for the name."""
        self._headers.setdefault(_to_str(name).lower(), []).append(_to_str(value))

    def set(self, name: str, value: str) -> None:
        """Replace all values for a name with a single value."""
        self._headers[name.lower()] = [value]

    def remove(self, name: str) -> None:
        self._headers.pop(name.lower(), None)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get the first value for a name."""
        values = self._headers.get(name.lower())
        return values[0] if values else default

    def get_all(self, name: str) -> List[str]:
        return list(self._headers.get(name.lower(), []))

    def without_hop_by_hop(self) -> "HeaderMap":
        """Copy of this map without hop-by-hop headers."""
        filtered = HeaderMap()
        for name, values in self._headers.items():
            if name in HOP_BY_HOP_HEADERS:
                continue
            filtered._headers[name] = list(values)
        return filtered

    def apply_cors(self) -> "HeaderMap":
        """Force the permissive CORS headers, replacing any existing values."""
        for name, value in CORS_HEADERS:
            self.set(name, value)
        return self

    def items(self) -> List[Tuple[str, str]]:
        """All ``(name, value)`` pairs, duplicates expanded."""
        return [(name, value) for name, values in self._headers.items() for value in values]

    def raw(self) -> List[Tuple[bytes, bytes]]:
        """All pairs encoded for ASGI ``raw_headers``."""
        return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in self.items()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"HeaderMap({self.items()!r})"

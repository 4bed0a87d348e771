"""Static-vs-API request classification.

This is a best-effort heuristic for spotting API calls in a single-page-app
setup, not a general router. A path is proxied when it starts with one of
``API_PREFIXES`` or contains ``/api/`` anywhere, unless it ends with a
static-asset extension, e.g. ``/api/users/style.css`` stays static.
"""

from enum import Enum

API_PREFIXES = ("/api", "/v1", "/graphql")

API_SEGMENT = "/api/"

STATIC_EXTENSIONS = (
    ".html", ".css", ".js",
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico",
    ".woff", ".woff2", ".ttf", ".eot",
)


class RoutingDecision(str, Enum):
    """Where a request is dispatched to."""
    STATIC = "static"
    PROXY = "proxy"


def is_static_asset(path: str) -> bool:
    """Check whether a path ends with a known static-asset extension."""
    return path.lower().endswith(STATIC_EXTENSIONS)


def looks_like_api(path: str) -> bool:
    """Check whether a path matches one of the API patterns."""
    return path.startswith(API_PREFIXES) or API_SEGMENT in path


def classify(path: str) -> RoutingDecision:
    """Classify a request path as a static-file fetch or an API call."""
    if not isinstance(path, str):
        return RoutingDecision.STATIC
    if looks_like_api(path) and not is_static_asset(path):
        return RoutingDecision.PROXY
    return RoutingDecision.STATIC

"""Static file serving for one site root.

File resolution, index fallback and traversal protection are delegated to
Starlette's ``StaticFiles``; this module pins down what the site router may
rely on: directories fall back to their ``index.html``, misses are 404
responses (never exceptions), and nothing outside the root is ever served.
"""

import logging
import os
import stat
from pathlib import Path
from typing import Optional

from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.staticfiles import StaticFiles

from ..shared.logging_config import get_component_logger

INDEX_DOCUMENT = "index.html"


class StaticResponder:
    """Serves files from a site's root directory."""

    def __init__(self, root: Path, logger: Optional[logging.Logger] = None):
        self.root = Path(root)
        self.logger = logger or get_component_logger("static")
        self.files = StaticFiles(directory=str(self.root), html=True)

    def resolve(self, path: str) -> Optional[Path]:
        """Resolve a request path to the file that would be served, if any.

        Directories resolve to their index document. Paths escaping the root
        resolve to None.
        """
        relative = os.path.normpath(os.path.join(*path.split("/"))) if path else "."
        full_path, stat_result = self.files.lookup_path(relative)
        if stat_result is not None and stat.S_ISDIR(stat_result.st_mode):
            full_path, stat_result = self.files.lookup_path(os.path.join(relative, INDEX_DOCUMENT))
        if stat_result is not None and stat.S_ISREG(stat_result.st_mode):
            return Path(full_path)
        return None

    async def respond(self, request: Request) -> Response:
        """Serve the file for a request, or a 404 when nothing matches."""
        path = self.files.get_path(request.scope)
        try:
            return await self.files.get_response(path, request.scope)
        except HTTPException as e:
            if e.status_code == 404:
                self.logger.debug(f"Static miss: {request.url.path}")
                return PlainTextResponse("Not Found", status_code=404)
            return PlainTextResponse(e.detail, status_code=e.status_code, headers=e.headers)

"""LocalHostify: serve local directories over HTTP/HTTPS with API proxying.

Kept import-light so the CLI can load ``.env`` before configuration is read.
"""

__version__ = "1.0.0"

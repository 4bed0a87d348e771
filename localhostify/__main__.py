"""Allow running as ``python -m localhostify``."""

from .cli import main

if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""CLI entry point for LocalHostify.

Runs the server straight from a source checkout; installed copies use the
``localhostify`` console script instead.
"""

from localhostify.cli import main

if __name__ == "__main__":
    main()

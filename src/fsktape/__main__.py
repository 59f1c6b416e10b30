"""CLI entrypoint for fsktape."""

from __future__ import annotations

import sys

from .tapedump import main


if __name__ == "__main__":
    sys.exit(main())

"""CLI entry point: python -m ipfilter"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    main()

"""CLI entry point for pokemasdb.

Delegates to the fetch module so the project supports
running via `python -m pokemasdb.main`.
"""
import sys

from .fetch import main as fetch_main

if __name__ == "__main__":
    sys.exit(fetch_main())

"""
log.py — Console output for the loader.

Progress lines go to stdout and only when verbose; errors always go to stderr.
"""

from __future__ import annotations
import sys

PREFIX = "[sanity-loader]"


def info(msg: str, *, verbose: bool = True) -> None:
    if verbose:
        print(f"{PREFIX} {msg}", flush=True)


def error(msg: str) -> None:
    print(f"{PREFIX} {msg}", file=sys.stderr, flush=True)

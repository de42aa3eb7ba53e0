"""
errors.py — Error types raised (or recovered) by the loader.

Only ConfigurationError, FetchError and AssetTransportError ever reach a
caller. CacheCorruptionError and CacheWriteError are logged and swallowed
by the cache store.
"""

from __future__ import annotations
from typing import Optional


class SanityLoaderError(Exception):
    def __init__(self, message: str, *, query_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.query_name = query_name

    def __str__(self) -> str:
        if self.query_name:
            return f"({self.query_name}) {self.message}"
        return self.message


class ConfigurationError(SanityLoaderError):
    pass


class QueryNotFoundError(ConfigurationError):
    pass


class FetchError(SanityLoaderError):
    pass


class AssetTransportError(SanityLoaderError):
    def __init__(self, message: str, *, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class CacheCorruptionError(SanityLoaderError):
    pass


class CacheWriteError(SanityLoaderError):
    pass

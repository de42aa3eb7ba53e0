"""
queries.py — Resolves a loader's query text.

Inline `query` strings win; otherwise <queries_dir>/<query_name>.groq is read.
"""

from __future__ import annotations
from pathlib import Path
from typing import Optional

from errors import ConfigurationError, QueryNotFoundError

QUERY_SUFFIX = ".groq"


class QueryResolver:
    def __init__(self, queries_dir: Optional[Path] = None):
        self.queries_dir = Path(queries_dir) if queries_dir is not None else None

    def query_path(self, query_name: str) -> Path:
        if self.queries_dir is None:
            raise ConfigurationError(
                "`paths.queries` is required to load queries by name.",
                query_name=query_name,
            )
        return self.queries_dir / f"{query_name}{QUERY_SUFFIX}"

    def get_query(self, query_name: str) -> str:
        if not query_name:
            raise ConfigurationError("get_query requires a query name.")
        path = self.query_path(query_name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise QueryNotFoundError(
                f"Unable to get query file {query_name} at {path}",
                query_name=query_name,
            ) from None

    def resolve(self, *, query: Optional[str] = None, query_name: Optional[str] = None) -> str:
        if query:
            return query
        if query_name:
            return self.get_query(query_name)
        raise QueryNotFoundError("`query` or `query_name` must be provided.")

"""
cache.py — One persisted result per query name.

Each slot lives at <cache_dir>/<query_name>.json as {"result", "version", "query"}.
The stored query string is the fingerprint: a slot is only served back for
the exact query text that produced it.
"""

from __future__ import annotations
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import log
from errors import CacheCorruptionError, CacheWriteError


class _Miss:
    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


# Returned by QueryCache.read when the slot can't be used. Cached results may
# legitimately be null, 0 or empty, so None is not a usable miss marker.
MISS: Any = _Miss()


@dataclass
class CacheEntry:
    result: Any
    query: str
    version: Optional[str] = None


def write_text_atomic(path: Path, text: str) -> Path:
    """Replace the contents of `path` in one step, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    return path


class QueryCache:
    def __init__(self, cache_dir: Path, *, on_error: Optional[Callable[[str], None]] = None):
        self.cache_dir = Path(cache_dir)
        self._on_error = on_error or log.error

    def entry_path(self, query_name: str) -> Path:
        return self.cache_dir / f"{query_name}.json"

    def exists(self, query_name: str) -> bool:
        return self.entry_path(query_name).is_file()

    def write(
        self,
        query_name: str,
        result: Any,
        *,
        query: str,
        version: Optional[str] = None,
    ) -> bool:
        """Persist a fetched result. Failures are reported, never raised."""
        entry = CacheEntry(result=result, query=query, version=version)
        try:
            payload = json.dumps({"result": entry.result, "version": entry.version, "query": entry.query})
            write_text_atomic(self.entry_path(query_name), payload)
        except (OSError, TypeError, ValueError) as e:
            err = CacheWriteError(f"Unable to write cache: {e}", query_name=query_name)
            self._on_error(str(err))
            return False
        return True

    def load(self, query_name: str) -> Optional[CacheEntry]:
        path = self.entry_path(query_name)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            err = CacheCorruptionError(f"Unreadable cache file {path}: {e}", query_name=query_name)
            self._on_error(str(err))
            return None

        if not isinstance(raw, dict) or "result" not in raw:
            err = CacheCorruptionError(f"Malformed cache entry in {path}", query_name=query_name)
            self._on_error(str(err))
            return None
        return CacheEntry(
            result=raw["result"],
            query=raw.get("query"),
            version=raw.get("version"),
        )

    def read(
        self,
        query_name: str,
        *,
        current_query: str,
        is_stale: bool,
        expected_version: Optional[str] = None,
    ) -> Any:
        """Return the cached result for `query_name`, or MISS.

        Order matters: a stale verdict skips the file entirely, a changed query
        always invalidates, and once the query matches a pinned version is the
        only thing compared.
        """
        if not self.exists(query_name):
            return MISS

        # Known-stale content isn't worth deserializing.
        if is_stale:
            return MISS

        entry = self.load(query_name)
        if entry is None:
            return MISS

        if entry.query != current_query:
            return MISS

        if expected_version:
            return entry.result if entry.version == expected_version else MISS

        return entry.result

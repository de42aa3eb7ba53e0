"""
staleness.py — Decides when the whole cache must be bypassed.

Two pieces:
- is_cache_stale: the default strategy. Compares the `_updatedAt` of the most
  recently edited document against the marker stored in the cache dir.
- StalenessCoordinator: memoizes a strategy's verdict for one loader factory,
  either once per process (coalescing concurrent first callers onto a single
  check) or not at all (per-call mode).
"""

from __future__ import annotations
import asyncio
import inspect
from pathlib import Path
from typing import Any, Awaitable, Optional, Protocol, Union

import log
from cache import write_text_atomic

LATEST_UPDATE_QUERY = "* | order(_updatedAt desc)[0]._updatedAt"
MARKER_FILENAME = "latest-update.txt"


class StalenessStrategy(Protocol):
    """Anything callable as strategy(client, cache_dir=...) -> bool (or awaitable bool).

    True means the cache must be bypassed.
    """

    def __call__(self, client: Any, *, cache_dir: Path) -> Union[bool, Awaitable[bool]]: ...


def marker_path(cache_dir: Path) -> Path:
    return Path(cache_dir) / MARKER_FILENAME


def read_marker(cache_dir: Path) -> Optional[str]:
    path = marker_path(cache_dir)
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        log.error(f"Unable to read {path}: {e}")
        return None


async def is_cache_stale(client: Any, *, cache_dir: Path, verbose: bool = False) -> bool:
    log.info("Checking if cache is stale...", verbose=verbose)
    cached_timestamp = read_marker(cache_dir)

    live_timestamp = await client.fetch(LATEST_UPDATE_QUERY)
    # An empty probe result is never trusted as "fresh".
    stale = not live_timestamp or live_timestamp != cached_timestamp

    if stale and live_timestamp:
        try:
            write_text_atomic(marker_path(cache_dir), str(live_timestamp))
        except OSError as e:
            log.error(f"Unable to record latest update marker: {e}")

    return stale


async def _resolve(value: Union[bool, Awaitable[bool]]) -> bool:
    if inspect.isawaitable(value):
        value = await value
    return bool(value)


class StalenessCoordinator:
    def __init__(
        self,
        client: Any,
        *,
        cache_dir: Path,
        strategy: Optional[StalenessStrategy] = None,
        per_call: bool = False,
    ):
        self.client = client
        self.cache_dir = Path(cache_dir)
        self.strategy = strategy or is_cache_stale
        self.per_call = per_call
        self._verdict: Optional[bool] = None
        self._in_flight: Optional[asyncio.Future] = None

    @property
    def verdict(self) -> Optional[bool]:
        return self._verdict

    async def _check(self) -> bool:
        return await _resolve(self.strategy(self.client, cache_dir=self.cache_dir))

    async def _check_once(self) -> bool:
        try:
            verdict = await self._check()
        finally:
            self._in_flight = None
        self._verdict = verdict
        return verdict

    async def get_verdict(self) -> bool:
        if self.per_call:
            return await self._check()

        if self._verdict is not None:
            return self._verdict

        if self._in_flight is None:
            self._in_flight = asyncio.ensure_future(self._check_once())
        # Shielded so one cancelled caller can't cancel the check the others await.
        return await asyncio.shield(self._in_flight)

import asyncio
from pathlib import Path

import pytest

from staleness import (
    LATEST_UPDATE_QUERY,
    StalenessCoordinator,
    is_cache_stale,
    marker_path,
)


class _TimestampClient:
    def __init__(self, timestamp):
        self.timestamp = timestamp
        self.calls: list[str] = []

    async def fetch(self, query: str):
        self.calls.append(query)
        return self.timestamp


def test_missing_marker_is_stale_and_records_timestamp(tmp_path: Path):
    client = _TimestampClient("2026-03-01T10:00:00Z")

    assert asyncio.run(is_cache_stale(client, cache_dir=tmp_path)) is True
    assert client.calls == [LATEST_UPDATE_QUERY]
    assert marker_path(tmp_path).read_text() == "2026-03-01T10:00:00Z"


def test_matching_marker_is_fresh_and_left_alone(tmp_path: Path):
    marker = marker_path(tmp_path)
    marker.write_text("2026-03-01T10:00:00Z")
    before = marker.stat().st_mtime_ns
    client = _TimestampClient("2026-03-01T10:00:00Z")

    assert asyncio.run(is_cache_stale(client, cache_dir=tmp_path)) is False
    assert marker.stat().st_mtime_ns == before


def test_newer_remote_update_is_stale_and_updates_marker(tmp_path: Path):
    marker_path(tmp_path).write_text("2024-01-01T00:00:00.000Z")
    client = _TimestampClient("2026-03-01T10:00:00Z")

    assert asyncio.run(is_cache_stale(client, cache_dir=tmp_path)) is True
    assert marker_path(tmp_path).read_text() == "2026-03-01T10:00:00Z"


@pytest.mark.parametrize("empty", [None, ""])
def test_empty_probe_fails_open_without_writing_marker(tmp_path: Path, empty):
    marker_path(tmp_path).write_text("2024-01-01T00:00:00.000Z")
    client = _TimestampClient(empty)

    assert asyncio.run(is_cache_stale(client, cache_dir=tmp_path)) is True
    assert marker_path(tmp_path).read_text() == "2024-01-01T00:00:00.000Z"


def test_marker_directory_is_created(tmp_path: Path):
    cache_dir = tmp_path / "does" / "not" / "exist"
    client = _TimestampClient("2026-03-01T10:00:00Z")

    asyncio.run(is_cache_stale(client, cache_dir=cache_dir))
    assert marker_path(cache_dir).exists()


class _CountingStrategy:
    def __init__(self, verdicts: list[bool], delay: float = 0.01):
        self.verdicts = list(verdicts)
        self.delay = delay
        self.calls = 0

    async def __call__(self, client, *, cache_dir):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return self.verdicts[min(self.calls, len(self.verdicts)) - 1]


def test_check_once_coalesces_concurrent_callers(tmp_path: Path):
    strategy = _CountingStrategy([True, False])
    coordinator = StalenessCoordinator(object(), cache_dir=tmp_path, strategy=strategy)

    async def main():
        first = await asyncio.gather(*[coordinator.get_verdict() for _ in range(5)])
        later = await coordinator.get_verdict()
        return first, later

    first, later = asyncio.run(main())
    assert first == [True] * 5
    assert later is True
    assert strategy.calls == 1
    assert coordinator.verdict is True


def test_per_call_mode_checks_every_time(tmp_path: Path):
    strategy = _CountingStrategy([False, True, True])
    coordinator = StalenessCoordinator(object(), cache_dir=tmp_path, strategy=strategy, per_call=True)

    async def main():
        return [await coordinator.get_verdict() for _ in range(3)]

    assert asyncio.run(main()) == [False, True, True]
    assert strategy.calls == 3
    assert coordinator.verdict is None


def test_sync_strategy_is_accepted(tmp_path: Path):
    calls: list[Path] = []

    def never_stale(client, *, cache_dir):
        calls.append(cache_dir)
        return False

    coordinator = StalenessCoordinator(object(), cache_dir=tmp_path, strategy=never_stale)
    assert asyncio.run(coordinator.get_verdict()) is False
    assert calls == [tmp_path]


def test_failed_check_records_no_verdict(tmp_path: Path):
    attempts = 0

    async def flaky(client, *, cache_dir):
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise RuntimeError("probe failed")
        return False

    coordinator = StalenessCoordinator(object(), cache_dir=tmp_path, strategy=flaky)

    with pytest.raises(RuntimeError, match="probe failed"):
        asyncio.run(coordinator.get_verdict())
    assert coordinator.verdict is None

    assert asyncio.run(coordinator.get_verdict()) is False
    assert attempts == 2


def test_separate_coordinators_do_not_share_verdicts(tmp_path: Path):
    stale = _CountingStrategy([True])
    fresh = _CountingStrategy([False])
    a = StalenessCoordinator(object(), cache_dir=tmp_path, strategy=stale)
    b = StalenessCoordinator(object(), cache_dir=tmp_path, strategy=fresh)

    assert asyncio.run(a.get_verdict()) is True
    assert asyncio.run(b.get_verdict()) is False

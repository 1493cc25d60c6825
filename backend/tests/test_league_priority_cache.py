"""
backend/tests/test_league_priority_cache.py

Purpose:
    League priority scoring, TTL refresh, failure retention and snapshot
    atomicity of the league priority cache.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, "backend")

from fieldstats.services.league_priority_cache import (
    DEFAULT_PRIORITY_SCORE,
    LeaguePriorityCache,
    compute_priority_score,
    tier_weight,
)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

LEAGUES = [
    {"_id": 8, "name": "Premier League", "featured": True, "priority": 50, "tier": "tier1"},
    {"_id": 82, "name": "Bundesliga", "featured": True, "priority": 40, "tier": "tier1"},
    {"_id": 600, "name": "Super Lig", "featured": False, "priority": 0, "tier": "tier2"},
    {"_id": 999, "name": "Regional", "featured": "yes", "tier": None},
]


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class _Fetcher:
    def __init__(self, docs: list[dict]):
        self.docs = list(docs)
        self.calls = 0
        self.error: Exception | None = None

    async def __call__(self) -> list[dict]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [dict(doc) for doc in self.docs]


def test_priority_formula():
    assert compute_priority_score({"featured": True, "priority": 50, "tier": "tier1"}) == 350
    assert compute_priority_score({"featured": False, "priority": 10, "tier": "tier3"}) == 70
    assert compute_priority_score({"featured": "true", "tier": "tier9"}) == 220
    assert compute_priority_score({"featured": 1, "priority": 5, "tier": "tier4"}) == 245
    assert compute_priority_score({"featured": 0, "tier": "tier4"}) == 40
    assert compute_priority_score({"featured": "", "tier": None}) == 20
    assert compute_priority_score(None) == DEFAULT_PRIORITY_SCORE
    assert tier_weight("TIER2") == 80
    assert tier_weight(None) == 20


@pytest.mark.asyncio
async def test_refresh_loads_snapshot_and_scores():
    fetcher = _Fetcher(LEAGUES)
    cache = LeaguePriorityCache(fetcher, ttl_seconds=300, clock=_Clock(T0))

    assert await cache.refresh_if_stale() is True
    assert cache.cached_at == T0
    assert cache.get_priority(8) == 350
    assert cache.get_priority(600) == 80
    assert cache.get_priority(999) == 220
    assert cache.get_priority(12345) == DEFAULT_PRIORITY_SCORE
    assert cache.get_league(82).name == "Bundesliga"
    assert cache.get_league(12345) is None
    assert sorted(cache.featured_league_ids()) == [8, 82, 999]
    assert [e.id for e in cache.snapshot.featured_leagues(10)] == [8, 82, 999]
    assert cache.get_league(999).featured is True
    assert cache.snapshot.leagues_matching_name("bundes") == [82]


@pytest.mark.asyncio
async def test_ttl_controls_refetch():
    clock = _Clock(T0)
    fetcher = _Fetcher(LEAGUES)
    cache = LeaguePriorityCache(fetcher, ttl_seconds=300, clock=clock)

    await cache.refresh_if_stale()
    clock.now = T0 + timedelta(seconds=299)
    assert await cache.refresh_if_stale() is False
    assert fetcher.calls == 1

    clock.now = T0 + timedelta(seconds=300)
    fetcher.docs[0] = {**LEAGUES[0], "priority": 0}
    assert await cache.refresh_if_stale() is True
    assert fetcher.calls == 2
    assert cache.get_priority(8) == 300


@pytest.mark.asyncio
async def test_failed_refresh_keeps_stale_snapshot_and_retries():
    clock = _Clock(T0)
    fetcher = _Fetcher(LEAGUES)
    cache = LeaguePriorityCache(fetcher, ttl_seconds=60, clock=clock)
    await cache.refresh_if_stale()

    clock.now = T0 + timedelta(minutes=5)
    fetcher.error = RuntimeError("mongo down")
    assert await cache.refresh_if_stale() is False
    assert cache.get_priority(8) == 350
    assert cache.cached_at == T0
    assert cache.is_stale()

    fetcher.error = None
    assert await cache.refresh_if_stale() is True
    assert fetcher.calls == 3


@pytest.mark.asyncio
async def test_failure_on_empty_cache_falls_back_to_default():
    fetcher = _Fetcher([])
    fetcher.error = RuntimeError("boom")
    cache = LeaguePriorityCache(fetcher, ttl_seconds=60, clock=_Clock(T0))

    assert await cache.refresh_if_stale() is False
    assert cache.get_priority(8) == DEFAULT_PRIORITY_SCORE
    assert cache.snapshot.priority_branches() == []


@pytest.mark.asyncio
async def test_readers_never_see_a_partial_generation():
    gate = asyncio.Event()
    clock = _Clock(T0)
    generation = {"docs": LEAGUES}

    async def fetch():
        docs = generation["docs"]
        await gate.wait()
        return [dict(doc) for doc in docs]

    cache = LeaguePriorityCache(fetch, ttl_seconds=60, clock=clock)
    gate.set()
    await cache.refresh_if_stale()
    before = cache.snapshot

    gate.clear()
    clock.now = T0 + timedelta(minutes=2)
    generation["docs"] = [{**doc, "priority": 0} for doc in LEAGUES]
    task = asyncio.create_task(cache.refresh_if_stale())
    await asyncio.sleep(0)

    # Mid-refresh readers still see the previous generation in full.
    assert cache.snapshot is before
    assert cache.get_priority(8) == 350
    assert cache.get_priority(82) == 340

    gate.set()
    assert await task is True
    after = cache.snapshot
    assert after is not before
    assert after.get_priority(8) == 300
    assert after.get_priority(82) == 300
    assert before.get_priority(8) == 350
    assert all(entry.cached_at == after.cached_at for entry in after.entries.values())


def test_snapshot_entries_are_read_only():
    cache = LeaguePriorityCache(_Fetcher([]), clock=_Clock(T0))
    with pytest.raises(TypeError):
        cache.snapshot.entries[1] = None

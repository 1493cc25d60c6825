"""
backend/fieldstats/services/league_priority_cache.py

Purpose:
    TTL cache of league metadata with derived priority scores used to rank
    match listings. The whole league set is loaded in one bulk read, scored,
    and published as an immutable snapshot.

Notes:
    - Refresh builds the new snapshot off to the side and swaps a single
      reference. Readers see either the old or the new generation, never a mix.
    - No lock: concurrent stale checks may each fetch; the last swap wins.
    - Fetch failures keep the stale snapshot and are logged.

Dependencies:
    - fieldstats.database
    - fieldstats.config
    - fieldstats.utils
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Awaitable, Callable

import fieldstats.database as _db
from fieldstats.config import settings
from fieldstats.utils import ensure_utc, utcnow

logger = logging.getLogger("fieldstats.league_priority")

DEFAULT_PRIORITY_SCORE = 20
FEATURED_WEIGHT = 200
TIER_WEIGHTS: dict[str, int] = {"tier1": 100, "tier2": 80, "tier3": 60, "tier4": 40}

_LEAGUE_PROJECTION = {
    "_id": 1,
    "name": 1,
    "logo_path": 1,
    "country_id": 1,
    "priority": 1,
    "tier": 1,
    "featured": 1,
}

LeagueFetcher = Callable[[], Awaitable[list[dict]]]


def tier_weight(tier: Any) -> int:
    return TIER_WEIGHTS.get(str(tier or "").strip().lower(), DEFAULT_PRIORITY_SCORE)


def _manual_priority(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def compute_priority_score(league: Mapping | None) -> int:
    """``(featured ? 200 : 0) + priority + tier weight``; unknown leagues score 20."""
    if not league:
        return DEFAULT_PRIORITY_SCORE
    featured = FEATURED_WEIGHT if league.get("featured") else 0
    return featured + _manual_priority(league.get("priority")) + tier_weight(league.get("tier"))


@dataclass(frozen=True)
class LeaguePriorityEntry:
    id: Any
    name: str
    logo_path: str | None
    country_id: Any
    priority: int
    tier: str | None
    featured: bool
    computed_score: int
    cached_at: datetime

    @classmethod
    def from_doc(cls, doc: Mapping, cached_at: datetime) -> "LeaguePriorityEntry | None":
        league_id = doc.get("_id", doc.get("id"))
        if league_id is None:
            return None
        tier = doc.get("tier")
        return cls(
            id=league_id,
            name=str(doc.get("name") or ""),
            logo_path=doc.get("logo_path"),
            country_id=doc.get("country_id"),
            priority=_manual_priority(doc.get("priority")),
            tier=str(tier) if tier else None,
            featured=bool(doc.get("featured")),
            computed_score=compute_priority_score(doc),
            cached_at=cached_at,
        )


@dataclass(frozen=True)
class PrioritySnapshot:
    """One immutable generation of the league cache."""

    entries: Mapping[Any, LeaguePriorityEntry]
    cached_at: datetime | None = None

    def get_priority(self, league_id: Any) -> int:
        entry = self.entries.get(league_id)
        return entry.computed_score if entry else DEFAULT_PRIORITY_SCORE

    def get_league(self, league_id: Any) -> LeaguePriorityEntry | None:
        return self.entries.get(league_id)

    def featured_league_ids(self) -> list[Any]:
        return [league_id for league_id, entry in self.entries.items() if entry.featured]

    def featured_leagues(self, limit: int) -> list[LeaguePriorityEntry]:
        featured = [entry for entry in self.entries.values() if entry.featured]
        featured.sort(key=lambda entry: entry.priority, reverse=True)
        return featured[:limit]

    def leagues_matching_name(self, term: str) -> list[Any]:
        needle = (term or "").strip().lower()
        if not needle:
            return []
        return [league_id for league_id, entry in self.entries.items() if needle in entry.name.lower()]

    def priority_branches(self) -> list[dict[str, Any]]:
        """``$switch`` branches mapping league_id to its cached score."""
        return [
            {"case": {"$eq": ["$league_id", league_id]}, "then": entry.computed_score}
            for league_id, entry in self.entries.items()
        ]


_EMPTY_SNAPSHOT = PrioritySnapshot(entries=MappingProxyType({}), cached_at=None)


async def fetch_league_metadata() -> list[dict]:
    return await _db.db.leagues.find({}, _LEAGUE_PROJECTION).to_list(length=10_000)


class LeaguePriorityCache:
    """League metadata + priority scores, refreshed explicitly on a TTL."""

    def __init__(
        self,
        fetch_leagues: LeagueFetcher | None = None,
        *,
        ttl_seconds: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._fetch_leagues = fetch_leagues or fetch_league_metadata
        ttl = settings.LEAGUE_PRIORITY_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.ttl = timedelta(seconds=ttl)
        self._clock = clock
        self._snapshot: PrioritySnapshot = _EMPTY_SNAPSHOT

    @property
    def snapshot(self) -> PrioritySnapshot:
        return self._snapshot

    @property
    def cached_at(self) -> datetime | None:
        return self._snapshot.cached_at

    def is_stale(self, now: datetime | None = None) -> bool:
        cached_at = self._snapshot.cached_at
        if cached_at is None:
            return True
        now = ensure_utc(now or self._clock())
        return now - cached_at >= self.ttl

    async def refresh_if_stale(self, now: datetime | None = None) -> bool:
        """Reload the league set when the TTL has expired. Returns True on swap."""
        now = ensure_utc(now or self._clock())
        if not self.is_stale(now):
            return False

        try:
            docs = await self._fetch_leagues()
        except Exception:
            logger.exception(
                "Failed to load league priorities; keeping %d cached leagues",
                len(self._snapshot.entries),
            )
            return False

        entries: dict[Any, LeaguePriorityEntry] = {}
        for doc in docs or []:
            if not isinstance(doc, Mapping):
                continue
            entry = LeaguePriorityEntry.from_doc(doc, now)
            if entry is not None:
                entries[entry.id] = entry

        self._snapshot = PrioritySnapshot(entries=MappingProxyType(entries), cached_at=now)
        logger.info("Loaded %d leagues into priority cache", len(entries))
        return True

    def get_priority(self, league_id: Any) -> int:
        return self._snapshot.get_priority(league_id)

    def get_league(self, league_id: Any) -> LeaguePriorityEntry | None:
        return self._snapshot.get_league(league_id)

    def featured_league_ids(self) -> list[Any]:
        return self._snapshot.featured_league_ids()

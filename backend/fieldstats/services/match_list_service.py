"""
backend/fieldstats/services/match_list_service.py

Purpose:
    Priority-ranked match listing. Builds a MongoDB filter and aggregation
    pipeline from list parameters, scores matches by cached league priority,
    shapes match summaries, and builds pagination links.

Notes:
    - League names live only in the priority cache, so a free-text search is
      applied twice: at query level (participant names, plus the IDs of cached
      leagues whose name matches) and again after the fetch for rows whose
      league is cached. A page can therefore hold fewer than ``limit`` rows.
    - Priority-cache refresh failures never fail a request; query failures do.

Dependencies:
    - fieldstats.database
    - fieldstats.services.league_priority_cache
    - fieldstats.config
    - fieldstats.utils
"""

from __future__ import annotations

import logging
import math
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import fieldstats.database as _db
from fieldstats.config import settings
from fieldstats.services.league_priority_cache import (
    DEFAULT_PRIORITY_SCORE,
    LeaguePriorityCache,
    LeaguePriorityEntry,
    PrioritySnapshot,
)
from fieldstats.utils import as_utc, ensure_utc, local_day_bounds, parse_utc, utcnow

logger = logging.getLogger("fieldstats.matches")

LIVE_STATES = ["LIVE", "HT", "inplay"]
UPCOMING_STATES = ["NS", "not_started"]
FINISHED_STATES = ["FT", "finished"]
PRIORITY_SORTS = ("priority", "relevance")
DEFAULT_SORT = "priority"
RECENT_WINDOW = timedelta(days=7)

_MATCH_PROJECTION = {
    "_id": 1,
    "league_id": 1,
    "starting_at": 1,
    "participants": 1,
    "scores": 1,
    "venue": 1,
    "state": 1,
    "lineups": {"$size": {"$ifNull": ["$lineups", []]}},
    "events": {"$size": {"$ifNull": ["$events", []]}},
}


@dataclass
class MatchListQuery:
    page: int = 1
    limit: int = settings.MATCHES_DEFAULT_LIMIT
    date_from: str | None = None
    date_to: str | None = None
    leagues: list[int] = field(default_factory=list)
    teams: list[int] = field(default_factory=list)
    status: list[str] = field(default_factory=list)
    view: str | None = None
    sort: str = DEFAULT_SORT
    search: str | None = None
    include_featured: bool = True
    only_featured: bool = False

    def __post_init__(self) -> None:
        self.page = max(1, int(self.page or 1))
        self.limit = min(max(1, int(self.limit or settings.MATCHES_DEFAULT_LIMIT)), settings.MATCHES_MAX_LIMIT)
        self.sort = (self.sort or DEFAULT_SORT).strip().lower()
        self.search = (self.search or "").strip() or None
        self.view = (self.view or "").strip().lower() or None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


# ---------------------------------------------------------------------------
# Filters + pipeline
# ---------------------------------------------------------------------------


def build_date_filter(
    view: str | None,
    date_from: str | None,
    date_to: str | None,
    now: datetime,
) -> dict[str, Any]:
    """Kickoff/state predicate for a named view, else an explicit date range."""
    if view == "today":
        start, end = local_day_bounds(now)
        return {"starting_at": {"$gte": start, "$lt": end}}
    if view == "live":
        return {"state.state": {"$in": list(LIVE_STATES)}}
    if view == "upcoming":
        return {
            "starting_at": {"$gt": now},
            "state.state": {"$in": list(UPCOMING_STATES)},
        }
    if view == "recent":
        return {
            "starting_at": {"$gte": now - RECENT_WINDOW, "$lte": now},
            "state.state": {"$in": list(FINISHED_STATES)},
        }

    bounds: dict[str, datetime] = {}
    if date_from:
        bounds["$gte"] = parse_utc(date_from)
    if date_to:
        bounds["$lte"] = parse_utc(date_to)
    return {"starting_at": bounds} if bounds else {}


def build_match_filter(
    query: MatchListQuery,
    snapshot: PrioritySnapshot,
    now: datetime,
) -> dict[str, Any] | None:
    """Build the ``$match`` predicate; ``None`` means the result is known empty."""
    filters = build_date_filter(query.view, query.date_from, query.date_to, now)

    if query.leagues:
        filters["league_id"] = {"$in": list(query.leagues)}

    if query.only_featured:
        featured = snapshot.featured_league_ids()
        if query.leagues:
            allowed = set(query.leagues)
            featured = [league_id for league_id in featured if league_id in allowed]
        if not featured:
            return None
        filters["league_id"] = {"$in": featured}

    if query.teams:
        filters["participants.id"] = {"$in": list(query.teams)}

    if query.status:
        view_states = filters.get("state.state", {}).get("$in")
        states = list(query.status)
        if view_states is not None:
            states = [state for state in states if state in view_states]
        filters["state.state"] = {"$in": states}

    if query.search:
        name_clause = {"participants.name": {"$regex": re.escape(query.search), "$options": "i"}}
        league_ids = snapshot.leagues_matching_name(query.search)
        if league_ids:
            filters["$or"] = [name_clause, {"league_id": {"$in": league_ids}}]
        else:
            filters.update(name_clause)

    return filters


def build_priority_pipeline(
    filters: dict[str, Any],
    sort: str,
    skip: int,
    limit: int,
    snapshot: PrioritySnapshot,
) -> list[dict[str, Any]]:
    pipeline: list[dict[str, Any]] = []
    if filters:
        pipeline.append({"$match": filters})

    if sort in PRIORITY_SORTS:
        branches = snapshot.priority_branches()
        if branches:
            score = {"$switch": {"branches": branches, "default": DEFAULT_PRIORITY_SCORE}}
        else:
            # $switch rejects an empty branch list.
            score = {"$literal": DEFAULT_PRIORITY_SCORE}
        pipeline.append({"$addFields": {"league_priority_score": score}})
        pipeline.append({"$sort": {"league_priority_score": -1, "starting_at": 1}})
    else:
        pipeline.append({"$sort": {"starting_at": 1 if sort == "time" else -1}})

    pipeline.append({"$skip": skip})
    pipeline.append({"$limit": limit})
    pipeline.append({"$project": dict(_MATCH_PROJECTION)})
    return pipeline


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------


def get_final_score(scores: Any, participant_id: Any) -> int | None:
    """Goals for one side: CURRENT record first, then 2ND_HALF, else None."""
    if not isinstance(scores, list):
        return None
    for description in ("CURRENT", "2ND_HALF"):
        for score in scores:
            if not isinstance(score, Mapping):
                continue
            if score.get("participant_id") == participant_id and score.get("description") == description:
                goals = score.get("score", {}).get("goals") if isinstance(score.get("score"), Mapping) else None
                return goals
    return None


def _participant(participants: Any, location: str) -> Mapping | None:
    if not isinstance(participants, list):
        return None
    for participant in participants:
        if not isinstance(participant, Mapping):
            continue
        meta = participant.get("meta")
        if isinstance(meta, Mapping) and meta.get("location") == location:
            return participant
    return None


def _team_summary(participant: Mapping | None) -> dict[str, Any]:
    if not participant:
        return {"id": 0, "name": "TBD"}
    return {
        "id": participant.get("id") or 0,
        "name": participant.get("name") or "TBD",
        "short_code": participant.get("short_code"),
        "image_path": participant.get("image_path"),
    }


def _league_summary(league_id: Any, entry: LeaguePriorityEntry | None) -> dict[str, Any]:
    if entry is None:
        return {
            "id": league_id,
            "name": "Unknown League",
            "image_path": None,
            "country_id": None,
            "priority": 0,
            "priority_score": DEFAULT_PRIORITY_SCORE,
            "tier": None,
            "featured": False,
        }
    return {
        "id": entry.id,
        "name": entry.name or "Unknown League",
        "image_path": entry.logo_path,
        "country_id": entry.country_id,
        "priority": entry.priority,
        "priority_score": entry.computed_score,
        "tier": entry.tier,
        "featured": entry.featured,
    }


def transform_match(match: Mapping, snapshot: PrioritySnapshot) -> dict[str, Any]:
    """Shape one aggregated match document into a MatchSummary payload."""
    participants = match.get("participants")
    home = _participant(participants, "home")
    away = _participant(participants, "away")
    scores = match.get("scores") or []
    venue = match.get("venue")

    return {
        "id": match.get("_id", match.get("id")),
        "starting_at": as_utc(match.get("starting_at")),
        "state": match.get("state") or {"short_name": "UNKNOWN", "state": "unknown"},
        "home_team": _team_summary(home),
        "away_team": _team_summary(away),
        "score": {
            "home": get_final_score(scores, home.get("id")) if home else None,
            "away": get_final_score(scores, away.get("id")) if away else None,
        },
        "league": _league_summary(match.get("league_id"), snapshot.get_league(match.get("league_id"))),
        "venue": {"name": venue.get("name"), "city": venue.get("city_name")} if isinstance(venue, Mapping) else None,
        "has_lineups": (match.get("lineups") or 0) > 0,
        "has_events": (match.get("events") or 0) > 0,
    }


def matches_search(summary: Mapping, term: str) -> bool:
    needle = term.lower()
    names = [
        summary["home_team"].get("name"),
        summary["away_team"].get("name"),
        summary["league"].get("name"),
    ]
    return any(needle in str(name or "").lower() for name in names)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def build_query_params(query: MatchListQuery, page: int) -> dict[str, str]:
    """Active list parameters with ``page`` replaced; defaults are omitted."""
    params: dict[str, str] = {"page": str(page)}
    if query.limit != settings.MATCHES_DEFAULT_LIMIT:
        params["limit"] = str(query.limit)
    if query.date_from:
        params["date_from"] = query.date_from
    if query.date_to:
        params["date_to"] = query.date_to
    if query.leagues:
        params["leagues"] = ",".join(str(v) for v in query.leagues)
    if query.teams:
        params["teams"] = ",".join(str(v) for v in query.teams)
    if query.status:
        params["status"] = ",".join(query.status)
    if query.view:
        params["view"] = query.view
    if query.sort != DEFAULT_SORT:
        params["sort"] = query.sort
    if query.search:
        params["search"] = query.search
    if not query.include_featured:
        params["include_featured"] = "false"
    if query.only_featured:
        params["only_featured"] = "true"
    return params


def build_page_url(base_path: str, query: MatchListQuery, page: int) -> str:
    return f"{base_path}?{urlencode(build_query_params(query, page), safe=',')}"


def build_pagination_urls(query: MatchListQuery, base_path: str, total_pages: int) -> dict[str, str | None]:
    page = query.page
    return {
        "nextPageUrl": build_page_url(base_path, query, page + 1) if page < total_pages else None,
        "previousPageUrl": build_page_url(base_path, query, page - 1) if page > 1 else None,
        "firstPageUrl": build_page_url(base_path, query, 1),
        "lastPageUrl": build_page_url(base_path, query, max(total_pages, 1)),
    }


def build_pagination(query: MatchListQuery, total: int, base_path: str) -> dict[str, Any]:
    total_pages = math.ceil(total / query.limit) if total else 0
    page = query.page
    return {
        "page": page,
        "limit": query.limit,
        "total": total,
        "totalPages": total_pages,
        "hasMorePages": page < total_pages,
        "hasPreviousPages": page > 1,
        "nextPage": page + 1 if page < total_pages else None,
        "previousPage": page - 1 if page > 1 else None,
        **build_pagination_urls(query, base_path, total_pages),
    }


def build_filters_applied(query: MatchListQuery) -> dict[str, Any]:
    applied: dict[str, Any] = {}
    if query.date_from or query.date_to:
        applied["date_range"] = {"from": query.date_from or "", "to": query.date_to or ""}
    if query.leagues:
        applied["leagues"] = list(query.leagues)
    if query.teams:
        applied["teams"] = list(query.teams)
    if query.status:
        applied["status"] = list(query.status)
    if query.view:
        applied["view"] = query.view
    return applied


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class MatchQueryEngine:
    """Match list queries ranked by a league priority cache it owns."""

    _instance: "MatchQueryEngine | None" = None

    def __init__(self, cache: LeaguePriorityCache | None = None):
        self.cache = cache or LeaguePriorityCache()

    @classmethod
    def get(cls) -> "MatchQueryEngine":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _featured_leagues(self, snapshot: PrioritySnapshot, docs: list[dict]) -> list[dict[str, Any]]:
        featured = []
        for entry in snapshot.featured_leagues(settings.FEATURED_LEAGUES_LIMIT):
            featured.append({
                "id": entry.id,
                "name": entry.name,
                "image_path": entry.logo_path,
                "match_count": sum(1 for doc in docs if doc["league"]["id"] == entry.id),
                "priority": entry.priority,
            })
        return featured

    def _response(
        self,
        query: MatchListQuery,
        docs: list[dict],
        total: int,
        base_path: str,
        snapshot: PrioritySnapshot,
    ) -> dict[str, Any]:
        response: dict[str, Any] = {
            "docs": docs,
            "meta": {"pagination": build_pagination(query, total, base_path)},
            "filters_applied": build_filters_applied(query),
        }
        if query.include_featured:
            response["featured_leagues"] = self._featured_leagues(snapshot, docs)
        return response

    async def list_matches(
        self,
        query: MatchListQuery,
        base_path: str = "/api/v1/matches",
        now: datetime | None = None,
    ) -> dict[str, Any]:
        started = time.perf_counter()
        now = ensure_utc(now or utcnow())

        await self.cache.refresh_if_stale(now)
        snapshot = self.cache.snapshot

        filters = build_match_filter(query, snapshot, now)
        if filters is None:
            logger.debug("Match list short-circuit: no featured leagues match the request")
            return self._response(query, [], 0, base_path, snapshot)

        total = await _db.db.matches.count_documents(filters)
        pipeline = build_priority_pipeline(filters, query.sort, query.skip, query.limit, snapshot)
        raw = await _db.db.matches.aggregate(pipeline).to_list(length=query.limit)

        docs: list[dict[str, Any]] = []
        for match in raw:
            summary = transform_match(match, snapshot)
            # Rows from uncached leagues already matched on participant names in the query.
            league_known = snapshot.get_league(match.get("league_id")) is not None
            if query.search and league_known and not matches_search(summary, query.search):
                continue
            docs.append(summary)

        logger.debug(
            "Match list: total=%d returned=%d sort=%s in %.1fms",
            total, len(docs), query.sort, (time.perf_counter() - started) * 1000,
        )
        return self._response(query, docs, total, base_path, snapshot)

"""
backend/fieldstats/models/matches.py

Purpose:
    Response models for the priority-ranked match list.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MatchState(BaseModel):
    model_config = ConfigDict(extra="allow")

    short_name: str | None = None
    state: str | None = None


class TeamSummary(BaseModel):
    id: Any = 0
    name: str = "TBD"
    short_code: str | None = None
    image_path: str | None = None


class ScoreSummary(BaseModel):
    home: int | None = None
    away: int | None = None


class LeagueSummary(BaseModel):
    id: Any = None
    name: str = "Unknown League"
    image_path: str | None = None
    country_id: Any = None
    priority: int = 0                     # manual priority
    priority_score: int = 20              # featured + priority + tier weight
    tier: str | None = None
    featured: bool = False


class VenueSummary(BaseModel):
    name: str | None = None
    city: str | None = None


class MatchSummary(BaseModel):
    id: Any
    starting_at: datetime | str | None = None
    state: MatchState
    home_team: TeamSummary
    away_team: TeamSummary
    score: ScoreSummary
    league: LeagueSummary
    venue: VenueSummary | None = None
    has_lineups: bool = False
    has_events: bool = False


class FeaturedLeague(BaseModel):
    id: Any
    name: str
    image_path: str | None = None
    match_count: int = 0
    priority: int = 0


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasMorePages: bool
    hasPreviousPages: bool
    nextPage: int | None = None
    previousPage: int | None = None
    nextPageUrl: str | None = None
    previousPageUrl: str | None = None
    firstPageUrl: str
    lastPageUrl: str


class PaginationMeta(BaseModel):
    pagination: Pagination


class DateRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field("", alias="from")
    to: str = ""


class FiltersApplied(BaseModel):
    date_range: DateRange | None = None
    leagues: list[int] | None = None
    teams: list[int] | None = None
    status: list[str] | None = None
    view: str | None = None


class MatchListResponse(BaseModel):
    docs: list[MatchSummary]
    meta: PaginationMeta
    featured_leagues: list[FeaturedLeague] | None = None
    filters_applied: FiltersApplied | None = None

"""
backend/fieldstats/models/standings.py

Purpose:
    Public standings contract returned by team and league table endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class QualificationStatus(BaseModel):
    type: str
    name: str
    color: str | None = None


class StandingRow(BaseModel):
    position: int
    team_id: int = 0
    team_name: str = ""
    team_logo_path: str | None = None
    points: int | float = 0
    played: int | float = 0
    won: int | float = 0
    draw: int | float = 0
    lost: int | float = 0
    goals_for: int | float = 0
    goals_against: int | float = 0
    goal_difference: int | float = 0
    form: str | None = None               # oldest -> newest, max 5 chars
    current_streak: str | None = None     # "W3", "L1"
    clean_sheets: int | float | None = None
    failed_to_score: int | float | None = None
    qualification_status: QualificationStatus | None = None


class StandingTable(BaseModel):
    id: int
    name: str
    type: str
    standings: list[StandingRow] = Field(default_factory=list)


class StandingsData(BaseModel):
    id: int
    name: str
    type: str
    league_id: int
    season_id: int
    stage_id: int | None = None
    stage_name: str | None = None
    standings: list[StandingTable] = Field(default_factory=list)

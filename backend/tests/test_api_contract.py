"""
backend/tests/test_api_contract.py

Purpose:
    HTTP contract for the public match list, team/league table and health
    endpoints, including error mapping done by the application.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

sys.path.insert(0, "backend")

from fieldstats import main
from fieldstats.routers import teams as teams_router
from fieldstats.services import match_list_service, standings_service
from fieldstats.services.league_priority_cache import LeaguePriorityCache
from fieldstats.services.match_list_service import MatchQueryEngine

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

LEAGUES = [
    {"_id": 8, "name": "Premier League", "featured": True, "priority": 50, "tier": "tier1", "logo_path": "pl.png"},
    {"_id": 82, "name": "Bundesliga", "featured": True, "priority": 60, "tier": "tier1"},
]


class _Cursor:
    def __init__(self, docs: list[dict]):
        self._docs = list(docs)

    async def to_list(self, length: int | None = None):
        return self._docs[:length] if length is not None else list(self._docs)


class _Collection:
    def __init__(self, docs: list[dict]):
        self.docs = list(docs)

    async def find_one(self, query: dict, projection: dict | None = None):
        for row in self.docs:
            if all(row.get(k) == v for k, v in query.items()):
                return dict(row)
        return None

    async def count_documents(self, query: dict):
        return len(self.docs)

    def aggregate(self, pipeline: list[dict]):
        return _Cursor(self.docs)


class _Database(SimpleNamespace):
    async def command(self, name: str):
        if getattr(self, "down", False):
            raise ServerSelectionTimeoutError("no servers")
        return {"ok": 1.0}


@pytest.fixture
def client(monkeypatch):
    async def fetch():
        return [dict(doc) for doc in LEAGUES]

    engine = MatchQueryEngine(LeaguePriorityCache(fetch, ttl_seconds=300, clock=lambda: NOW))
    monkeypatch.setattr(MatchQueryEngine, "_instance", engine)

    fake_db = _Database(
        matches=_Collection([
            {
                "_id": 1001,
                "league_id": 8,
                "starting_at": datetime(2026, 3, 1, 15, 0),
                "state": {"short_name": "NS", "state": "NS"},
                "participants": [
                    {"id": 1, "name": "Arsenal", "meta": {"location": "home"}},
                    {"id": 2, "name": "Chelsea", "meta": {"location": "away"}},
                ],
                "scores": [],
                "lineups": 0,
                "events": 3,
            }
        ]),
        teams=_Collection([]),
        leagues=_Collection([{"_id": 82, "name": "Bundesliga"}]),
        leaguesstandings=_Collection([]),
    )
    monkeypatch.setattr(main._db, "db", fake_db, raising=False)
    monkeypatch.setattr(match_list_service._db, "db", fake_db, raising=False)
    monkeypatch.setattr(standings_service._db, "db", fake_db, raising=False)
    return TestClient(main.app)


def test_match_list_contract(client):
    res = client.get("/api/v1/matches", params={"leagues": "8,abc", "limit": 5})

    assert res.status_code == 200
    assert res.headers["cache-control"] == "public, max-age=60"
    assert res.headers.get("x-request-id")
    body = res.json()
    doc = body["docs"][0]
    assert doc["home_team"]["name"] == "Arsenal"
    assert doc["league"]["priority_score"] == 350
    assert doc["has_events"] is True
    assert body["filters_applied"]["leagues"] == [8]
    assert body["meta"]["pagination"]["firstPageUrl"] == "/api/v1/matches?page=1&limit=5&leagues=8"
    assert [f["id"] for f in body["featured_leagues"]] == [82, 8]


def test_match_list_rejects_bad_dates(client):
    res = client.get("/api/v1/matches", params={"date_from": "yesterday-ish"})
    assert res.status_code == 400
    assert res.json() == {"detail": "Invalid date range."}


def test_validation_errors_are_flattened(client):
    res = client.get("/api/v1/matches", params={"page": 0})
    assert res.status_code == 422
    body = res.json()
    assert body["detail"] == "Validation error."
    assert body["errors"][0]["field"] == "page"


def test_featured_leagues_endpoint(client):
    res = client.get("/api/v1/leagues/featured")
    assert res.status_code == 200
    assert [(row["id"], row["priority"]) for row in res.json()] == [(82, 60), (8, 50)]


def test_team_table_errors(client):
    assert client.get("/api/v1/teams/abc/table").status_code == 400
    assert client.get("/api/v1/teams/42/table").status_code == 404


def test_league_table_errors(client):
    assert client.get("/api/v1/leagues/0/table").status_code == 400
    assert client.get("/api/v1/leagues/999/table").status_code == 404
    # League exists but has no standings document.
    assert client.get("/api/v1/leagues/82/table").status_code == 404


def test_database_outage_maps_to_503(client, monkeypatch):
    async def down(team_id):
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(teams_router, "get_team_table", down)
    res = client.get("/api/v1/teams/42/table")
    assert res.status_code == 503
    assert res.json() == {"detail": "Service temporarily unavailable."}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "db": "connected"}
    main._db.db.down = True
    assert client.get("/health").json() == {"status": "degraded", "db": "disconnected"}


def test_incoming_request_id_is_echoed(client):
    res = client.get("/health", headers={"X-Request-ID": "edge-7f3a"})
    assert res.headers["x-request-id"] == "edge-7f3a"

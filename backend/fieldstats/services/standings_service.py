"""
backend/fieldstats/services/standings_service.py

Purpose:
    Standings table normalization for team and league table views. Raw season
    payloads are classified into one shape variant up front, then funneled
    through a single row builder backed by the details reconciler.

Notes:
    - Rows without a resolvable team identifier are kept with team_id 0.
    - Seasons that produce no rows are omitted from the result map.

Dependencies:
    - fieldstats.database
    - fieldstats.services.standings_reconciler
    - fieldstats.config_standings
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

import fieldstats.database as _db
from fieldstats.config_standings import (
    LEAGUE_QUALIFICATION_RULES,
    MAX_FORM_LENGTH,
    RULE_TYPE_ID_MAP,
)
from fieldstats.services.standings_reconciler import (
    RECORD_FIELDS,
    as_number,
    current_streak,
    format_form,
    reconcile_standing_details,
)
from fieldstats.utils import parse_positive_id

logger = logging.getLogger("fieldstats.standings")

_ROW_KEYS = frozenset({
    "position",
    "points",
    "details",
    "participant_id",
    "team_id",
    "participant",
    "team",
    "team_name",
    "overall",
    "form",
    "group_id",
}) | RECORD_FIELDS


# ---------------------------------------------------------------------------
# Raw shape variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FlatRowsShape:
    """Sportmonks v3: a list of standing rows keyed by participant_id."""

    rows: list[Any]
    header: Mapping = field(default_factory=dict)


@dataclass(frozen=True)
class NestedTablesShape:
    """Stage payload ``{id, name, standings: {data: [tables]}}``."""

    tables: list[Mapping]
    header: Mapping = field(default_factory=dict)


@dataclass(frozen=True)
class UnknownShape:
    raw: Any


StandingsShape = Union[FlatRowsShape, NestedTablesShape, UnknownShape]


def _unwrap_list(raw: Any) -> list | None:
    if isinstance(raw, Mapping) and isinstance(raw.get("data"), list):
        return raw["data"]
    if isinstance(raw, list):
        return raw
    return None


def _looks_like_table(entry: Any) -> bool:
    return isinstance(entry, Mapping) and _unwrap_list(entry.get("standings")) is not None


def _looks_like_row(entry: Any) -> bool:
    return isinstance(entry, Mapping) and any(key in entry for key in _ROW_KEYS)


def _classify_entries(entries: list, header: Mapping) -> StandingsShape:
    if any(_looks_like_table(entry) for entry in entries):
        return NestedTablesShape(
            tables=[entry for entry in entries if _looks_like_table(entry)],
            header=header,
        )
    return FlatRowsShape(rows=entries, header=header)


def detect_standings_shape(payload: Any) -> StandingsShape:
    """Classify one season's raw standings payload."""
    if isinstance(payload, list):
        return _classify_entries(payload, {})
    if isinstance(payload, Mapping):
        inner = _unwrap_list(payload.get("standings"))
        if inner is not None:
            return _classify_entries(inner, payload)
        data = payload.get("data")
        if isinstance(data, list):
            return _classify_entries(data, payload)
    return UnknownShape(raw=payload)


# ---------------------------------------------------------------------------
# Row builder
# ---------------------------------------------------------------------------


def _as_int(value: Any) -> int | None:
    number = as_number(value)
    if number is None:
        return None
    return int(number)


def _first_int(*values: Any) -> int | None:
    for value in values:
        number = _as_int(value)
        if number:
            return number
    return None


def _first_str(*values: Any) -> str | None:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _mapping(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def resolve_qualification_status(
    raw: Mapping,
    league_id: int | None,
    position: int,
) -> dict[str, Any] | None:
    """Qualification badge from the row, its Sportmonks rule, or league position rules."""
    existing = raw.get("qualification_status")
    if isinstance(existing, Mapping) and existing.get("type"):
        return {
            "type": str(existing["type"]),
            "name": str(existing.get("name") or ""),
            "color": existing.get("color"),
        }

    rule = _mapping(raw.get("rule"))
    badge = RULE_TYPE_ID_MAP.get(_as_int(rule.get("type_id")) or 0)
    if badge:
        return dict(badge)

    if league_id and position > 0:
        for badge, positions in LEAGUE_QUALIFICATION_RULES.get(league_id, []):
            if position in positions:
                return dict(badge)
    return None


def _row_metrics(raw: Mapping) -> dict[str, Any]:
    details = _unwrap_list(raw.get("details"))
    if details:
        return reconcile_standing_details(details)
    overall = raw.get("overall")
    if isinstance(overall, Mapping):
        return reconcile_standing_details(overall)
    return reconcile_standing_details(raw)


def build_standing_row(raw: Mapping, league_id: int | None = None) -> dict[str, Any]:
    """Build one canonical StandingRow from any supported raw row."""
    participant = _mapping(raw.get("participant")) or _mapping(raw.get("team"))
    position = _as_int(raw.get("position")) or 0
    metrics = _row_metrics(raw)

    form = format_form(raw.get("form"))
    if form:
        form = form[-MAX_FORM_LENGTH:]
    streak = _first_str(raw.get("current_streak")) or current_streak(form)

    return {
        "position": position,
        "team_id": _first_int(raw.get("participant_id"), raw.get("team_id"), participant.get("id")) or 0,
        "team_name": _first_str(raw.get("team_name"), participant.get("name")) or "",
        "team_logo_path": _first_str(
            raw.get("team_logo_path"),
            participant.get("image_path"),
            participant.get("logo_path"),
        ),
        "points": as_number(raw.get("points")) or 0,
        "played": metrics["played"],
        "won": metrics["won"],
        "draw": metrics["draw"],
        "lost": metrics["lost"],
        "goals_for": metrics["goals_for"],
        "goals_against": metrics["goals_against"],
        "goal_difference": metrics["goals_for"] - metrics["goals_against"],
        "form": form,
        "current_streak": streak,
        "clean_sheets": metrics["clean_sheets"],
        "failed_to_score": metrics["failed_to_score"],
        "qualification_status": resolve_qualification_status(raw, league_id, position),
    }


def _sorted_rows(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(rows, key=lambda row: (row["position"] <= 0, row["position"]))


# ---------------------------------------------------------------------------
# Shape normalizers
# ---------------------------------------------------------------------------


def _standings_header(
    header: Mapping,
    first_row: Mapping,
    season_key: str,
    league_id: int | None,
) -> dict[str, Any]:
    stage = _mapping(first_row.get("stage"))
    league = _mapping(first_row.get("league"))
    season_id = _first_int(header.get("season_id"), first_row.get("season_id"), season_key) or 0
    return {
        "id": _first_int(header.get("id"), season_id) or 0,
        "name": _first_str(header.get("name"), league.get("name")) or f"Season {season_key}",
        "type": _first_str(header.get("type")) or "league",
        "league_id": _first_int(header.get("league_id"), first_row.get("league_id"), league_id) or 0,
        "season_id": season_id,
        "stage_id": _first_int(header.get("stage_id"), first_row.get("stage_id")),
        "stage_name": _first_str(header.get("stage_name"), stage.get("name")),
    }


def _group_key(row: Mapping) -> int | None:
    group_id = row.get("group_id")
    if isinstance(group_id, Mapping):
        group_id = group_id.get("id")
    return _as_int(group_id)


def _normalize_flat(shape: FlatRowsShape, season_key: str, league_id: int | None) -> dict[str, Any] | None:
    rows = [row for row in shape.rows if _looks_like_row(row)]
    if not rows:
        return None

    effective_league = _first_int(shape.header.get("league_id"), rows[0].get("league_id"), league_id)
    groups: dict[int | None, list[Mapping]] = {}
    for row in rows:
        groups.setdefault(_group_key(row), []).append(row)

    tables = []
    for group_id, group_rows in groups.items():
        group = _mapping(group_rows[0].get("group"))
        if group_id is None:
            name, table_type = "Overall", "total"
        else:
            name, table_type = _first_str(group.get("name")) or f"Group {group_id}", "group"
        tables.append({
            "id": _as_int(group_id) or 0,
            "name": name,
            "type": table_type,
            "standings": _sorted_rows([build_standing_row(r, effective_league) for r in group_rows]),
        })

    data = _standings_header(shape.header, rows[0], season_key, league_id)
    data["standings"] = tables
    return data


def _normalize_nested(shape: NestedTablesShape, season_key: str, league_id: int | None) -> dict[str, Any] | None:
    effective_league = _first_int(shape.header.get("league_id"), league_id)
    tables = []
    first_row: Mapping = {}
    for table in shape.tables:
        rows = [row for row in _unwrap_list(table.get("standings")) or [] if _looks_like_row(row)]
        if not rows:
            continue
        first_row = first_row or rows[0]
        tables.append({
            "id": _as_int(table.get("id")) or 0,
            "name": _first_str(table.get("name"), shape.header.get("name")) or "Overall",
            "type": _first_str(table.get("type")) or "total",
            "standings": _sorted_rows([build_standing_row(r, effective_league) for r in rows]),
        })
    if not tables:
        return None

    data = _standings_header(shape.header, first_row, season_key, league_id)
    data["standings"] = tables
    return data


def normalize_season(payload: Any, season_key: str, league_id: int | None = None) -> dict[str, Any] | None:
    shape = detect_standings_shape(payload)
    if isinstance(shape, FlatRowsShape):
        return _normalize_flat(shape, season_key, league_id)
    if isinstance(shape, NestedTablesShape):
        return _normalize_nested(shape, season_key, league_id)
    logger.debug("Unrecognized standings payload for season %s", season_key)
    return None


def _season_payloads(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        return {}
    container = raw.get("standings")
    seasons = container if isinstance(container, Mapping) and "data" not in container else raw
    return {str(key).strip(): value for key, value in seasons.items() if str(key).strip().isdigit()}


def transform_standings_table(raw: Any, league_id: int | None = None) -> dict[str, dict[str, Any]]:
    """Normalize a team/league standings document into ``{season_id: StandingsData}``."""
    result: dict[str, dict[str, Any]] = {}
    for season_key, payload in _season_payloads(raw).items():
        data = normalize_season(payload, season_key, league_id)
        if data is not None:
            result[season_key] = data
    return result


# ---------------------------------------------------------------------------
# Data access
# ---------------------------------------------------------------------------


async def get_team_table(team_id: str | int) -> dict[str, dict[str, Any]]:
    """Standings for every season stored on a team document."""
    numeric_id = parse_positive_id(team_id, "team ID")
    team = await _db.db.teams.find_one({"_id": numeric_id}, {"_id": 1, "name": 1, "standings": 1})
    if not team:
        raise LookupError(f"No team found with ID: {numeric_id}")
    return transform_standings_table(team)


def _select_season(standings: Mapping, league: Mapping, season_id: str | int | None) -> str:
    available = sorted((str(k) for k in standings.keys() if str(k).isdigit()), key=int)
    if season_id is not None:
        target = str(parse_positive_id(season_id, "season ID"))
        if target not in standings:
            raise LookupError(f"Season {target} not found. Available seasons: {', '.join(available)}")
        return target

    current = _first_int(_mapping(league.get("current_season")).get("id"), league.get("current_season_id"))
    if current:
        target = str(current)
        if target not in standings:
            raise LookupError(f"No standings data available for season {target}")
        return target
    if not available:
        raise LookupError("No season available for this league")
    return available[-1]


async def get_league_table(league_id: str | int, season_id: str | int | None = None) -> dict[str, dict[str, Any]]:
    """Standings for one league season (explicit, current, or most recent)."""
    numeric_id = parse_positive_id(league_id, "league ID")
    league = await _db.db.leagues.find_one({"_id": numeric_id}, {"_id": 1, "name": 1, "current_season": 1})
    if not league:
        raise LookupError(f"No league found with ID: {numeric_id}")

    doc = await _db.db.leaguesstandings.find_one({"leagueId": numeric_id})
    standings = _mapping(doc.get("standings")) if doc else {}
    if not standings:
        raise LookupError(f"No standings data available for league {numeric_id}")

    target = _select_season(standings, league, season_id)
    return transform_standings_table({target: standings[target]}, league_id=numeric_id)

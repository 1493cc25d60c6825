"""
backend/fieldstats/services/standings_reconciler.py

Purpose:
    Pure reconciliation of Sportmonks standing "details" arrays and form
    payloads into canonical played/won/draw/lost/goals records.

Notes:
    - Each metric is resolved by an explicit, ordered resolver chain:
      overall type ID -> alternate overall ID -> home+away sum ->
      alternate home+away sum -> name pattern. Arithmetic closure over
      played/won/draw/lost runs after every chain has been tried.
    - All functions are total. Malformed entries are skipped, never raised.

Dependencies:
    - fieldstats.config_standings
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from fieldstats.config_standings import (
    MAX_FORM_LENGTH,
    STANDING_DETAIL_NAME_PATTERNS,
    STANDING_DETAIL_TYPES as T,
)

CORE_METRICS: tuple[str, ...] = ("played", "won", "draw", "lost", "goals_for", "goals_against")
OPTIONAL_METRICS: tuple[str, ...] = ("clean_sheets", "failed_to_score")
ALL_METRICS: tuple[str, ...] = CORE_METRICS + OPTIONAL_METRICS
_RESULT_METRICS: tuple[str, ...] = ("won", "draw", "lost")

# Field aliases accepted when a row already carries reconciled numbers.
_RECORD_ALIASES: dict[str, tuple[str, ...]] = {
    "played": ("played", "games_played", "matches_played"),
    "won": ("won", "wins"),
    "draw": ("draw", "drawn", "draws"),
    "lost": ("lost", "losses"),
    "goals_for": ("goals_for", "goals_scored"),
    "goals_against": ("goals_against", "goals_conceded"),
    "clean_sheets": ("clean_sheets",),
    "failed_to_score": ("failed_to_score",),
}

# Every field name a pre-reconciled record may carry a metric under.
RECORD_FIELDS: frozenset[str] = frozenset(alias for aliases in _RECORD_ALIASES.values() for alias in aliases)

_HOME_RE = re.compile(r"\bhome\b")
_AWAY_RE = re.compile(r"\baway\b")
_NAME_SEPARATORS_RE = re.compile(r"[\s_\-]+")


def as_number(value: Any) -> int | float | None:
    """Coerce a raw statistic value to a number; ``None`` when not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        try:
            return as_number(float(value.strip()))
        except ValueError:
            return None
    if isinstance(value, Mapping):
        # Sportmonks occasionally nests totals: {"total": 12}
        return as_number(value.get("total"))
    return None


def _as_type_id(value: Any) -> int | None:
    number = as_number(value)
    if isinstance(number, int):
        return number
    return None


def _normalize_name(raw: Any) -> str:
    if not isinstance(raw, str):
        return ""
    return _NAME_SEPARATORS_RE.sub(" ", raw).strip().lower()


def _detail_name(entry: Mapping) -> str:
    type_info = entry.get("type")
    if isinstance(type_info, Mapping):
        nested = _normalize_name(type_info.get("name") or type_info.get("developer_name"))
        if nested:
            return nested
    return _normalize_name(entry.get("type_name") or entry.get("name"))


@dataclass(frozen=True)
class DetailIndex:
    """Lookup tables built once per details array."""

    by_id: dict[int, int | float] = field(default_factory=dict)
    by_name: dict[str, int | float] = field(default_factory=dict)


def _unwrap_list(raw: Any) -> list | None:
    if isinstance(raw, Mapping) and isinstance(raw.get("data"), list):
        raw = raw["data"]
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return None


def index_details(details: Any) -> DetailIndex:
    """Index detail entries by type ID and by normalized type name.

    Entries without a numeric ``value`` or an integer ``type_id`` are skipped.
    The first entry seen for a key wins.
    """
    entries = _unwrap_list(details)
    if not entries:
        return DetailIndex()

    by_id: dict[int, int | float] = {}
    by_name: dict[str, int | float] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        value = as_number(entry.get("value"))
        type_id = _as_type_id(entry.get("type_id"))
        if value is None or type_id is None:
            continue
        by_id.setdefault(type_id, value)
        name = _detail_name(entry)
        if name:
            by_name.setdefault(name, value)
    return DetailIndex(by_id=by_id, by_name=by_name)


Resolver = Callable[[DetailIndex], "int | float | None"]


def by_type_id(type_id: int) -> Resolver:
    def resolve(index: DetailIndex) -> int | float | None:
        return index.by_id.get(type_id)

    resolve.__name__ = f"type_id_{type_id}"
    return resolve


def by_home_away_sum(home_id: int, away_id: int) -> Resolver:
    def resolve(index: DetailIndex) -> int | float | None:
        home = index.by_id.get(home_id)
        away = index.by_id.get(away_id)
        if home is None or away is None:
            return None
        return home + away

    resolve.__name__ = f"sum_{home_id}_{away_id}"
    return resolve


def matches_detail_pattern(name: str, patterns: tuple[str, ...]) -> bool:
    lowered = name.lower()
    return any(pattern in lowered for pattern in patterns)


def by_name_pattern(patterns: tuple[str, ...]) -> Resolver:
    """Match detail names; an unqualified hit wins over a home+away pair."""

    def resolve(index: DetailIndex) -> int | float | None:
        overall = home = away = None
        for name, value in index.by_name.items():
            if not matches_detail_pattern(name, patterns):
                continue
            if _HOME_RE.search(name):
                home = value if home is None else home
            elif _AWAY_RE.search(name):
                away = value if away is None else away
            elif overall is None:
                overall = value
        if overall is not None:
            return overall
        if home is not None and away is not None:
            return home + away
        return None

    resolve.__name__ = f"name_{patterns[0].replace(' ', '_')}"
    return resolve


def _chain(
    metric: str,
    *,
    overall: int | None = None,
    alt_overall: int | None = None,
    home_away: tuple[int, int] | None = None,
    alt_home_away: tuple[int, int] | None = None,
) -> tuple[Resolver, ...]:
    resolvers: list[Resolver] = []
    if overall is not None:
        resolvers.append(by_type_id(overall))
    if alt_overall is not None:
        resolvers.append(by_type_id(alt_overall))
    if home_away is not None:
        resolvers.append(by_home_away_sum(*home_away))
    if alt_home_away is not None:
        resolvers.append(by_home_away_sum(*alt_home_away))
    resolvers.append(by_name_pattern(STANDING_DETAIL_NAME_PATTERNS[metric]))
    return tuple(resolvers)


METRIC_RESOLVERS: dict[str, tuple[Resolver, ...]] = {
    "played": _chain(
        "played",
        overall=T["OVERALL_MATCHES_PLAYED"],
        home_away=(T["HOME_MATCHES_PLAYED"], T["AWAY_MATCHES_PLAYED"]),
    ),
    "won": _chain(
        "won",
        overall=T["OVERALL_WON"],
        alt_overall=T["ALT_OVERALL_WON"],
        home_away=(T["HOME_WON"], T["AWAY_WON"]),
        alt_home_away=(T["ALT_HOME_WON"], T["ALT_AWAY_WON"]),
    ),
    "draw": _chain(
        "draw",
        overall=T["OVERALL_DRAW"],
        alt_overall=T["ALT_OVERALL_DRAW"],
        home_away=(T["HOME_DRAW"], T["AWAY_DRAW"]),
        alt_home_away=(T["ALT_HOME_DRAW"], T["ALT_AWAY_DRAW"]),
    ),
    "lost": _chain(
        "lost",
        overall=T["OVERALL_LOST"],
        alt_overall=T["ALT_OVERALL_LOST"],
        home_away=(T["HOME_LOST"], T["AWAY_LOST"]),
        alt_home_away=(T["ALT_HOME_LOST"], T["ALT_AWAY_LOST"]),
    ),
    "goals_for": _chain(
        "goals_for",
        overall=T["OVERALL_GOALS_FOR"],
        home_away=(T["HOME_GOALS_FOR"], T["AWAY_GOALS_FOR"]),
    ),
    "goals_against": _chain(
        "goals_against",
        overall=T["OVERALL_GOALS_AGAINST"],
        home_away=(T["HOME_GOALS_AGAINST"], T["AWAY_GOALS_AGAINST"]),
    ),
    "clean_sheets": _chain(
        "clean_sheets",
        overall=T["OVERALL_CLEAN_SHEETS"],
        home_away=(T["HOME_CLEAN_SHEETS"], T["AWAY_CLEAN_SHEETS"]),
    ),
    "failed_to_score": _chain(
        "failed_to_score",
        overall=T["OVERALL_FAILED_TO_SCORE"],
        home_away=(T["HOME_FAILED_TO_SCORE"], T["AWAY_FAILED_TO_SCORE"]),
    ),
}


def resolve_metric(index: DetailIndex, metric: str) -> int | float | None:
    """Return the first value produced by the metric's resolver chain."""
    for resolver in METRIC_RESOLVERS[metric]:
        value = resolver(index)
        if value is not None:
            return value
    return None


def apply_arithmetic_closure(values: dict[str, int | float | None]) -> None:
    """Fill one missing term of ``played = won + draw + lost`` in place."""
    played = values.get("played")
    known = {m: values.get(m) for m in _RESULT_METRICS if values.get(m) is not None}

    if played is None:
        if len(known) == len(_RESULT_METRICS):
            values["played"] = sum(known.values())
        return

    missing = [m for m in _RESULT_METRICS if m not in known]
    if len(missing) == 1:
        derived = played - sum(known.values())
        if derived >= 0:
            values[missing[0]] = derived


def _from_record(record: Mapping) -> dict[str, int | float | None]:
    values: dict[str, int | float | None] = {}
    for metric in ALL_METRICS:
        values[metric] = None
        for key in _RECORD_ALIASES[metric]:
            number = as_number(record.get(key))
            if number is not None:
                values[metric] = number
                break
    return values


def reconcile_standing_details(details: Any) -> dict[str, int | float | None]:
    """Reconcile a raw details array into canonical standing metrics.

    A mapping input is read as an already-reconciled record (so the function
    is idempotent on its own output). Core metrics default to ``0``;
    ``clean_sheets`` and ``failed_to_score`` stay ``None`` when unknown.
    """
    if isinstance(details, Mapping) and not isinstance(details.get("data"), list):
        values = _from_record(details)
    else:
        index = index_details(details)
        values = {metric: resolve_metric(index, metric) for metric in ALL_METRICS}

    apply_arithmetic_closure(values)

    for metric in CORE_METRICS:
        if values[metric] is None:
            values[metric] = 0
    return values


_RESULT_CODES: dict[str, str] = {
    "w": "W",
    "win": "W",
    "won": "W",
    "d": "D",
    "draw": "D",
    "drawn": "D",
    "tie": "D",
    "l": "L",
    "loss": "L",
    "lost": "L",
    "lose": "L",
    "defeat": "L",
}


def _classify_result(entry: Any) -> str:
    if isinstance(entry, Mapping):
        entry = entry.get("result") or entry.get("outcome") or entry.get("form")
    if not isinstance(entry, str):
        return "-"
    return _RESULT_CODES.get(entry.strip().lower(), "-")


def _sort_order_key(entry: Mapping) -> tuple[int, float]:
    order = as_number(entry.get("sort_order"))
    if order is None:
        return (1, 0.0)
    return (0, float(order))


def format_form(form_data: Any) -> str | None:
    """Render recent results as a W/D/L string, oldest to newest.

    Accepts a preformatted string, Sportmonks ``{form, sort_order}`` entries,
    or a newest-first list of result strings / ``{result|outcome}`` objects.
    Returns ``None`` when nothing usable is found.
    """
    if isinstance(form_data, str):
        text = form_data.strip().upper()
        return text or None

    entries = _unwrap_list(form_data)
    if not entries:
        return None

    sortable = [
        e for e in entries
        if isinstance(e, Mapping) and isinstance(e.get("form"), str) and "sort_order" in e
    ]
    if len(sortable) == len(entries):
        sortable.sort(key=_sort_order_key)
        text = "".join(e["form"].strip().upper() for e in sortable[-MAX_FORM_LENGTH:])
        return text or None

    letters = [_classify_result(e) for e in entries]
    if all(letter == "-" for letter in letters):
        return None
    letters.reverse()
    return "".join(letters[-MAX_FORM_LENGTH:])


def current_streak(form: str | None) -> str | None:
    """Length of the newest run in a form string: ``"WWLWW" -> "W2"``."""
    if not form:
        return None
    latest = form[-1]
    if latest not in ("W", "D", "L"):
        return None
    count = 0
    for letter in reversed(form):
        if letter != latest:
            break
        count += 1
    return f"{latest}{count}"

"""
backend/tests/test_standings_reconciler.py

Purpose:
    Resolution order, arithmetic closure and form rendering for standing
    detail reconciliation.
"""

from __future__ import annotations

import sys

sys.path.insert(0, "backend")

from fieldstats.services.standings_reconciler import (
    as_number,
    current_streak,
    format_form,
    index_details,
    reconcile_standing_details,
    resolve_metric,
)


def _d(type_id, value, name=None):
    entry = {"type_id": type_id, "value": value}
    if name is not None:
        entry["type"] = {"name": name}
    return entry


def test_colliding_ids_resolve_by_chain_order_and_closure_fills_lost():
    out = reconcile_standing_details([_d(129, 30), _d(130, 20), _d(131, 5)])

    assert out["played"] == 30
    assert out["won"] == 20
    assert out["draw"] == 5
    assert out["lost"] == 5
    assert out["goals_for"] == 0
    assert out["goals_against"] == 0
    assert out["clean_sheets"] is None
    assert out["failed_to_score"] is None


def test_played_derived_from_results_when_missing():
    out = reconcile_standing_details([_d(85, 10), _d(88, 5), _d(91, 3)])
    assert out["played"] == 18


def test_closure_never_derives_a_negative_count():
    out = reconcile_standing_details([_d(129, 10), _d(85, 8), _d(88, 5)])
    assert out["lost"] == 0
    assert out["played"] == 10


def test_closure_needs_exactly_one_unknown():
    out = reconcile_standing_details([_d(129, 10), _d(85, 8)])
    assert out["won"] == 8
    assert out["draw"] == 0
    assert out["lost"] == 0


def test_home_away_sum_used_when_overall_missing():
    out = reconcile_standing_details([_d(86, 4), _d(87, 3), _d(139, 11), _d(141, 6)])
    assert out["won"] == 7
    assert out["goals_for"] == 17


def test_overall_id_wins_over_home_away_sum():
    out = reconcile_standing_details([_d(85, 9), _d(86, 4), _d(87, 3)])
    assert out["won"] == 9


def test_alternate_home_away_ids():
    index = index_details([_d(133, 2), _d(136, 1)])
    assert resolve_metric(index, "won") == 3
    # 133 is also the canonical goals-for ID.
    assert resolve_metric(index, "goals_for") == 2


def test_name_pattern_fallback_for_unknown_ids():
    out = reconcile_standing_details([_d(9001, 12, "Matches Played"), _d(9002, 7, "Goals Conceded")])
    assert out["played"] == 12
    assert out["goals_against"] == 7


def test_name_pattern_sums_home_and_away_when_no_overall_name():
    out = reconcile_standing_details([_d(9001, 6, "Home Won"), _d(9002, 4, "Away Won")])
    assert out["won"] == 10


def test_optional_metrics_resolved_when_present():
    out = reconcile_standing_details([_d(94, 8), _d(98, 2), _d(99, 3)])
    assert out["clean_sheets"] == 8
    assert out["failed_to_score"] == 5


def test_malformed_entries_are_skipped():
    details = [
        "garbage",
        None,
        {"value": 4},
        {"type_id": "abc", "value": 3},
        {"type_id": 129, "value": "n/a"},
        {"type_id": 129, "value": "12"},
        {"type_id": 129, "value": 99},
    ]
    out = reconcile_standing_details(details)
    assert out["played"] == 12


def test_non_list_input_yields_zeroed_record():
    for raw in (None, 42, "text"):
        out = reconcile_standing_details(raw)
        assert out["played"] == 0
        assert out["won"] == 0
        assert out["clean_sheets"] is None


def test_wrapped_data_list_is_accepted():
    out = reconcile_standing_details({"data": [_d(129, 4), _d(85, 4)]})
    assert out["played"] == 4
    assert out["won"] == 4


def test_reconcile_is_idempotent_on_its_output():
    first = reconcile_standing_details([_d(129, 30), _d(130, 20), _d(131, 5), _d(94, 11)])
    assert reconcile_standing_details(first) == first


def test_as_number_variants():
    assert as_number("7") == 7
    assert as_number(3.0) == 3
    assert as_number(2.5) == 2.5
    assert as_number({"total": 4}) == 4
    assert as_number(True) is None
    assert as_number(float("nan")) is None


def test_form_sort_order_is_oldest_first():
    form = [
        {"form": "W", "sort_order": 3},
        {"form": "L", "sort_order": 1},
        {"form": "D", "sort_order": 2},
    ]
    assert format_form(form) == "LDW"


def test_form_keeps_newest_five():
    letters = ["W", "W", "L", "D", "W", "L", "L"]
    form = [{"form": letter, "sort_order": i + 1} for i, letter in enumerate(letters)]
    assert format_form(form) == "LDWLL"


def test_generic_form_list_is_newest_first():
    assert format_form(["W", "L", "D"]) == "DLW"
    assert format_form([{"result": "win"}, {"outcome": "loss"}]) == "LW"


def test_form_unusable_input():
    assert format_form(None) is None
    assert format_form([]) is None
    assert format_form(["?", {"foo": 1}]) is None
    assert format_form(" wdl ") == "WDL"


def test_current_streak():
    assert current_streak("WWLWW") == "W2"
    assert current_streak("LLL") == "L3"
    assert current_streak(None) is None
    assert current_streak("WD-") is None

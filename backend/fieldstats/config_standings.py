"""
backend/fieldstats/config_standings.py

Purpose:
    Sportmonks standings reference tables: detail type IDs (canonical and
    alternate numbering), detail name patterns, and qualification rules used
    to decorate standing rows.

Notes:
    - Several alternate IDs collide with canonical IDs of other metrics
      (130 is both "home matches played" and "alt overall won"). Resolution
      order in the reconciler decides which reading wins.
"""

from __future__ import annotations

STANDING_DETAIL_TYPES: dict[str, int] = {
    "OVERALL_MATCHES_PLAYED": 129,
    "HOME_MATCHES_PLAYED": 130,
    "AWAY_MATCHES_PLAYED": 131,
    "OVERALL_WON": 85,
    "HOME_WON": 86,
    "AWAY_WON": 87,
    "OVERALL_DRAW": 88,
    "HOME_DRAW": 89,
    "AWAY_DRAW": 90,
    "OVERALL_LOST": 91,
    "HOME_LOST": 92,
    "AWAY_LOST": 93,
    "ALT_OVERALL_WON": 130,
    "ALT_HOME_WON": 133,
    "ALT_AWAY_WON": 136,
    "ALT_OVERALL_DRAW": 131,
    "ALT_HOME_DRAW": 134,
    "ALT_AWAY_DRAW": 137,
    "ALT_OVERALL_LOST": 132,
    "ALT_HOME_LOST": 135,
    "ALT_AWAY_LOST": 138,
    "OVERALL_GOALS_FOR": 133,
    "HOME_GOALS_FOR": 139,
    "AWAY_GOALS_FOR": 141,
    "OVERALL_GOALS_AGAINST": 134,
    "HOME_GOALS_AGAINST": 140,
    "AWAY_GOALS_AGAINST": 142,
    "OVERALL_CLEAN_SHEETS": 94,
    "HOME_CLEAN_SHEETS": 95,
    "AWAY_CLEAN_SHEETS": 96,
    "OVERALL_FAILED_TO_SCORE": 97,
    "HOME_FAILED_TO_SCORE": 98,
    "AWAY_FAILED_TO_SCORE": 99,
}

STANDING_DETAIL_NAME_PATTERNS: dict[str, tuple[str, ...]] = {
    "played": ("matches played", "games played", "played", "overall matched played"),
    "won": ("won", "win", "victory", "victories", "overall won"),
    "draw": ("draw", "drawn", "tie", "tied", "overall draw"),
    "lost": ("lost", "loss", "defeats", "defeat", "overall lost"),
    "goals_for": ("goals for", "goals scored", "scored", "goal scored", "overall goals scored"),
    "goals_against": (
        "goals against",
        "goals conceded",
        "conceded",
        "goal conceded",
        "overall goals conceded",
    ),
    "clean_sheets": ("clean sheet", "clean sheets", "overall clean sheets"),
    "failed_to_score": ("failed to score", "scoreless", "overall failed to score"),
}

# Sportmonks standing rule type_id -> qualification badge.
RULE_TYPE_ID_MAP: dict[int, dict[str, str]] = {
    180: {"type": "champions_league", "name": "Champions League", "color": "#1E74D3"},
    181: {"type": "europa_league", "name": "Europa League", "color": "#FF5733"},
    182: {"type": "relegation", "name": "Relegation", "color": "#FF0000"},
    183: {"type": "championship_round", "name": "Championship Round", "color": "#5C97DB"},
    184: {"type": "relegation_round", "name": "Relegation Round", "color": "#FFA500"},
    187: {"type": "conference_league", "name": "Conference League", "color": "#24B71E"},
}

_CL = {"type": "champions_league", "name": "Champions League", "color": "#1e74d3"}
_CLQ = {"type": "champions_league_qualifying", "name": "Champions League Qualifying", "color": "#1e74d3"}
_EL = {"type": "europa_league", "name": "Europa League", "color": "#f58c20"}
_ELQ = {"type": "europa_league_qualifying", "name": "Europa League Qualifying", "color": "#f58c20"}
_ECL = {"type": "conference_league", "name": "Conference League", "color": "#15b050"}
_ECLQ = {"type": "conference_league_qualifying", "name": "Conference League Qualifying", "color": "#15b050"}
_REL = {"type": "relegation", "name": "Relegation", "color": "#d32f2f"}
_REL_PO = {"type": "relegation_playoff", "name": "Relegation Playoff", "color": "#ff9800"}
_CHAMP_ROUND = {"type": "championship_round", "name": "Championship Round", "color": "#5C97DB"}
_REL_ROUND = {"type": "relegation_round", "name": "Relegation Round", "color": "#FFA500"}

# league_id -> [(badge, positions)], checked in order.
LEAGUE_QUALIFICATION_RULES: dict[int, list[tuple[dict[str, str], tuple[int, ...]]]] = {
    8: [  # Premier League
        (_CL, (1, 2, 3, 4)),
        (_EL, (5,)),
        (_ECL, (6,)),
        (_REL, (18, 19, 20)),
    ],
    501: [  # Scottish Premiership
        (_CLQ, (1,)),
        (_ELQ, (2, 3)),
        (_ECLQ, (4,)),
        (_CHAMP_ROUND, (5, 6)),
        (_REL_ROUND, (7, 8, 9, 10)),
        (_REL_PO, (11,)),
        (_REL, (12,)),
    ],
    564: [  # La Liga
        (_CL, (1, 2, 3, 4)),
        (_EL, (5, 6)),
        (_REL, (18, 19, 20)),
    ],
    82: [  # Bundesliga
        (_CL, (1, 2, 3, 4)),
        (_EL, (5, 6)),
        (_ECL, (7,)),
        (_REL_PO, (16,)),
        (_REL, (17, 18)),
    ],
    384: [  # Serie A
        (_CL, (1, 2, 3, 4)),
        (_EL, (5, 6)),
        (_ECL, (7,)),
        (_REL, (18, 19, 20)),
    ],
    301: [  # Ligue 1
        (_CL, (1, 2, 3)),
        ({"type": "champions_league_qualifying", "name": "Champions League Qualifying", "color": "#5c97db"}, (4,)),
        (_EL, (5,)),
        (_ECL, (6,)),
        (_REL_PO, (16,)),
        (_REL, (17, 18)),
    ],
}

MAX_FORM_LENGTH = 5

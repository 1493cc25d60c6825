"""
backend/fieldstats/routers/leagues.py

Purpose:
    Public league endpoints: season standings table and the featured league
    strip served from the league priority cache.

Dependencies:
    - fieldstats.services.standings_service
    - fieldstats.services.match_list_service
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from fieldstats.config import settings
from fieldstats.models.matches import FeaturedLeague
from fieldstats.models.standings import StandingsData
from fieldstats.services.match_list_service import MatchQueryEngine
from fieldstats.services.standings_service import get_league_table

logger = logging.getLogger("fieldstats.leagues")

router = APIRouter(prefix="/api/v1/leagues", tags=["leagues"])


@router.get("/featured", response_model=list[FeaturedLeague])
async def featured_leagues():
    """Featured leagues ordered by manual priority."""
    cache = MatchQueryEngine.get().cache
    await cache.refresh_if_stale()
    return [
        {
            "id": entry.id,
            "name": entry.name,
            "image_path": entry.logo_path,
            "match_count": 0,
            "priority": entry.priority,
        }
        for entry in cache.snapshot.featured_leagues(settings.FEATURED_LEAGUES_LIMIT)
    ]


@router.get("/{league_id}/table", response_model=dict[str, StandingsData])
async def league_table(
    league_id: str,
    season_id: Optional[str] = Query(None, description="Defaults to the current season"),
):
    """Standings for one league season, keyed by season ID."""
    try:
        return await get_league_table(league_id, season_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from None
    except LookupError as exc:
        logger.info("League table unavailable for %s (season=%s): %s", league_id, season_id, exc)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from None

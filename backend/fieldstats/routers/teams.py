"""Team table API: per-season standings for one team."""

from fastapi import APIRouter, HTTPException, status

from fieldstats.models.standings import StandingsData
from fieldstats.services.standings_service import get_team_table

router = APIRouter(prefix="/api/v1/teams", tags=["teams"])


@router.get("/{team_id}/table", response_model=dict[str, StandingsData])
async def team_table(team_id: str):
    """Standings tables for every season the team has data for, keyed by season ID."""
    try:
        return await get_team_table(team_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid team ID format.") from None
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found.") from None

"""
backend/fieldstats/routers/matches.py

Purpose:
    Public match list ranked by cached league priority.

Dependencies:
    - fieldstats.services.match_list_service
    - fieldstats.models.matches
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response, status

from fieldstats.config import settings
from fieldstats.models.matches import MatchListResponse
from fieldstats.services.match_list_service import MatchListQuery, MatchQueryEngine
from fieldstats.utils import parse_csv_ints, parse_csv_strings, parse_utc

router = APIRouter(prefix="/api/v1/matches", tags=["matches"])


@router.get("", response_model=MatchListResponse)
async def list_matches(
    request: Request,
    response: Response,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.MATCHES_DEFAULT_LIMIT, ge=1, description="Clamped to MATCHES_MAX_LIMIT"),
    date_from: Optional[str] = Query(None, description="ISO 8601 lower kickoff bound"),
    date_to: Optional[str] = Query(None, description="ISO 8601 upper kickoff bound"),
    leagues: Optional[str] = Query(None, description="Comma-separated league IDs"),
    teams: Optional[str] = Query(None, description="Comma-separated team IDs"),
    status_filter: Optional[str] = Query(None, alias="status", description="Comma-separated match states"),
    view: Optional[str] = Query(None, description="today | live | upcoming | recent"),
    sort: str = Query("priority", description="priority | relevance | time | anything else = newest first"),
    search: Optional[str] = Query(None, max_length=100),
    include_featured: bool = Query(True),
    only_featured: bool = Query(False),
):
    """Matches ordered by league priority (or kickoff time), paginated."""
    for bound in (date_from, date_to):
        if not bound:
            continue
        try:
            parse_utc(bound)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date range.") from None

    query = MatchListQuery(
        page=page,
        limit=limit,
        date_from=date_from,
        date_to=date_to,
        leagues=parse_csv_ints(leagues),
        teams=parse_csv_ints(teams),
        status=parse_csv_strings(status_filter),
        view=view,
        sort=sort,
        search=search,
        include_featured=include_featured,
        only_featured=only_featured,
    )
    result = await MatchQueryEngine.get().list_matches(query, base_path=request.url.path)
    response.headers["Cache-Control"] = settings.MATCHES_CACHE_CONTROL
    return result

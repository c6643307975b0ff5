"""
Creator leaderboard and its batch refresh trigger.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.creator_stats import CreatorStats
from app.models.user import User
from app.schemas.leaderboard import LeaderboardEntry, LeaderboardResponse, RefreshResponse
from app.services import creator_stats as stats_service
from app.auth.dependencies import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


def _entry(stats: CreatorStats, rank: int) -> LeaderboardEntry:
    return LeaderboardEntry(
        rank=rank,
        user_id=stats.user_id,
        courses_count=stats.courses_count,
        students_count=stats.students_count,
        total_earnings=stats.total_earnings_usd,
        points=stats.points,
    )


@router.get("/creators", response_model=LeaderboardResponse)
def list_creators(
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Creators ranked by points; equal points are ordered by user id."""
    if limit > settings.leaderboard_max_limit:
        raise HTTPException(status_code=422, detail=f"limit must be <= {settings.leaderboard_max_limit}")

    items, total = stats_service.list_leaderboard(db, limit, offset)
    return LeaderboardResponse(
        entries=[_entry(s, offset + i + 1) for i, s in enumerate(items)],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/creators/{user_id}", response_model=LeaderboardEntry)
def get_creator(user_id: int, db: Session = Depends(get_db)):
    result = stats_service.get_creator_rank(db, user_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Creator not found")
    stats, rank = result
    return _entry(stats, rank)


@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Recompute every creator's stats from courses and purchases."""
    return RefreshResponse(refreshed_count=stats_service.refresh_all(db))

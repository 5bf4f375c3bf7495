from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from studyquest.core.config import settings
from studyquest.core.database import get_db
from studyquest.core.dependencies import get_optional_current_user, require_cron_secret, get_clock, Clock
from studyquest.models.user_model import User
from studyquest.schemas import leaderboard_schema as schemas
from studyquest.services import leaderboard_service, rank_snapshot_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


@router.get("", response_model=schemas.LeaderboardPage)
def get_leaderboard(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.LEADERBOARD_DEFAULT_PAGE_SIZE, ge=1, le=settings.LEADERBOARD_MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Optional[User] = Depends(get_optional_current_user)
):
    """
    Live leaderboard page. Authenticated learners who are not on the page also
    get their own entry in `current_user_entry`.
    """
    return leaderboard_service.get_leaderboard(
        db,
        clock,
        requesting_user_id=current_user.id if current_user else None,
        page=page,
        page_size=page_size,
    )


@router.post("/update-ranks", response_model=schemas.SnapshotRunResult, dependencies=[Depends(require_cron_secret)])
def trigger_rank_snapshot(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Write today's rank snapshot. Meant for a daily scheduler; safe to call
    repeatedly since every call after the first one of the day is a no-op.
    """
    logger.info("Rank snapshot trigger received.")
    return rank_snapshot_service.run_daily_snapshot(db, clock)


@router.get("/update-ranks", response_model=schemas.SnapshotStatus)
def get_rank_snapshot_status(db: Session = Depends(get_db)):
    """Summary of the latest snapshot (improved / declined / unchanged / new learners)."""
    return rank_snapshot_service.get_snapshot_status(db)

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from studyquest.core.config import settings
from studyquest.core.database import get_db
from studyquest.core.dependencies import get_current_active_user, get_clock, Clock
from studyquest.crud import stats_crud, rank_crud
from studyquest.models.enums import ContentType
from studyquest.models.user_model import User
from studyquest.schemas import progress_schema as schemas
from studyquest.schemas.leaderboard_schema import RankHistoryEntry
from studyquest.services import achievements, leveling, progress_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users/me", tags=["My Progress"])


@router.get("/stats", response_model=schemas.UserStatsDisplay)
def get_my_stats(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_active_user)
):
    """Statistics the achievements are based on, plus progress towards the next level."""
    logger.info(f"Fetching stats for user {current_user.email} (ID: {current_user.id})")
    stats = stats_crud.get_user_stats(db, current_user.id, clock)
    unlocked = achievements.get_user_achievements(db, current_user.id)
    return schemas.UserStatsDisplay(
        stats=stats,
        level_progress=leveling.level_progress(stats.total_xp),
        achievements_unlocked=len(unlocked),
        achievements_total=len(achievements.ACHIEVEMENTS),
    )


@router.get("/achievements", response_model=List[schemas.AchievementDisplay])
def get_my_achievements(
    include_locked: bool = Query(False, description="Also list achievements not unlocked yet (unlocked_at is null)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    unlocked = achievements.get_user_achievements(db, current_user.id)
    if not include_locked:
        return unlocked
    unlocked_ids = {a.id for a in unlocked}
    locked = [a.to_display() for a in achievements.ACHIEVEMENTS if a.id not in unlocked_ids]
    return unlocked + locked


@router.get("/progress", response_model=List[schemas.ProgressRecordDisplay])
def get_my_progress(
    content_type: Optional[ContentType] = Query(None),
    topic_id: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return progress_service.get_progress_overview(
        db, current_user.id, content_type=content_type, topic_id=topic_id, skip=skip, limit=limit
    )


@router.get("/rank-history", response_model=List[RankHistoryEntry])
def get_my_rank_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Daily ranks from the snapshots, newest first (at most RANK_HISTORY_LIMIT days)."""
    return rank_crud.get_rank_history(db, current_user.id, limit=settings.RANK_HISTORY_LIMIT)

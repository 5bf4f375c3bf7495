from fastapi import APIRouter, Depends, Body
from sqlalchemy.orm import Session
import logging

from studyquest.core.database import get_db
from studyquest.core.dependencies import get_current_active_user, get_clock, Clock
from studyquest.models.user_model import User # For type hinting current_user
from studyquest.schemas import progress_schema as schemas
from studyquest.services import progress_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/progress", tags=["Progress & Rewards"])


@router.post("/update", response_model=schemas.ProgressUpdateResult)
def update_content_progress(
    progress_in: schemas.ProgressUpdateRequest = Body(...),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_active_user)
):
    """
    Report a question, flashcard or media completion event.

    Returns the XP it earned (first-time, daily review or none), any completion
    bonus and achievements it triggered, and the user's new level and total.
    """
    logger.info(f"User {current_user.email} reporting progress on {progress_in.content_type.value} {progress_in.content_id}")
    return progress_service.update_progress(db, current_user.id, progress_in, clock)


@router.post("/daily-quiz", response_model=schemas.DailyQuizResult)
def complete_daily_quiz(
    quiz_in: schemas.DailyQuizRequest = Body(...),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_active_user)
):
    """Reward the daily random or timed quiz. Each mode pays at most once per calendar day."""
    logger.info(f"User {current_user.email} completed the daily {quiz_in.mode.value} quiz")
    return progress_service.complete_daily_quiz(db, current_user.id, quiz_in, clock)

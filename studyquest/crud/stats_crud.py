from sqlalchemy.orm import Session
from decimal import Decimal, ROUND_HALF_UP
from typing import List
import logging

from studyquest.core.clock import Clock
from studyquest.core.exceptions import UserNotFoundError
from studyquest.models.user_model import User
from studyquest.models.user_progress_model import ProgressRecord
from studyquest.models.enums import ContentType
from studyquest.schemas import progress_schema as schemas # For response models
from studyquest.crud import user_progress_crud, content_crud

logger = logging.getLogger(__name__)

PERFECT_SCORE_THRESHOLD = 90
# A topic counts as completed at 80% of its items; a subject at 80% of its topics
COMPLETION_RATIO = Decimal("0.8")


def _count_completed_groups(db: Session, completed_ids: set) -> tuple:
    """Returns (topics_completed, subjects_completed) under the 80% rule."""
    topics_completed = 0
    subjects_completed = 0
    for subject_id, topics in content_crud.get_catalog_structure(db).items():
        subject_topics_completed = 0
        for topic_id, item_ids in topics.items():
            if not item_ids:
                continue
            done = len(item_ids & completed_ids)
            if Decimal(done) / Decimal(len(item_ids)) >= COMPLETION_RATIO:
                subject_topics_completed += 1
        topics_completed += subject_topics_completed
        if topics and Decimal(subject_topics_completed) / Decimal(len(topics)) >= COMPLETION_RATIO:
            subjects_completed += 1
    return topics_completed, subjects_completed


def get_user_stats(db: Session, user_id: int, clock: Clock) -> schemas.UserStats:
    """
    Aggregates everything the achievement catalog looks at. XP, level and
    streak are read as columns so the numbers reflect credits made earlier
    in the same transaction.
    """
    logger.debug(f"Calculating stats for user {user_id}")
    row = db.query(User.total_xp, User.level, User.current_streak, User.max_streak).filter(User.id == user_id).first()
    if row is None:
        raise UserNotFoundError(user_id)
    total_xp, level, current_streak, max_streak = row

    records: List[ProgressRecord] = user_progress_crud.get_activity_records(db, user_id)
    catalog_records = [r for r in records if r.content_type != ContentType.QUIZ]

    def completed_of(content_type: ContentType) -> int:
        return sum(1 for r in catalog_records if r.content_type == content_type and r.completed)

    scored_questions = [r.score for r in catalog_records if r.content_type == ContentType.QUESTION and r.score is not None]
    average_score = 0
    if scored_questions:
        mean = Decimal(str(sum(scored_questions))) / Decimal(len(scored_questions))
        average_score = int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    perfect_scores = sum(1 for score in scored_questions if score >= PERFECT_SCORE_THRESHOLD)

    completed_ids = {r.content_id for r in catalog_records if r.completed}
    topics_completed, subjects_completed = _count_completed_groups(db, completed_ids)

    study_days = len({clock.local_date(r.last_accessed) for r in records if r.last_accessed is not None})

    return schemas.UserStats(
        total_xp=total_xp or 0,
        level=level or 1,
        total_quizzes_completed=completed_of(ContentType.QUESTION),
        total_flashcards_completed=completed_of(ContentType.FLASHCARD),
        total_media_completed=completed_of(ContentType.MEDIA),
        average_score=average_score,
        perfect_scores=perfect_scores,
        current_streak=current_streak or 0,
        max_streak=max_streak or 0,
        subjects_completed=subjects_completed,
        topics_completed=topics_completed,
        study_days=study_days,
    )

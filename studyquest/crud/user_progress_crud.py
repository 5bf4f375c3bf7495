from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, case, func
from typing import Any, Dict, List, Optional, Sequence
import logging
from datetime import date, datetime

from studyquest.models.user_progress_model import ProgressRecord
from studyquest.models.enums import ContentType
from studyquest.crud.db_helpers import insert_if_absent

logger = logging.getLogger(__name__)

PROGRESS_KEY = ("user_id", "content_id", "content_type")


def get_progress(db: Session, user_id: int, content_id: str, content_type: ContentType) -> Optional[ProgressRecord]:
    """Fetches the progress record for one content item, if the user has one."""
    logger.debug(f"Fetching progress for user_id {user_id}, content {content_type.value}:{content_id}")
    return db.query(ProgressRecord).filter(
        ProgressRecord.user_id == user_id,
        ProgressRecord.content_id == content_id,
        ProgressRecord.content_type == content_type
    ).first()


def ensure_progress_record(
    db: Session,
    user_id: int,
    content_id: str,
    content_type: ContentType,
    topic_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    section_id: Optional[str] = None,
) -> ProgressRecord:
    """
    Returns the user's record for a content item, creating an empty one first if
    needed. Creation goes through insert-if-absent so two concurrent first events
    for the same item end up sharing a single row.
    """
    created = insert_if_absent(
        db,
        ProgressRecord,
        {
            "user_id": user_id,
            "content_id": content_id,
            "content_type": content_type,
            "topic_id": topic_id,
            "subject_id": subject_id,
            "section_id": section_id,
        },
        PROGRESS_KEY,
    )
    if created:
        logger.info(f"Created progress record for user {user_id} on {content_type.value}:{content_id}")

    record = get_progress(db, user_id, content_id, content_type)
    db.refresh(record)
    return record


def claim_first_completion(db: Session, record_id: int, completed_at: datetime, completed_on: date) -> bool:
    """
    Stamps the first completion on a record. The WHERE clause only matches a
    record that was never completed, so of two racing requests exactly one
    gets rowcount 1 and with it the first-time reward.
    """
    updated = db.query(ProgressRecord).filter(
        ProgressRecord.id == record_id,
        ProgressRecord.first_completed_at.is_(None)
    ).update(
        {
            ProgressRecord.first_completed_at: completed_at,
            ProgressRecord.first_completed_on: completed_on,
        },
        synchronize_session=False
    )
    return updated == 1


def claim_daily_reward(db: Session, record_id: int, today: date) -> bool:
    """
    Marks today's daily-repeat reward as paid. The day of the first completion
    counts as already rewarded, so the condition is "last reward day != today"
    where the last reward day falls back to first_completed_on.
    """
    updated = db.query(ProgressRecord).filter(
        ProgressRecord.id == record_id,
        ProgressRecord.first_completed_on.isnot(None),
        or_(
            and_(ProgressRecord.last_daily_xp_date.is_(None), ProgressRecord.first_completed_on != today),
            and_(ProgressRecord.last_daily_xp_date.isnot(None), ProgressRecord.last_daily_xp_date != today),
        )
    ).update(
        {
            ProgressRecord.last_daily_xp_date: today,
            ProgressRecord.daily_xp_count: ProgressRecord.daily_xp_count + 1,
        },
        synchronize_session=False
    )
    return updated == 1


def record_attempt(
    db: Session,
    record_id: int,
    completed: bool,
    score: Optional[float],
    time_spent: int,
    xp_earned: int,
    accessed_at: datetime,
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Applies one event to the record with relative updates only: attempts and
    time are incremented, `completed` is sticky, best/first-attempt scores are
    kept in SQL so concurrent events never overwrite each other.
    """
    values = {
        ProgressRecord.attempts: ProgressRecord.attempts + 1,
        ProgressRecord.time_spent: ProgressRecord.time_spent + (time_spent or 0),
        ProgressRecord.total_xp_earned: ProgressRecord.total_xp_earned + xp_earned,
        ProgressRecord.last_accessed: accessed_at,
        ProgressRecord.updated_at: accessed_at,
    }
    if completed:
        values[ProgressRecord.completed] = True # never flipped back to False
    if score is not None:
        values[ProgressRecord.score] = score
        values[ProgressRecord.first_attempt_score] = case(
            (ProgressRecord.first_attempt_score.is_(None), score),
            else_=ProgressRecord.first_attempt_score
        )
        values[ProgressRecord.best_score] = case(
            (or_(ProgressRecord.best_score.is_(None), ProgressRecord.best_score < score), score),
            else_=ProgressRecord.best_score
        )
    if data is not None:
        values[ProgressRecord.data] = data

    db.query(ProgressRecord).filter(ProgressRecord.id == record_id).update(values, synchronize_session=False)


def create_bonus_record(
    db: Session,
    user_id: int,
    content_id: str,
    content_type: ContentType,
    completed_at: datetime,
    completed_on: date,
    xp_amount: int,
    topic_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    section_id: Optional[str] = None,
    score: Optional[float] = None,
    data: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Inserts a completion-bonus sentinel. Returns False when the sentinel already
    exists, i.e. the bonus was paid before (or by a concurrent request).
    """
    return insert_if_absent(
        db,
        ProgressRecord,
        {
            "user_id": user_id,
            "content_id": content_id,
            "content_type": content_type,
            "topic_id": topic_id,
            "subject_id": subject_id,
            "section_id": section_id,
            "completed": True,
            "score": score,
            "best_score": score,
            "first_attempt_score": score,
            "attempts": 1,
            "first_completed_at": completed_at,
            "first_completed_on": completed_on,
            "total_xp_earned": xp_amount,
            "is_bonus_record": True,
            "data": data,
            "last_accessed": completed_at,
        },
        PROGRESS_KEY,
    )


def count_completed(db: Session, user_id: int, content_type: ContentType, content_ids: Sequence[str]) -> int:
    """Counts distinct content items among `content_ids` the user has completed."""
    if not content_ids:
        return 0
    return db.query(func.count(func.distinct(ProgressRecord.content_id))).filter(
        ProgressRecord.user_id == user_id,
        ProgressRecord.content_type == content_type,
        ProgressRecord.content_id.in_(list(content_ids)),
        ProgressRecord.completed.is_(True),
        ProgressRecord.is_bonus_record.is_(False)
    ).scalar() or 0


def average_best_score(db: Session, user_id: int, content_type: ContentType, content_ids: Sequence[str]) -> Optional[float]:
    if not content_ids:
        return None
    return db.query(func.avg(ProgressRecord.best_score)).filter(
        ProgressRecord.user_id == user_id,
        ProgressRecord.content_type == content_type,
        ProgressRecord.content_id.in_(list(content_ids)),
        ProgressRecord.is_bonus_record.is_(False)
    ).scalar()


def get_user_progress(
    db: Session,
    user_id: int,
    content_type: Optional[ContentType] = None,
    topic_id: Optional[str] = None,
    include_bonus_records: bool = False,
    skip: int = 0,
    limit: int = 100,
) -> List[ProgressRecord]:
    """Fetches a user's progress records, most recently accessed first."""
    logger.debug(f"Fetching progress for user_id {user_id} (type={content_type}, topic={topic_id})")
    query = db.query(ProgressRecord).filter(ProgressRecord.user_id == user_id)
    if content_type is not None:
        query = query.filter(ProgressRecord.content_type == content_type)
    if topic_id is not None:
        query = query.filter(ProgressRecord.topic_id == topic_id)
    if not include_bonus_records:
        query = query.filter(ProgressRecord.is_bonus_record.is_(False))
    return query.order_by(ProgressRecord.last_accessed.desc(), ProgressRecord.id.desc()).offset(skip).limit(limit).all()


def get_activity_records(db: Session, user_id: int) -> List[ProgressRecord]:
    """All non-bonus records of a user; input for the statistics aggregation."""
    # populate_existing: rows changed earlier in this transaction by bulk UPDATEs must not come back stale
    return db.query(ProgressRecord).populate_existing().filter(
        ProgressRecord.user_id == user_id,
        ProgressRecord.is_bonus_record.is_(False)
    ).all()

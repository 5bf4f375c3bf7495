from sqlalchemy.orm import Session
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from studyquest.crud import content_crud, user_progress_crud
from studyquest.models.enums import ContentType, Difficulty
from studyquest.schemas.progress_schema import CompletionBonusDisplay, SectionProgressData
from studyquest.services.xp_rules import completion_bonus_xp

logger = logging.getLogger(__name__)


@dataclass
class CompletionBonus:
    group: str # "section", "flashcard-topic" or "media-topic"
    sentinel_id: str
    xp_amount: int

    def to_display(self) -> CompletionBonusDisplay:
        return CompletionBonusDisplay(group=self.group, sentinel_id=self.sentinel_id, xp_amount=self.xp_amount)


def topic_sentinel_id(content_type: ContentType, topic_id: str) -> str:
    """Deterministic key of the bonus record for a topic's flashcards or media."""
    return f"{content_type.value}-topic-{topic_id}"


def is_group_complete(db: Session, user_id: int, content_type: ContentType, group_ids: List[str]) -> bool:
    """Set completeness; an empty group is never complete."""
    if not group_ids:
        return False
    completed = user_progress_crud.count_completed(db, user_id, content_type, group_ids)
    logger.debug(f"User {user_id}: {completed}/{len(group_ids)} {content_type.value} items completed in group")
    return completed == len(set(group_ids))


def _award_section_bonus(
    db: Session, user_id: int, section_id: str, topic_id: str, subject_id: str,
    difficulty: Difficulty, completed_at: datetime, completed_on: date
) -> Optional[CompletionBonus]:
    question_ids = content_crud.get_section_question_ids(db, section_id)
    if not is_group_complete(db, user_id, ContentType.QUESTION, question_ids):
        return None

    amount = completion_bonus_xp("section", difficulty)
    average = user_progress_crud.average_best_score(db, user_id, ContentType.QUESTION, question_ids)
    created = user_progress_crud.create_bonus_record(
        db,
        user_id=user_id,
        content_id=section_id,
        content_type=ContentType.SECTION,
        completed_at=completed_at,
        completed_on=completed_on,
        xp_amount=amount,
        topic_id=topic_id,
        subject_id=subject_id,
        section_id=section_id,
        score=round(float(average), 2) if average is not None else None,
        data=SectionProgressData(difficulty=difficulty).model_dump(mode="json"),
    )
    if not created:
        logger.debug(f"Section bonus for user {user_id}, section {section_id} was already paid.")
        return None
    logger.info(f"User {user_id} completed section {section_id}: +{amount} bonus XP")
    return CompletionBonus(group="section", sentinel_id=section_id, xp_amount=amount)


def _award_topic_bonus(
    db: Session, user_id: int, content_type: ContentType, topic_id: str, subject_id: str,
    difficulty: Difficulty, completed_at: datetime, completed_on: date
) -> Optional[CompletionBonus]:
    item_ids = content_crud.get_topic_content_ids(db, topic_id, content_type)
    if not is_group_complete(db, user_id, content_type, item_ids):
        return None

    group = f"{content_type.value}-topic"
    amount = completion_bonus_xp(group, difficulty)
    sentinel_id = topic_sentinel_id(content_type, topic_id)
    created = user_progress_crud.create_bonus_record(
        db,
        user_id=user_id,
        content_id=sentinel_id,
        content_type=content_type,
        completed_at=completed_at,
        completed_on=completed_on,
        xp_amount=amount,
        topic_id=topic_id,
        subject_id=subject_id,
    )
    if not created:
        logger.debug(f"{group} bonus for user {user_id}, topic {topic_id} was already paid.")
        return None
    logger.info(f"User {user_id} completed all {content_type.value} items in topic {topic_id}: +{amount} bonus XP")
    return CompletionBonus(group=group, sentinel_id=sentinel_id, xp_amount=amount)


def check_completion_bonus(
    db: Session,
    user_id: int,
    content_type: ContentType,
    topic_id: str,
    subject_id: str,
    section_id: Optional[str],
    difficulty: Difficulty,
    completed_at: datetime,
    completed_on: date,
) -> Optional[CompletionBonus]:
    """
    Called after a first-time completion. Returns the bonus this call created,
    or None if the group is incomplete or its sentinel already exists. The
    sentinel insert is the exactly-once guard: when two requests complete the
    last items concurrently, both may see a complete group but only one insert
    succeeds.
    """
    if content_type == ContentType.QUESTION:
        if not section_id:
            return None
        return _award_section_bonus(db, user_id, section_id, topic_id, subject_id, difficulty, completed_at, completed_on)
    if content_type in (ContentType.FLASHCARD, ContentType.MEDIA):
        return _award_topic_bonus(db, user_id, content_type, topic_id, subject_id, difficulty, completed_at, completed_on)
    return None

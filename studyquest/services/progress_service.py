from sqlalchemy.orm import Session
import logging
from typing import List, Optional

from studyquest.core.clock import Clock
from studyquest.core.exceptions import ProgressValidationError, StudyQuestError, UserNotFoundError
from studyquest.crud import content_crud, user_crud, user_progress_crud
from studyquest.models.enums import ContentType, Difficulty, RewardClassification, XPSource
from studyquest.models.user_progress_model import ProgressRecord
from studyquest.schemas import progress_schema as schemas
from studyquest.services import achievements, xp_rules, xp_service
from studyquest.services.completion_bonus_service import CompletionBonus, check_completion_bonus

logger = logging.getLogger(__name__)

# A lost claim is re-evaluated against the re-read record; the second pass
# always sees the winner's stamp, the third is only slack.
MAX_CLAIM_ATTEMPTS = 3

DAILY_QUIZ_CONTENT_IDS = {
    "random": "random-quiz-daily",
    "timed": "timed-quiz-daily",
}


def _claim_reward(
    db: Session,
    record: ProgressRecord,
    completed: bool,
    score: Optional[float],
    content_type: ContentType,
    difficulty: Difficulty,
    clock: Clock,
) -> xp_rules.XPDecision:
    """
    Evaluates the XP rules on the record's current state and applies the
    decision with the matching conditional update. Returns NO_REWARD when the
    claim is lost to a concurrent request.
    """
    now = clock.now()
    today = clock.today()
    for attempt in range(1, MAX_CLAIM_ATTEMPTS + 1):
        decision = xp_rules.evaluate(xp_rules.record_state(record), completed, score, content_type, difficulty, today)
        if decision.classification == RewardClassification.NONE:
            return decision

        if decision.is_first_time:
            won = user_progress_crud.claim_first_completion(db, record.id, now, today)
        else:
            won = user_progress_crud.claim_daily_reward(db, record.id, today)
        if won:
            return decision

        logger.warning(
            f"Lost {decision.classification.value} claim on progress record {record.id} "
            f"(attempt {attempt}); re-reading and re-evaluating."
        )
        db.refresh(record)
    return xp_rules.NO_REWARD


def _resolve_section_id(db: Session, content_id: str, content_type: ContentType, section_id: Optional[str]) -> Optional[str]:
    """
    The section a question event belongs to. Events that leave it out fall
    back to the catalog; events that name a different section than the
    catalog are rejected.
    """
    if content_type != ContentType.QUESTION:
        return section_id
    catalog_section_id = content_crud.get_question_section_id(db, content_id)
    if section_id is None:
        return catalog_section_id
    if catalog_section_id is not None and catalog_section_id != section_id:
        raise ProgressValidationError(
            "section_id", f"question {content_id} belongs to section {catalog_section_id}, not {section_id}"
        )
    return section_id


def _build_message(decision: xp_rules.XPDecision, bonus: Optional[CompletionBonus], unlocked: List[achievements.Achievement], leveled_up: bool, new_level: int) -> str:
    if decision.is_first_time:
        parts = [f"First completion! +{decision.xp_amount} XP"]
    elif decision.is_daily_repeat:
        parts = [f"Daily review: +{decision.xp_amount} XP"]
    else:
        parts = ["Progress saved. No XP for this attempt"]
    if bonus:
        parts.append(f"{bonus.group.replace('-', ' ')} completed: +{bonus.xp_amount} bonus XP")
    for achievement in unlocked:
        parts.append(f"Achievement unlocked: {achievement.name} (+{achievement.xp_reward} XP)")
    if leveled_up:
        parts.append(f"Level up! You are now level {new_level}")
    return ". ".join(parts) + "."


def update_progress(db: Session, user_id: int, request: schemas.ProgressUpdateRequest, clock: Clock) -> schemas.ProgressUpdateResult:
    """
    Applies one completion event: record upsert, XP classification, completion
    bonus, XP credit, achievements. Runs as a single transaction, committed at
    the end and rolled back on any error.
    """
    content_id = str(request.content_id)
    topic_id = str(request.topic_id)
    subject_id = str(request.subject_id)
    section_id = str(request.section_id) if request.section_id else None
    difficulty = request.difficulty

    logger.info(f"Progress event from user {user_id}: {request.content_type.value}:{content_id} completed={request.completed} score={request.score}")

    try:
        section_id = _resolve_section_id(db, content_id, request.content_type, section_id)
        user_row = user_crud.get_xp_and_level(db, user_id)
        if user_row is None:
            raise UserNotFoundError(user_id)
        _, old_level = user_row

        user_crud.touch_streak(db, user_id, clock.today())

        record = user_progress_crud.ensure_progress_record(
            db, user_id, content_id, request.content_type,
            topic_id=topic_id, subject_id=subject_id, section_id=section_id,
        )
        decision = _claim_reward(db, record, request.completed, request.score, request.content_type, difficulty, clock)

        user_progress_crud.record_attempt(
            db,
            record.id,
            completed=request.completed,
            score=request.score,
            time_spent=request.time_spent,
            xp_earned=decision.xp_amount,
            accessed_at=clock.now(),
            data=request.data.model_dump(mode="json") if request.data is not None else None,
        )

        if decision.xp_amount > 0:
            source = XPSource.CONTENT if decision.is_first_time else XPSource.DAILY_REPEAT
            xp_service.award_xp(db, user_id, decision.xp_amount, source, clock, reference=content_id)

        bonus = None
        if decision.is_first_time:
            bonus = check_completion_bonus(
                db, user_id, request.content_type, topic_id, subject_id, section_id,
                difficulty, clock.now(), clock.today(),
            )
            if bonus:
                xp_service.award_xp(db, user_id, bonus.xp_amount, XPSource.COMPLETION_BONUS, clock, reference=bonus.sentinel_id)

        unlocked = achievements.evaluate_achievements(db, user_id, clock)
        achievement_xp = sum(a.xp_reward for a in unlocked)

        total_xp, new_level = user_crud.get_xp_and_level(db, user_id)
        db.commit()
    except StudyQuestError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Progress update failed for user {user_id} on {content_id}: {e}", exc_info=True)
        raise

    db.refresh(record)
    bonus_xp = bonus.xp_amount if bonus else 0
    leveled_up = new_level > old_level
    if leveled_up:
        logger.info(f"User {user_id} leveled up: {old_level} -> {new_level}")

    return schemas.ProgressUpdateResult(
        xp_earned=decision.xp_amount + bonus_xp + achievement_xp,
        base_xp=decision.xp_amount,
        bonus_xp=bonus_xp,
        achievement_xp=achievement_xp,
        classification=decision.classification,
        is_first_time=decision.is_first_time,
        is_daily_xp=decision.is_daily_repeat,
        leveled_up=leveled_up,
        new_level=new_level,
        total_xp=total_xp,
        completion_bonus=bonus.to_display() if bonus else None,
        new_achievements=[a.to_display(unlocked_at=clock.now()) for a in unlocked],
        message=_build_message(decision, bonus, unlocked, leveled_up, new_level),
        progress=schemas.ProgressRecordDisplay.model_validate(record),
    )


def _claim_daily_quiz(db: Session, record: ProgressRecord, clock: Clock) -> bool:
    """A daily quiz pays once per calendar day; the first ever completion counts as that day's payment."""
    now = clock.now()
    today = clock.today()
    for _ in range(MAX_CLAIM_ATTEMPTS):
        state = xp_rules.record_state(record)
        if isinstance(state, xp_rules.NeverCompleted):
            won = user_progress_crud.claim_first_completion(db, record.id, now, today)
        elif xp_rules.last_reward_day(state) != today:
            won = user_progress_crud.claim_daily_reward(db, record.id, today)
        else:
            return False
        if won:
            return True
        db.refresh(record)
    return False


def complete_daily_quiz(db: Session, user_id: int, request: schemas.DailyQuizRequest, clock: Clock) -> schemas.DailyQuizResult:
    """Rewards the daily random or timed quiz, at most once per calendar day per mode."""
    content_id = DAILY_QUIZ_CONTENT_IDS[request.mode.value]
    logger.info(f"Daily {request.mode.value} quiz completed by user {user_id} with score {request.score}")

    try:
        user_row = user_crud.get_xp_and_level(db, user_id)
        if user_row is None:
            raise UserNotFoundError(user_id)
        _, old_level = user_row

        user_crud.touch_streak(db, user_id, clock.today())
        record = user_progress_crud.ensure_progress_record(db, user_id, content_id, ContentType.QUIZ)
        rewarded = _claim_daily_quiz(db, record, clock)

        base_xp, performance_bonus = xp_rules.daily_quiz_xp(request.mode, request.score) if rewarded else (0, 0)
        quiz_xp = base_xp + performance_bonus

        user_progress_crud.record_attempt(
            db,
            record.id,
            completed=True,
            score=request.score,
            time_spent=request.time_spent,
            xp_earned=quiz_xp,
            accessed_at=clock.now(),
        )
        if quiz_xp > 0:
            xp_service.award_xp(db, user_id, quiz_xp, XPSource.DAILY_QUIZ, clock, reference=content_id)

        unlocked = achievements.evaluate_achievements(db, user_id, clock)
        achievement_xp = sum(a.xp_reward for a in unlocked)
        total_xp, new_level = user_crud.get_xp_and_level(db, user_id)
        db.commit()
    except StudyQuestError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Daily {request.mode.value} quiz reward failed for user {user_id}: {e}", exc_info=True)
        raise

    if rewarded:
        message = f"Daily {request.mode.value} quiz completed: +{base_xp} XP"
        if performance_bonus:
            message += f" (+{performance_bonus} performance bonus)"
    else:
        message = f"You already earned XP for today's {request.mode.value} quiz. Come back tomorrow!"

    return schemas.DailyQuizResult(
        mode=request.mode,
        xp_earned=quiz_xp + achievement_xp,
        base_xp=base_xp,
        performance_bonus=performance_bonus,
        achievement_xp=achievement_xp,
        already_completed_today=not rewarded,
        leveled_up=new_level > old_level,
        new_level=new_level,
        total_xp=total_xp,
        new_achievements=[a.to_display(unlocked_at=clock.now()) for a in unlocked],
        message=message + ".",
    )


def get_progress_overview(
    db: Session,
    user_id: int,
    content_type: Optional[ContentType] = None,
    topic_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[schemas.ProgressRecordDisplay]:
    records = user_progress_crud.get_user_progress(db, user_id, content_type=content_type, topic_id=topic_id, skip=skip, limit=limit)
    return [schemas.ProgressRecordDisplay.model_validate(r) for r in records]

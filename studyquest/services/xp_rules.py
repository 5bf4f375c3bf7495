"""
Pure XP rules: no database access, no clock reads.

Given the reward state of a progress record and a completion event, decide
whether the event earns XP and how much. The orchestrator applies the
decision through conditional updates; if it loses a race it re-reads the
record and asks again, which then yields `none`.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from studyquest.core.config import settings
from studyquest.models.enums import ContentType, Difficulty, RewardClassification, DailyQuizMode

logger = logging.getLogger(__name__)

BASE_XP = {
    ContentType.QUESTION: 5,
    ContentType.FLASHCARD: 3,
    ContentType.MEDIA: 10,
}

DIFFICULTY_MULTIPLIERS = {
    Difficulty.BEGINNER: Decimal("1.0"),
    Difficulty.INTERMEDIATE: Decimal("1.2"),
    Difficulty.ADVANCED: Decimal("1.5"),
}

# Paid once per group, scaled by the difficulty multiplier
COMPLETION_BONUS_XP = {
    "section": 50,
    "flashcard-topic": 30,
    "media-topic": 40,
}

RANDOM_QUIZ_XP = 5
TIMED_QUIZ_XP = 8
TIMED_QUIZ_BONUSES = ((80, 3), (60, 2), (40, 1)) # (minimum score, bonus XP), best first


# --- Record state ---

@dataclass(frozen=True)
class NeverCompleted:
    pass


@dataclass(frozen=True)
class FirstCompleted:
    on: date


@dataclass(frozen=True)
class DailyRewarded:
    on: date


RecordState = Union[NeverCompleted, FirstCompleted, DailyRewarded]


def record_state(record) -> RecordState:
    """Derives the reward state from a ProgressRecord row (or None for no row)."""
    if record is None or record.first_completed_on is None:
        return NeverCompleted()
    if record.last_daily_xp_date is not None:
        return DailyRewarded(on=record.last_daily_xp_date)
    return FirstCompleted(on=record.first_completed_on)


def last_reward_day(state: RecordState) -> Optional[date]:
    if isinstance(state, NeverCompleted):
        return None
    return state.on


# --- Amounts ---

def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def score_factor(score: Optional[float]) -> Decimal:
    clamped = min(max(score or 0, 0), 100)
    return Decimal(str(clamped)) / Decimal(100)


def difficulty_multiplier(difficulty: Optional[Difficulty]) -> Decimal:
    return DIFFICULTY_MULTIPLIERS.get(difficulty, DIFFICULTY_MULTIPLIERS[Difficulty.BEGINNER])


def content_xp(content_type: ContentType, difficulty: Difficulty, score: Optional[float], ratio: Decimal = Decimal(1)) -> int:
    """
    base_xp(type) x difficulty multiplier x score factor x ratio, rounded half-up.
    A rewarded completion is always worth at least 1 XP.
    """
    base = BASE_XP.get(content_type)
    if base is None:
        raise ValueError(f"No base XP defined for content type '{content_type}'")
    raw = Decimal(base) * difficulty_multiplier(difficulty) * score_factor(score) * ratio
    return max(1, round_half_up(raw))


def completion_bonus_xp(group: str, difficulty: Difficulty) -> int:
    return round_half_up(Decimal(COMPLETION_BONUS_XP[group]) * difficulty_multiplier(difficulty))


def daily_quiz_xp(mode: DailyQuizMode, score: Optional[float]) -> tuple:
    """Returns (base_xp, performance_bonus) for a daily random/timed quiz."""
    if mode == DailyQuizMode.RANDOM:
        return RANDOM_QUIZ_XP, 0
    bonus = 0
    for minimum, amount in TIMED_QUIZ_BONUSES:
        if (score or 0) >= minimum:
            bonus = amount
            break
    return TIMED_QUIZ_XP, bonus


# --- Classification ---

@dataclass(frozen=True)
class XPDecision:
    xp_amount: int
    classification: RewardClassification

    @property
    def is_first_time(self) -> bool:
        return self.classification == RewardClassification.FIRST_TIME

    @property
    def is_daily_repeat(self) -> bool:
        return self.classification == RewardClassification.DAILY_REPEAT


NO_REWARD = XPDecision(xp_amount=0, classification=RewardClassification.NONE)


def evaluate(
    state: RecordState,
    completed: bool,
    score: Optional[float],
    content_type: ContentType,
    difficulty: Difficulty,
    today: date,
) -> XPDecision:
    """
    1. not completed, or score <= 0          -> none
    2. never first-completed                 -> first-time, full value
    3. last reward day (daily-repeat day, or
       the first-completion day) != today    -> daily-repeat, DAILY_REPEAT_RATIO of the full value
    4. otherwise                             -> none
    """
    if not completed or score is None or score <= 0:
        return NO_REWARD

    if isinstance(state, NeverCompleted):
        return XPDecision(
            xp_amount=content_xp(content_type, difficulty, score),
            classification=RewardClassification.FIRST_TIME,
        )

    if last_reward_day(state) != today:
        ratio = Decimal(str(settings.DAILY_REPEAT_RATIO))
        return XPDecision(
            xp_amount=content_xp(content_type, difficulty, score, ratio=ratio),
            classification=RewardClassification.DAILY_REPEAT,
        )

    return NO_REWARD

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Annotated, Optional, List, Literal, Union
from datetime import date, datetime
from uuid import UUID

from studyquest.models.enums import (
    ContentType, Difficulty, MasteryLevel, RewardClassification, AchievementRarity, DailyQuizMode
)

# --- Per-content-type payloads ---
# `data` on a completion event is a closed union discriminated by `content_type`.
# Each variant carries only what that kind of content needs.

class QuestionProgressData(BaseModel):
    content_type: Literal["question"] = "question"
    difficulty: Difficulty = Difficulty.BEGINNER


class FlashcardProgressData(BaseModel):
    content_type: Literal["flashcard"] = "flashcard"
    difficulty: Difficulty = Difficulty.BEGINNER
    mastery_level: MasteryLevel = MasteryLevel.LEARNING


class MediaProgressData(BaseModel):
    content_type: Literal["media"] = "media"
    difficulty: Difficulty = Difficulty.BEGINNER
    watch_percentage: float = Field(0, ge=0, le=100, description="Share of the media watched, as reported by the watch-time tracker")


class SectionProgressData(BaseModel):
    """Stored on section bonus records; never sent by clients."""
    content_type: Literal["section"] = "section"
    difficulty: Difficulty = Difficulty.BEGINNER


ProgressData = Annotated[
    Union[QuestionProgressData, FlashcardProgressData, MediaProgressData],
    Field(discriminator="content_type"),
]


# --- Completion events ---

EVENT_CONTENT_TYPES = (ContentType.QUESTION, ContentType.FLASHCARD, ContentType.MEDIA)

class ProgressUpdateRequest(BaseModel):
    content_id: UUID
    content_type: ContentType
    topic_id: UUID
    subject_id: UUID
    section_id: Optional[UUID] = Field(None, description="Question section; only meaningful for questions")
    completed: bool
    score: float = Field(0, ge=0, le=100, description="Score percentage for this attempt")
    time_spent: int = Field(0, ge=0, description="Seconds spent on this attempt")
    data: Optional[ProgressData] = None

    @field_validator("content_type")
    @classmethod
    def check_event_content_type(cls, value: ContentType) -> ContentType:
        if value not in EVENT_CONTENT_TYPES:
            raise ValueError("content_type must be one of: question, flashcard, media")
        return value

    @model_validator(mode="after")
    def check_data_matches_content_type(self):
        if self.data is not None and self.data.content_type != self.content_type.value:
            raise ValueError(
                f"data.content_type '{self.data.content_type}' does not match content_type '{self.content_type.value}'"
            )
        return self

    @property
    def difficulty(self) -> Difficulty:
        return self.data.difficulty if self.data is not None else Difficulty.BEGINNER


class ProgressRecordDisplay(BaseModel):
    id: int
    content_id: str
    content_type: ContentType
    subject_id: Optional[str] = None
    topic_id: Optional[str] = None
    section_id: Optional[str] = None
    completed: bool
    score: Optional[float] = None
    first_attempt_score: Optional[float] = None
    best_score: Optional[float] = None
    attempts: int
    time_spent: int
    first_completed_at: Optional[datetime] = None
    last_daily_xp_date: Optional[date] = None
    daily_xp_count: int
    total_xp_earned: int
    is_bonus_record: bool
    last_accessed: Optional[datetime] = None

    class Config:
        from_attributes = True


class AchievementDisplay(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    rarity: AchievementRarity
    xp_reward: int
    unlocked_at: Optional[datetime] = None


class CompletionBonusDisplay(BaseModel):
    group: Literal["section", "flashcard-topic", "media-topic"]
    sentinel_id: str
    xp_amount: int


class ProgressUpdateResult(BaseModel):
    xp_earned: int = Field(..., description="All XP credited by this event: content + bonus + achievements")
    base_xp: int
    bonus_xp: int = 0
    achievement_xp: int = 0
    classification: RewardClassification
    is_first_time: bool
    is_daily_xp: bool
    leveled_up: bool
    new_level: int
    total_xp: int
    completion_bonus: Optional[CompletionBonusDisplay] = None
    new_achievements: List[AchievementDisplay] = []
    message: str
    progress: ProgressRecordDisplay


# --- Daily quizzes ---

class DailyQuizRequest(BaseModel):
    mode: DailyQuizMode
    score: float = Field(0, ge=0, le=100, description="Quiz score percentage; drives the timed-quiz bonus")
    time_spent: int = Field(0, ge=0)


class DailyQuizResult(BaseModel):
    mode: DailyQuizMode
    xp_earned: int
    base_xp: int
    performance_bonus: int = 0
    achievement_xp: int = 0
    already_completed_today: bool
    leveled_up: bool
    new_level: int
    total_xp: int
    new_achievements: List[AchievementDisplay] = []
    message: str


# --- Statistics ---

class UserStats(BaseModel):
    """Aggregates the achievement catalog is evaluated against."""
    total_xp: int = 0
    level: int = 1
    total_quizzes_completed: int = 0
    total_flashcards_completed: int = 0
    total_media_completed: int = 0
    average_score: int = 0
    perfect_scores: int = 0
    current_streak: int = 0
    max_streak: int = 0
    subjects_completed: int = 0
    topics_completed: int = 0
    study_days: int = 0


class LevelProgress(BaseModel):
    level: int
    total_xp: int
    current_level_xp: int # XP earned inside the current level
    xp_for_next_level: int
    progress_percentage: float


class UserStatsDisplay(BaseModel):
    stats: UserStats
    level_progress: LevelProgress
    achievements_unlocked: int
    achievements_total: int

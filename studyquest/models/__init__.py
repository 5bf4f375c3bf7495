# This file makes the 'models' directory a Python package.

from studyquest.core.database import Base # Base must be imported before models that use it

from .enums import ( # Import all enums
    ContentType, Difficulty, UserRole, MasteryLevel, RewardClassification,
    XPSource, RankChangeType, AchievementRarity, DailyQuizMode
)

from .user_model import User
from .content_model import (
    Subject,
    Topic,
    QuestionSection,
    Question,
    Flashcard,
    Media
)
from .user_progress_model import ProgressRecord
from .achievement_model import UserAchievement
from .xp_ledger_model import XPLedgerEntry
from .rank_model import DailyRankSnapshot, DailyRankEntry, UserRankHistory


__all__ = [
    "Base",
    # Models
    "User",
    "Subject",
    "Topic",
    "QuestionSection",
    "Question",
    "Flashcard",
    "Media",
    "ProgressRecord",
    "UserAchievement",
    "XPLedgerEntry",
    "DailyRankSnapshot",
    "DailyRankEntry",
    "UserRankHistory",
    # Enums
    "ContentType",
    "Difficulty",
    "UserRole",
    "MasteryLevel",
    "RewardClassification",
    "XPSource",
    "RankChangeType",
    "AchievementRarity",
    "DailyQuizMode",
]

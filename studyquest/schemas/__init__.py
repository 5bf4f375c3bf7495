# This file makes the 'schemas' directory a Python package.

from .user_schema import (
    UserCreateInternal, UserDisplay, TokenData, UserRegisterRequest, AuthResponse
)

from .progress_schema import (
    QuestionProgressData, FlashcardProgressData, MediaProgressData, SectionProgressData, ProgressData,
    ProgressUpdateRequest, ProgressRecordDisplay, ProgressUpdateResult, CompletionBonusDisplay,
    AchievementDisplay, DailyQuizRequest, DailyQuizResult,
    UserStats, LevelProgress, UserStatsDisplay
)

from .leaderboard_schema import (
    LeaderboardEntry, Pagination, LeaderboardPage,
    SnapshotRunResult, SnapshotStatus, RankHistoryEntry
)


__all__ = [
    # User Schemas
    "UserCreateInternal", "UserDisplay", "TokenData", "UserRegisterRequest", "AuthResponse",

    # Progress Schemas
    "QuestionProgressData", "FlashcardProgressData", "MediaProgressData", "SectionProgressData", "ProgressData",
    "ProgressUpdateRequest", "ProgressRecordDisplay", "ProgressUpdateResult", "CompletionBonusDisplay",
    "AchievementDisplay", "DailyQuizRequest", "DailyQuizResult",
    "UserStats", "LevelProgress", "UserStatsDisplay",

    # Leaderboard Schemas
    "LeaderboardEntry", "Pagination", "LeaderboardPage",
    "SnapshotRunResult", "SnapshotStatus", "RankHistoryEntry",
]

import enum

class ContentType(str, enum.Enum):
    QUESTION = "question"
    FLASHCARD = "flashcard"
    MEDIA = "media"
    SECTION = "section" # Only used by section-completion bonus records
    QUIZ = "quiz" # Daily random/timed quiz tracking records

class Difficulty(str, enum.Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

class UserRole(str, enum.Enum):
    STUDENT = "student" # Learners; the only role that is ranked on the leaderboard
    ADMIN = "admin"

class MasteryLevel(str, enum.Enum):
    LEARNING = "Learning"
    REVIEWING = "Reviewing"
    MASTERED = "Mastered"

class RewardClassification(str, enum.Enum):
    FIRST_TIME = "first-time"
    DAILY_REPEAT = "daily-repeat"
    NONE = "none"

class XPSource(str, enum.Enum):
    CONTENT = "content"
    DAILY_REPEAT = "daily_repeat"
    COMPLETION_BONUS = "completion_bonus"
    ACHIEVEMENT = "achievement"
    DAILY_QUIZ = "daily_quiz"

class RankChangeType(str, enum.Enum):
    UP = "up"
    DOWN = "down"
    NONE = "none"
    NEW = "new" # No rank in the previous snapshot

class AchievementRarity(str, enum.Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

class DailyQuizMode(str, enum.Enum):
    RANDOM = "random"
    TIMED = "timed"

# Enums are stored as VARCHAR columns (SQLAlchemy Enum with native_enum=False)
# so the same models work on PostgreSQL and on the SQLite test database.

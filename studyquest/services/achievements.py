from sqlalchemy.orm import Session
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from studyquest.core.clock import Clock
from studyquest.crud import achievement_crud, stats_crud
from studyquest.models.enums import AchievementRarity, XPSource
from studyquest.schemas.progress_schema import AchievementDisplay, UserStats
from studyquest.services import xp_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    icon: str
    rarity: AchievementRarity
    stat: str # UserStats field the requirement is measured on
    threshold: int
    xp_reward: int

    def is_met(self, stats: UserStats) -> bool:
        return getattr(stats, self.stat) >= self.threshold

    def to_display(self, unlocked_at=None) -> AchievementDisplay:
        return AchievementDisplay(
            id=self.id,
            name=self.name,
            description=self.description,
            icon=self.icon,
            rarity=self.rarity,
            xp_reward=self.xp_reward,
            unlocked_at=unlocked_at,
        )


ACHIEVEMENTS: List[Achievement] = [
    # Common
    Achievement("first_steps", "First Steps", "Complete your first quiz", "🎯", AchievementRarity.COMMON, "total_quizzes_completed", 1, 50),
    Achievement("knowledge_seeker", "Knowledge Seeker", "Complete 10 quizzes", "📖", AchievementRarity.COMMON, "total_quizzes_completed", 10, 100),
    Achievement("flashcard_novice", "Flashcard Novice", "Complete 25 flashcards", "🃏", AchievementRarity.COMMON, "total_flashcards_completed", 25, 75),
    Achievement("media_explorer", "Media Explorer", "Complete 5 media items", "🎬", AchievementRarity.COMMON, "total_media_completed", 5, 100),
    Achievement("level_up", "Level Up!", "Reach level 5", "⬆️", AchievementRarity.COMMON, "level", 5, 150),
    # Rare
    Achievement("streak_starter", "Streak Starter", "Maintain a 3-day study streak", "🔥", AchievementRarity.RARE, "current_streak", 3, 200),
    Achievement("dedicated_learner", "Dedicated Learner", "Complete 50 quizzes", "💪", AchievementRarity.RARE, "total_quizzes_completed", 50, 300),
    Achievement("high_achiever", "High Achiever", "Maintain an 80% average score", "🎖️", AchievementRarity.RARE, "average_score", 80, 250),
    Achievement("topic_master", "Topic Master", "Complete 5 topics", "🏆", AchievementRarity.RARE, "topics_completed", 5, 400),
    Achievement("flashcard_adept", "Flashcard Adept", "Complete 100 flashcards", "🧠", AchievementRarity.RARE, "total_flashcards_completed", 100, 300),
    # Epic
    Achievement("streak_master", "Streak Master", "Maintain a 7-day study streak", "🔥", AchievementRarity.EPIC, "current_streak", 7, 500),
    Achievement("quiz_champion", "Quiz Champion", "Score 90%+ on 10 quizzes", "👑", AchievementRarity.EPIC, "perfect_scores", 10, 600),
    Achievement("subject_conqueror", "Subject Conqueror", "Complete an entire subject", "🏅", AchievementRarity.EPIC, "subjects_completed", 1, 800),
    Achievement("knowledge_master", "Knowledge Master", "Reach level 15", "🎓", AchievementRarity.EPIC, "level", 15, 750),
    Achievement("perfectionist", "Perfectionist", "Maintain a 95% average score", "💎", AchievementRarity.EPIC, "average_score", 95, 1000),
    # Legendary
    Achievement("unstoppable_streak", "Unstoppable", "Maintain a 30-day study streak", "⚡", AchievementRarity.LEGENDARY, "current_streak", 30, 2000),
    Achievement("engineering_legend", "Engineering Legend", "Complete all subjects", "🌟", AchievementRarity.LEGENDARY, "subjects_completed", 3, 3000),
    Achievement("quiz_grandmaster", "Quiz Grandmaster", "Complete 200 quizzes", "🏆", AchievementRarity.LEGENDARY, "total_quizzes_completed", 200, 2500),
    Achievement("knowledge_deity", "Knowledge Deity", "Reach level 50", "👑", AchievementRarity.LEGENDARY, "level", 50, 5000),
]

ACHIEVEMENTS_BY_ID: Dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}

# Every pass unlocks at least one achievement, so the catalog size bounds the loop
_MAX_PASSES = len(ACHIEVEMENTS) + 1


def check_achievements(stats: UserStats, unlocked_ids) -> List[Achievement]:
    """Catalog entries whose requirement is met and which the user does not have yet."""
    return [a for a in ACHIEVEMENTS if a.id not in unlocked_ids and a.is_met(stats)]


def evaluate_achievements(db: Session, user_id: int, clock: Clock) -> List[Achievement]:
    """
    Unlocks every achievement the user now qualifies for and credits its XP.
    Achievement XP can raise the level, which can satisfy a level achievement,
    so evaluation repeats until a pass unlocks nothing.
    """
    newly_unlocked: List[Achievement] = []
    for _ in range(_MAX_PASSES):
        stats = stats_crud.get_user_stats(db, user_id, clock)
        candidates = check_achievements(stats, achievement_crud.get_unlocked_achievement_ids(db, user_id))
        if not candidates:
            break

        progressed = False
        for achievement in candidates:
            if not achievement_crud.unlock_achievement(db, user_id, achievement.id, achievement.xp_reward, clock.now()):
                continue # unlocked concurrently; that request pays the XP
            xp_service.award_xp(db, user_id, achievement.xp_reward, XPSource.ACHIEVEMENT, clock, reference=achievement.id)
            newly_unlocked.append(achievement)
            progressed = True
        if not progressed:
            break

    if newly_unlocked:
        logger.info(f"User {user_id} unlocked {len(newly_unlocked)} achievement(s): {[a.id for a in newly_unlocked]}")
    return newly_unlocked


def get_user_achievements(db: Session, user_id: int) -> List[AchievementDisplay]:
    """Unlocked achievements with their unlock dates, in unlock order."""
    displays = []
    for row in achievement_crud.get_user_achievements(db, user_id):
        achievement: Optional[Achievement] = ACHIEVEMENTS_BY_ID.get(row.achievement_id)
        if achievement is None:
            logger.warning(f"User {user_id} has unknown achievement id '{row.achievement_id}'; skipping.")
            continue
        displays.append(achievement.to_display(unlocked_at=row.unlocked_at))
    return displays

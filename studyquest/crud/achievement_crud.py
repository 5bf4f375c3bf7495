from sqlalchemy.orm import Session
from typing import List, Set
import logging
from datetime import datetime

from studyquest.models.achievement_model import UserAchievement
from studyquest.crud.db_helpers import insert_if_absent

logger = logging.getLogger(__name__)


def get_user_achievements(db: Session, user_id: int) -> List[UserAchievement]:
    logger.debug(f"Fetching achievements for user_id {user_id}")
    return db.query(UserAchievement).filter(
        UserAchievement.user_id == user_id
    ).order_by(UserAchievement.unlocked_at.asc(), UserAchievement.id.asc()).all()

def get_unlocked_achievement_ids(db: Session, user_id: int) -> Set[str]:
    rows = db.query(UserAchievement.achievement_id).filter(UserAchievement.user_id == user_id).all()
    return {row[0] for row in rows}

def unlock_achievement(db: Session, user_id: int, achievement_id: str, xp_reward: int, unlocked_at: datetime) -> bool:
    """Returns True only if this call created the unlock row (so its XP is paid exactly once)."""
    created = insert_if_absent(
        db,
        UserAchievement,
        {
            "user_id": user_id,
            "achievement_id": achievement_id,
            "xp_reward": xp_reward,
            "unlocked_at": unlocked_at,
        },
        ("user_id", "achievement_id"),
    )
    if created:
        logger.info(f"User {user_id} unlocked achievement '{achievement_id}' (+{xp_reward} XP).")
    else:
        logger.debug(f"Achievement '{achievement_id}' already unlocked for user {user_id}.")
    return created

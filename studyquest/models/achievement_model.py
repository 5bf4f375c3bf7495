from sqlalchemy import Column, Integer, String, TIMESTAMP, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from studyquest.core.database import Base

class UserAchievement(Base):
    """An achievement from the static catalog unlocked by a user. At most one row per (user, achievement)."""
    __tablename__ = "user_achievements"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    achievement_id = Column(String(64), nullable=False) # Key in services.achievements.ACHIEVEMENTS
    xp_reward = Column(Integer, nullable=False, default=0)
    unlocked_at = Column(TIMESTAMP(timezone=True), nullable=False)

    user = relationship("User", back_populates="achievements")

    __table_args__ = (
        UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievement'),
    )

    def __repr__(self):
        return f"<UserAchievement(user_id={self.user_id}, achievement_id='{self.achievement_id}')>"

from sqlalchemy import Column, Integer, String, TIMESTAMP, Date, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from studyquest.core.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False) # Firebase User ID
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False, default="")

    role = Column(String(50), nullable=False, default='student') # student or admin

    # Gamification state. `level` is always derived from `total_xp` when XP is credited.
    total_xp = Column(Integer, nullable=False, default=0, index=True)
    level = Column(Integer, nullable=False, default=1)
    current_streak = Column(Integer, nullable=False, default=0)
    max_streak = Column(Integer, nullable=False, default=0)
    last_active_date = Column(Date, nullable=True) # Local calendar date of the last activity

    # Relationships to other tables
    progress_entries = relationship("ProgressRecord", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    achievements = relationship("UserAchievement", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    xp_ledger_entries = relationship("XPLedgerEntry", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    rank_history = relationship(
        "UserRankHistory",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="UserRankHistory.date",
    )

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('email', name='uq_user_email'),
        UniqueConstraint('firebase_uid', name='uq_user_firebase_uid'),
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}', total_xp={self.total_xp}, level={self.level})>"

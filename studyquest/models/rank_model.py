from sqlalchemy import (
    Column, Integer, Date, TIMESTAMP, ForeignKey, UniqueConstraint, Enum as SAEnum
)
from sqlalchemy.orm import relationship

from studyquest.core.database import Base
from studyquest.models.enums import RankChangeType

class DailyRankSnapshot(Base):
    """Global standings for one calendar day. Written once by the daily job, never updated."""
    __tablename__ = "daily_rank_snapshots"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)

    rankings = relationship(
        "DailyRankEntry",
        back_populates="snapshot",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DailyRankEntry.rank",
    )

    # The unique date is also what stops two overlapping job runs from both writing
    __table_args__ = (UniqueConstraint('date', name='uq_daily_rank_snapshot_date'),)

    def __repr__(self):
        return f"<DailyRankSnapshot(id={self.id}, date={self.date})>"

class DailyRankEntry(Base):
    __tablename__ = "daily_rank_entries"

    id = Column(Integer, primary_key=True, index=True)
    snapshot_id = Column(Integer, ForeignKey("daily_rank_snapshots.id", ondelete="CASCADE"), nullable=False, index=True)
    # No FK to users: a snapshot keeps describing the day even after an account is deleted
    user_id = Column(Integer, nullable=False)
    rank = Column(Integer, nullable=False)
    total_xp = Column(Integer, nullable=False)
    level = Column(Integer, nullable=False)
    current_streak = Column(Integer, nullable=False, default=0)
    max_streak = Column(Integer, nullable=False, default=0)
    previous_rank = Column(Integer, nullable=True)
    rank_change = Column(Integer, nullable=False, default=0) # previous_rank - rank, positive = improved
    rank_change_type = Column(SAEnum(RankChangeType, name="rank_change_type_enum", native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)

    snapshot = relationship("DailyRankSnapshot", back_populates="rankings")

    __table_args__ = (UniqueConstraint('snapshot_id', 'user_id', name='uq_daily_rank_entry_user'),)

class UserRankHistory(Base):
    """Per-user rank history, bounded to the most recent RANK_HISTORY_LIMIT days."""
    __tablename__ = "user_rank_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    rank = Column(Integer, nullable=False)
    total_xp = Column(Integer, nullable=False)

    user = relationship("User", back_populates="rank_history")

    __table_args__ = (UniqueConstraint('user_id', 'date', name='uq_user_rank_history_day'),)

    def __repr__(self):
        return f"<UserRankHistory(user_id={self.user_id}, date={self.date}, rank={self.rank})>"

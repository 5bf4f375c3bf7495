from sqlalchemy import (
    Column, Integer, String, Boolean, TIMESTAMP, Date, ForeignKey, UniqueConstraint, Index, Float, JSON,
    Enum as SAEnum
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from studyquest.core.database import Base
from studyquest.models.enums import ContentType

class ProgressRecord(Base):
    """
    Completion state of one content item for one user.

    Also used for synthetic bonus records (`is_bonus_record=True`) whose only
    purpose is to prove that a section/topic completion bonus was paid; the
    unique key below is what makes paying a bonus twice impossible.
    """
    __tablename__ = "user_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # Plain string rather than a FK: holds catalog ids as well as sentinel keys like "flashcard-topic-<id>"
    content_id = Column(String(64), nullable=False)
    content_type = Column(SAEnum(ContentType, name="content_type_enum", native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)

    # Denormalized grouping keys
    subject_id = Column(String(36), nullable=True)
    topic_id = Column(String(36), nullable=True)
    section_id = Column(String(36), nullable=True)

    completed = Column(Boolean, nullable=False, default=False)
    score = Column(Float, nullable=True)
    first_attempt_score = Column(Float, nullable=True)
    best_score = Column(Float, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    time_spent = Column(Integer, nullable=False, default=0) # seconds, cumulative

    # Reward state. first_completed_* are written once and never cleared.
    first_completed_at = Column(TIMESTAMP(timezone=True), nullable=True)
    first_completed_on = Column(Date, nullable=True) # Local calendar date of first_completed_at
    last_daily_xp_date = Column(Date, nullable=True)
    daily_xp_count = Column(Integer, nullable=False, default=0)
    total_xp_earned = Column(Integer, nullable=False, default=0)

    is_bonus_record = Column(Boolean, nullable=False, default=False)
    data = Column(JSON, nullable=True)

    last_accessed = Column(TIMESTAMP(timezone=True), server_default=func.now())
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="progress_entries")

    __table_args__ = (
        UniqueConstraint('user_id', 'content_id', 'content_type', name='uq_user_content_progress'),
        Index('ix_user_progress_user_topic', 'user_id', 'topic_id'),
        Index('ix_user_progress_user_section', 'user_id', 'section_id'),
        Index('ix_user_progress_user_subject', 'user_id', 'subject_id'),
    )

    def __repr__(self):
        return (
            f"<ProgressRecord(id={self.id}, user_id={self.user_id}, content_id='{self.content_id}', "
            f"content_type={self.content_type}, completed={self.completed}, attempts={self.attempts})>"
        )

import uuid

from sqlalchemy import (
    Column, Integer, String, ForeignKey, TIMESTAMP,
    Enum as SAEnum
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from studyquest.core.database import Base
from studyquest.models.enums import Difficulty

# The content catalog is owned by the content-management service; the rewards
# engine only reads it to know which items make up a section or a topic.

def _new_id() -> str:
    return str(uuid.uuid4())

def _difficulty_column():
    return Column(
        SAEnum(Difficulty, name="difficulty_enum", native_enum=False, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=Difficulty.BEGINNER,
    )

class Subject(Base):
    __tablename__ = "subjects"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    topics = relationship("Topic", back_populates="subject", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Subject(id={self.id}, name='{self.name}')>"

class Topic(Base):
    __tablename__ = "topics"

    id = Column(String(36), primary_key=True, default=_new_id)
    subject_id = Column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    difficulty = _difficulty_column()

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    subject = relationship("Subject", back_populates="topics")
    sections = relationship("QuestionSection", back_populates="topic", cascade="all, delete-orphan")
    questions = relationship("Question", back_populates="topic", cascade="all, delete-orphan")
    flashcards = relationship("Flashcard", back_populates="topic", cascade="all, delete-orphan")
    media_items = relationship("Media", back_populates="topic", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Topic(id={self.id}, name='{self.name}', subject_id={self.subject_id})>"

class QuestionSection(Base):
    __tablename__ = "question_sections"

    id = Column(String(36), primary_key=True, default=_new_id)
    topic_id = Column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    section_order = Column(Integer, nullable=False, default=0)
    difficulty = _difficulty_column()

    topic = relationship("Topic", back_populates="sections")
    questions = relationship("Question", back_populates="section")

    def __repr__(self):
        return f"<QuestionSection(id={self.id}, title='{self.title}', topic_id={self.topic_id})>"

class Question(Base):
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=_new_id)
    topic_id = Column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    section_id = Column(String(36), ForeignKey("question_sections.id", ondelete="SET NULL"), nullable=True, index=True)
    prompt = Column(String(1000), nullable=False, default="")
    difficulty = _difficulty_column()

    topic = relationship("Topic", back_populates="questions")
    section = relationship("QuestionSection", back_populates="questions")

class Flashcard(Base):
    __tablename__ = "flashcards"

    id = Column(String(36), primary_key=True, default=_new_id)
    topic_id = Column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    front = Column(String(1000), nullable=False, default="")
    difficulty = _difficulty_column()

    topic = relationship("Topic", back_populates="flashcards")

class Media(Base):
    __tablename__ = "media"

    id = Column(String(36), primary_key=True, default=_new_id)
    topic_id = Column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="")
    difficulty = _difficulty_column()

    topic = relationship("Topic", back_populates="media_items")

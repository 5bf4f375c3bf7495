"""
Shared fixtures: an in-memory SQLite database recreated for every test, a
fixed clock that tests move forward by hand, and factories for learners and
catalog content.
"""
import os
import uuid
from datetime import date, datetime, time, timedelta, timezone

# Must be set before studyquest.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("APP_TIMEZONE", "UTC")

import pytest
from fastapi.testclient import TestClient

from studyquest.core.clock import Clock
from studyquest.core.database import Base, SessionLocal, engine, get_db
from studyquest.core.dependencies import get_clock, get_current_user, get_optional_current_user
from studyquest import models
from studyquest.models.enums import Difficulty, UserRole
from studyquest.main import app


class FixedClock(Clock):
    """A clock that only moves when a test tells it to."""

    def __init__(self, moment: datetime):
        super().__init__("UTC")
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def set_day(self, day: date, hour: int = 12):
        self.moment = datetime.combine(day, time(hour=hour), tzinfo=timezone.utc)

    def advance(self, days: int = 0, hours: int = 0):
        self.moment = self.moment + timedelta(days=days, hours=hours)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# --- Factories ---

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(name="Test Learner", total_xp=0, role=UserRole.STUDENT.value, **fields):
        counter["n"] += 1
        n = counter["n"]
        user = models.User(
            firebase_uid=f"firebase-uid-{n}",
            email=f"learner{n}@example.com",
            name=name,
            role=role,
            total_xp=total_xp,
            level=total_xp // 100 + 1,
            current_streak=fields.pop("current_streak", 0),
            max_streak=fields.pop("max_streak", 0),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_catalog(db):
    """
    Builds one subject with one topic holding the requested number of items.
    Extra filler topics keep single completions from tipping the whole
    subject over the 80% completion line.
    """
    def _make_catalog(questions=0, flashcards=0, media=0, difficulty=Difficulty.BEGINNER, filler_topics=4):
        subject = models.Subject(id=str(uuid.uuid4()), name="Electrical Engineering")
        topic = models.Topic(id=str(uuid.uuid4()), subject=subject, name="Circuits", difficulty=difficulty)
        section = models.QuestionSection(id=str(uuid.uuid4()), topic=topic, title="Ohm's law", difficulty=difficulty)
        db.add_all([subject, topic, section])

        question_ids = []
        for i in range(questions):
            q = models.Question(id=str(uuid.uuid4()), topic=topic, section=section, prompt=f"Q{i}", difficulty=difficulty)
            db.add(q)
            question_ids.append(q.id)
        flashcard_ids = []
        for i in range(flashcards):
            f = models.Flashcard(id=str(uuid.uuid4()), topic=topic, front=f"F{i}", difficulty=difficulty)
            db.add(f)
            flashcard_ids.append(f.id)
        media_ids = []
        for i in range(media):
            m = models.Media(id=str(uuid.uuid4()), topic=topic, title=f"M{i}", difficulty=difficulty)
            db.add(m)
            media_ids.append(m.id)

        for i in range(filler_topics):
            filler = models.Topic(id=str(uuid.uuid4()), subject=subject, name=f"Filler {i}", difficulty=difficulty)
            db.add(filler)
            db.add(models.Media(id=str(uuid.uuid4()), topic=filler, title="Filler media"))

        db.commit()
        return {
            "subject_id": subject.id,
            "topic_id": topic.id,
            "section_id": section.id,
            "question_ids": question_ids,
            "flashcard_ids": flashcard_ids,
            "media_ids": media_ids,
        }

    return _make_catalog


# --- API client ---

@pytest.fixture
def auth_state():
    """The user the API treats as authenticated; None means anonymous."""
    return {"user": None}


@pytest.fixture
def client(db, clock, auth_state):
    def override_get_db():
        yield db

    async def override_current_user():
        if auth_state["user"] is None:
            from fastapi import HTTPException, status
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated. Bearer token required.")
        return db.get(models.User, auth_state["user"].id)

    async def override_optional_user():
        if auth_state["user"] is None:
            return None
        return db.get(models.User, auth_state["user"].id)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_current_user] = override_current_user
    app.dependency_overrides[get_optional_current_user] = override_optional_user

    # No context manager: startup handlers (Firebase, create_all) are not run
    yield TestClient(app)

    app.dependency_overrides.clear()

from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, func
from sqlalchemy.exc import IntegrityError
import logging
from typing import List, Optional, Sequence, Set
from datetime import date, timedelta

from studyquest.models.user_model import User
from studyquest.models.enums import UserRole
from studyquest.schemas.user_schema import UserCreateInternal

logger = logging.getLogger(__name__)


def get_user_by_id(db: Session, user_id: int) -> User | None:
    """Fetches a user by their internal database ID."""
    logger.debug(f"Fetching user by ID: {user_id}")
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> User | None:
    """Fetches a user by their email address."""
    logger.debug(f"Fetching user by email: {email}")
    return db.query(User).filter(User.email == email).first()

def get_user_by_firebase_uid(db: Session, firebase_uid: str) -> User | None:
    """Fetches a user by their Firebase UID."""
    logger.debug(f"Fetching user by Firebase UID: {firebase_uid}")
    return db.query(User).filter(User.firebase_uid == firebase_uid).first()

def create_user(db: Session, user_data: UserCreateInternal) -> User | None:
    """
    Creates a new user in the database.
    Assumes firebase_uid and email are provided from a verified Firebase ID token.
    """
    logger.info(f"Attempting to create user for email: {user_data.email}, Firebase UID: {user_data.firebase_uid}")

    # The /register route checks as well; this guards direct callers
    if get_user_by_firebase_uid(db, user_data.firebase_uid):
        logger.warning(f"User creation failed: Firebase UID {user_data.firebase_uid} already exists.")
        return None
    if get_user_by_email(db, user_data.email):
        logger.warning(f"User creation failed: Email {user_data.email} already exists.")
        return None

    db_user = User(
        firebase_uid=user_data.firebase_uid,
        email=user_data.email,
        name=user_data.name or "",
        role=user_data.role or UserRole.STUDENT.value,
        total_xp=0,
        level=1,
        current_streak=0,
        max_streak=0,
    )

    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        logger.info(f"User created successfully: {db_user.email} (ID: {db_user.id}).")
        return db_user
    except IntegrityError as e:
        db.rollback()
        # A concurrent registration for the same account won the unique constraint
        logger.error(f"Database integrity error during user creation for {user_data.email}: {e}", exc_info=True)
        return None


# --- XP and streak state ---

def add_xp(db: Session, user_id: int, amount: int) -> Optional[int]:
    """
    Adds `amount` to the user's XP with a relative UPDATE (total_xp = total_xp + amount)
    and returns the new total, or None if the user no longer exists.
    """
    updated = db.query(User).filter(User.id == user_id).update(
        {User.total_xp: User.total_xp + amount},
        synchronize_session=False
    )
    if updated == 0:
        return None
    return db.query(User.total_xp).filter(User.id == user_id).scalar()

def set_level(db: Session, user_id: int, level: int) -> None:
    db.query(User).filter(User.id == user_id).update({User.level: level}, synchronize_session=False)

def get_xp_and_level(db: Session, user_id: int) -> Optional[tuple]:
    """Reads (total_xp, level) straight from the database, bypassing any cached User instance."""
    return db.query(User.total_xp, User.level).filter(User.id == user_id).first()

def touch_streak(db: Session, user_id: int, today: date) -> Optional[int]:
    """
    Records activity on `today` (local calendar date). Same day keeps the
    streak, the next day extends it, anything longer resets it to 1.
    Returns the resulting streak, or None if the user does not exist.
    """
    row = db.query(User.current_streak, User.max_streak, User.last_active_date).filter(User.id == user_id).first()
    if row is None:
        return None
    current_streak, max_streak, last_active = row

    if last_active == today:
        return current_streak
    if last_active is not None and last_active == today - timedelta(days=1):
        new_streak = (current_streak or 0) + 1
    else:
        new_streak = 1

    # Conditional on the value we read; if another request touched the streak first, theirs stands
    previous_day_filter = User.last_active_date.is_(None) if last_active is None else User.last_active_date == last_active
    updated = db.query(User).filter(User.id == user_id, previous_day_filter).update(
        {
            User.current_streak: new_streak,
            User.max_streak: max(max_streak or 0, new_streak),
            User.last_active_date: today,
        },
        synchronize_session=False
    )
    if updated == 0:
        logger.debug(f"Streak for user {user_id} already touched by a concurrent request.")
        return db.query(User.current_streak).filter(User.id == user_id).scalar()

    logger.info(f"User {user_id} streak is now {new_streak} (last active {last_active}, today {today}).")
    return new_streak


# --- Ranking queries ---
# Every ranking uses the same total order: total_xp descending, then id ascending.

def _learners_query(db: Session):
    return db.query(User).filter(User.role == UserRole.STUDENT.value)

def get_ranked_learners(db: Session, skip: int = 0, limit: Optional[int] = None) -> List[User]:
    logger.debug(f"Fetching ranked learners (skip={skip}, limit={limit})")
    query = _learners_query(db).order_by(User.total_xp.desc(), User.id.asc()).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()

def count_learners(db: Session) -> int:
    return db.query(func.count(User.id)).filter(User.role == UserRole.STUDENT.value).scalar() or 0

def get_learner_rank(db: Session, user: User) -> Optional[int]:
    """
    Live rank of a single learner without loading the whole table:
    1 + (learners with more XP) + (learners with equal XP and a smaller id).
    """
    if user.role != UserRole.STUDENT.value:
        return None
    ahead = db.query(func.count(User.id)).filter(
        User.role == UserRole.STUDENT.value,
        or_(
            User.total_xp > user.total_xp,
            and_(User.total_xp == user.total_xp, User.id < user.id),
        )
    ).scalar() or 0
    return ahead + 1

def get_existing_user_ids(db: Session, user_ids: Sequence[int]) -> Set[int]:
    if not user_ids:
        return set()
    return {row[0] for row in db.query(User.id).filter(User.id.in_(list(user_ids))).all()}

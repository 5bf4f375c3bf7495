from fastapi import APIRouter, Depends, HTTPException, status, Body
from sqlalchemy.orm import Session
import logging

from studyquest.core.database import get_db
from studyquest.core.dependencies import get_current_active_user
from studyquest.core.security import verify_firebase_id_token
from studyquest.crud import user_crud
from studyquest.models.enums import UserRole
from studyquest.models.user_model import User
from studyquest.schemas.user_schema import UserRegisterRequest, UserDisplay, AuthResponse, UserCreateInternal

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


def _conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_learner(
    payload: UserRegisterRequest = Body(...),
    db: Session = Depends(get_db)
):
    """
    Provision a learner account for a user who already signed up with Firebase.
    New learners start with 0 XP at level 1 and are ranked from the next daily snapshot.
    """
    token_data = verify_firebase_id_token(payload.firebase_id_token)

    if user_crud.get_user_by_firebase_uid(db, firebase_uid=token_data.firebase_uid):
        logger.warning(f"Registration rejected: Firebase UID {token_data.firebase_uid} is already registered.")
        raise _conflict("User with this Firebase UID already exists.")
    if user_crud.get_user_by_email(db, email=token_data.email):
        logger.warning(f"Registration rejected: email {token_data.email} is already registered.")
        raise _conflict("User with this email already exists.")

    learner = user_crud.create_user(db, user_data=UserCreateInternal(
        firebase_uid=token_data.firebase_uid,
        email=token_data.email,
        name=(payload.name or token_data.name or "").strip(),
        role=UserRole.STUDENT.value, # admins are promoted out of band
    ))
    if learner is None:
        # Lost a race against a concurrent registration of the same account
        raise _conflict("User account already exists.")

    logger.info(f"Registered learner {learner.email} (ID: {learner.id}).")
    return AuthResponse(message="User registered successfully.", user=UserDisplay.model_validate(learner))


@router.get("/me", response_model=UserDisplay)
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    """The authenticated learner, including XP, level and streak."""
    return current_user

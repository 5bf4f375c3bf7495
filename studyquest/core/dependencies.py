from fastapi import Depends, Header, HTTPException, status, Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session
from typing import Optional
import logging

from studyquest.core.clock import Clock, get_clock # Re-exported for routes
from studyquest.core.database import get_db # Re-exported for routes
from studyquest.core.security import verify_firebase_id_token, verify_cron_secret
from studyquest.crud.user_crud import get_user_by_firebase_uid
from studyquest.models.user_model import User

logger = logging.getLogger(__name__)


def _bearer_token(request: Request) -> Optional[str]:
    """The token from `Authorization: Bearer <token>`, or None when the header is absent or not a bearer header."""
    scheme, token = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def _resolve_learner(db: Session, token: str) -> User:
    token_data = verify_firebase_id_token(token)
    user = get_user_by_firebase_uid(db, firebase_uid=token_data.firebase_uid)
    if user is None:
        # Authenticated with Firebase but never provisioned through /auth/register
        logger.warning(f"No account for Firebase UID {token_data.firebase_uid}; /auth/register was not completed.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account not found or not fully registered in the system.",
        )
    logger.debug(f"Authenticated user retrieved: {user.email} (ID: {user.id})")
    return user


async def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    The learner behind the Firebase ID token in the Authorization header.
    401 without a valid bearer token, 403 when the Firebase account has no
    learner account yet.
    """
    token = _bearer_token(request)
    if token is None:
        logger.warning("Missing or invalid Bearer token in Authorization header.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Bearer token required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _resolve_learner(db, token)


async def get_optional_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """
    Like get_current_user for endpoints that also serve anonymous visitors
    (the leaderboard). A token that is present but invalid is still rejected.
    """
    if not request.headers.get("Authorization"):
        return None
    return await get_current_user(request, db)


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    # Accounts have no suspended state yet; every provisioned learner is active
    return current_user


async def require_cron_secret(x_api_key: Optional[str] = Header(None)) -> None:
    """Guards the rank snapshot trigger with the shared secret in the `x-api-key` header."""
    if not verify_cron_secret(x_api_key):
        logger.warning("Rejected rank snapshot trigger: missing or invalid x-api-key.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key.",
        )


__all__ = [
    "get_db",
    "get_clock",
    "Clock",
    "get_current_user",
    "get_optional_current_user",
    "get_current_active_user",
    "require_cron_secret",
]

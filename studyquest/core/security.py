import logging
import secrets
from typing import Optional

from fastapi import HTTPException, status
from firebase_admin import auth
from firebase_admin.auth import InvalidIdTokenError, ExpiredIdTokenError, RevokedIdTokenError

from studyquest.core.config import settings
from studyquest.core.firebase_config import get_firebase_app
from studyquest.schemas.user_schema import TokenData

logger = logging.getLogger(__name__)

_TOKEN_ERROR_DETAILS = {
    ExpiredIdTokenError: "Authentication token has expired. Please log in again.",
    RevokedIdTokenError: "Authentication token has been revoked. Please log in again.",
}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_firebase_id_token(id_token: str) -> TokenData:
    """
    Verifies a Firebase ID token and returns the learner identity it carries.

    Raises 401 for invalid, expired or revoked tokens and for tokens without a
    uid or email claim; 500 when the Admin SDK itself fails.
    """
    try:
        decoded_token = auth.verify_id_token(id_token, app=get_firebase_app(), check_revoked=True)
    except (InvalidIdTokenError, ExpiredIdTokenError, RevokedIdTokenError) as e:
        # Expired/Revoked subclass InvalidIdTokenError, so look up the most specific message
        detail = next(
            (msg for error_type, msg in _TOKEN_ERROR_DETAILS.items() if isinstance(e, error_type)),
            "Invalid or expired authentication token.",
        )
        logger.warning(f"Firebase ID token rejected: {e}")
        raise _unauthorized(detail)
    except Exception as e:
        logger.error(f"Unexpected error while verifying a Firebase ID token: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not verify authentication token due to a server error.",
        )

    firebase_uid = decoded_token.get("uid")
    email = decoded_token.get("email")
    if not firebase_uid or not email:
        logger.warning("Firebase ID token is missing the 'uid' or 'email' claim.")
        raise _unauthorized("Invalid authentication credentials: Missing essential token claims.")

    logger.debug(f"Firebase ID token verified for UID: {firebase_uid}")
    return TokenData(firebase_uid=firebase_uid, email=email, name=decoded_token.get("name"))


def verify_cron_secret(provided_key: Optional[str]) -> bool:
    """
    Checks the scheduler's shared secret. With no CRON_SECRET configured
    every caller is accepted (development setups).
    """
    expected = settings.CRON_SECRET
    if not expected:
        return True
    if not provided_key:
        return False
    return secrets.compare_digest(provided_key, expected)

import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials

from studyquest.core.config import settings

logger = logging.getLogger(__name__)


def _load_credentials() -> credentials.Base:
    """
    Service account file from GOOGLE_APPLICATION_CREDENTIALS when configured,
    otherwise the runtime's application default credentials (Cloud Run, GKE).
    """
    cred_path: Optional[str] = settings.GOOGLE_APPLICATION_CREDENTIALS
    if not cred_path:
        logger.info("GOOGLE_APPLICATION_CREDENTIALS not set; using application default credentials.")
        return credentials.ApplicationDefault()
    if not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase service account key file not found at path: {cred_path}")
    return credentials.Certificate(cred_path)


def initialize_firebase_app() -> firebase_admin.App:
    """Initializes the default Firebase app once per process and returns it."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass # not initialized yet

    try:
        options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
        app = firebase_admin.initialize_app(_load_credentials(), options)
    except Exception as e:
        # Re-raised: ID tokens cannot be verified without an app
        logger.error(f"Error initializing Firebase Admin SDK: {e}", exc_info=True)
        raise

    logger.info(f"Firebase Admin SDK initialized (project: {app.project_id or 'from credentials'}).")
    return app


def get_firebase_app() -> firebase_admin.App:
    return initialize_firebase_app()

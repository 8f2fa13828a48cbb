# verity/firebase.py
import logging
import os
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials, firestore

from .config import get_settings

logger = logging.getLogger(__name__)


def _credentials_path() -> str:
    settings = get_settings()
    path = settings.FIREBASE_CREDENTIALS or os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    if not path or not os.path.exists(path):
        raise FileNotFoundError(
            "Firestore is not configured: set FIREBASE_CREDENTIALS or "
            "GOOGLE_APPLICATION_CREDENTIALS to a service account key file "
            f"(got {path!r})."
        )
    return path


@lru_cache(maxsize=1)
def get_db():
    """Firestore client, built on first use.

    Failures are not cached, so a request after the key file appears
    connects normally.
    """
    try:
        app = firebase_admin.get_app()
    except ValueError:
        project_id = get_settings().FIREBASE_PROJECT_ID
        app = firebase_admin.initialize_app(
            credentials.Certificate(_credentials_path()),
            {"projectId": project_id} if project_id else None,
        )
        logger.info("Firestore connected (project=%s)", project_id or "from key")
    return firestore.client(app)

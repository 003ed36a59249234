# firebase_client.py

import logging
import threading
from typing import Optional

import firebase_admin
from firebase_admin import credentials

import config

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()


def _service_account() -> Optional[dict]:
    if not (config.FIREBASE_PROJECT_ID and config.FIREBASE_CLIENT_EMAIL and config.FIREBASE_PRIVATE_KEY):
        return None
    return {
        "type": "service_account",
        "project_id": config.FIREBASE_PROJECT_ID,
        "client_email": config.FIREBASE_CLIENT_EMAIL,
        # Keys pasted into .env files usually carry literal "\n" sequences
        "private_key": config.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
        "token_uri": "https://oauth2.googleapis.com/token",
    }


def init_firebase_admin() -> firebase_admin.App:
    """
    Initialize the Firebase Admin SDK exactly once and return the default app.

    Uses the service-account env vars when all three are set, otherwise
    Application Default Credentials.
    """
    if firebase_admin._apps:
        return firebase_admin.get_app()

    with _init_lock:
        if firebase_admin._apps:
            return firebase_admin.get_app()

        account = _service_account()
        if account:
            cred = credentials.Certificate(account)
        else:
            cred = credentials.ApplicationDefault()

        options = {"projectId": config.FIREBASE_PROJECT_ID} if config.FIREBASE_PROJECT_ID else None
        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin initialized (project=%s)", config.FIREBASE_PROJECT_ID or "<adc>")
        return app

"""Process-wide Firestore client.

The service account comes from FIREBASE_SERVICE_ACCOUNT_KEY (inline JSON) or
FIREBASE_SERVICE_ACCOUNT_PATH. Its credentials also authorize the Identity
Toolkit and Cloud Storage clients, which read them from here.
"""

import json
import logging
from pathlib import Path

from app.core.config import get_settings
from app.infrastructure.firebase._rest_client import FirestoreRESTClient, _get_credentials

logger = logging.getLogger(__name__)

_firestore_client: FirestoreRESTClient | None = None


def _service_account() -> dict | None:
    settings = get_settings()
    if settings.firebase_service_account_key:
        raw = settings.firebase_service_account_key.get_secret_value()
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    if not settings.firebase_service_account_path:
        return None
    key_file = Path(settings.firebase_service_account_path).expanduser()
    if not key_file.is_file():
        logger.warning("Service account file not found: %s", key_file)
        return None
    return json.loads(key_file.read_text(encoding="utf-8"))


def init_firebase() -> bool:
    """Create the Firestore client once.

    Returns False when no service account is configured or it cannot be
    loaded; the app still starts and store-backed routes answer 503.
    """
    global _firestore_client
    if _firestore_client is not None:
        return True
    try:
        account = _service_account()
        if not account:
            logger.warning("No Firebase service account configured; running without a store")
            return False
        project_id = account.get("project_id")
        if not project_id:
            logger.error("Service account JSON has no project_id")
            return False
        _firestore_client = FirestoreRESTClient(project_id, _get_credentials(account))
    except Exception:
        logger.exception("Could not initialize Firestore")
        return False
    logger.info("Firestore ready for project %s", project_id)
    return True


def get_firestore_client() -> FirestoreRESTClient | None:
    return _firestore_client


async def close_firebase() -> None:
    """Release the client's connection pool (app shutdown, scripts)."""
    global _firestore_client
    if _firestore_client is not None:
        await _firestore_client.aclose()
        _firestore_client = None
        logger.info("Firestore client closed")

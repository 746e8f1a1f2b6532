"""Translate Firestore client errors into domain exceptions at the repository boundary."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from app.domain.exceptions import (
    StoreIndexMissingException,
    StorePermissionException,
    StoreUnavailableException,
)
from app.infrastructure.exceptions import (
    FirestoreError,
    FirestoreIndexError,
    FirestorePermissionError,
)

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Re-raise FirestoreError as the matching user-facing domain exception."""
    try:
        yield
    except FirestorePermissionError as e:
        logger.warning("Firestore denied %s: %s", operation, e)
        raise StorePermissionException() from e
    except FirestoreIndexError as e:
        logger.error("Firestore index missing for %s: %s", operation, e)
        raise StoreIndexMissingException() from e
    except FirestoreError as e:
        logger.error("Firestore %s failed (%s %s): %s", operation, e.status_code, e.status, e)
        raise StoreUnavailableException() from e

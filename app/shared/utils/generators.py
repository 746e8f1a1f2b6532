"""Generators for stored-object names and tokens."""

import uuid

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Collision-resistant id (CUID2) that keeps photo object names unique."""
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(f"Expected str from cuid_generator, got {type(result).__name__}")
    return result


def download_token() -> str:
    """Token for a Firebase Storage download URL, in the format the Firebase SDKs write."""
    return str(uuid.uuid4())

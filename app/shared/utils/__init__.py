"""Shared utilities: datetime, generators, sanitization."""

from app.shared.utils.datetime import epoch_millis, utc_now
from app.shared.utils.generators import generate_cuid
from app.shared.utils.sanitization import InputSanitizer

__all__ = [
    "generate_cuid",
    "utc_now",
    "epoch_millis",
    "InputSanitizer",
]

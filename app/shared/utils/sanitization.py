"""Input sanitization for free text shown back in dashboards and exports."""

import html
import re
from pathlib import PurePosixPath
from typing import ClassVar

import nh3


class InputSanitizer:
    """
    Sanitize user inputs before they are stored.

    Ticket text is plain text: markup is removed with nh3 and HTML entities
    are decoded again so "A & B" is stored as typed.
    """

    ALLOWED_TAGS: ClassVar[set[str]] = set()
    FILE_NAME_UNSAFE: ClassVar[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]+")
    FILE_NAME_MAX_LENGTH: ClassVar[int] = 100

    @classmethod
    def sanitize_html(cls, value: str) -> str:
        """Remove all HTML tags with nh3 (strict by default)."""
        if not value:
            return value
        return nh3.clean(value, tags=cls.ALLOWED_TAGS, attributes={})

    @classmethod
    def sanitize_text(cls, value: str | None) -> str:
        """Strip markup and surrounding whitespace; keep the literal text."""
        if not value:
            return ""
        return html.unescape(cls.sanitize_html(value)).strip()

    @classmethod
    def sanitize_file_name(cls, value: str | None) -> str:
        """Reduce an uploaded file name to a safe single path segment."""
        name = PurePosixPath((value or "").replace("\\", "/")).name
        name = cls.FILE_NAME_UNSAFE.sub("_", name).strip("._")
        return name[-cls.FILE_NAME_MAX_LENGTH :] or "photo"

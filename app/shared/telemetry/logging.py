"""Logging configuration for the portal API and its scripts."""

import logging
import sys

from app.core.config import get_settings

# httpx logs full request URLs at INFO; public Identity Toolkit URLs carry the web API key.
_QUIET_LOGGERS = ("httpx", "httpcore", "google.auth")


def setup_logging() -> None:
    """Configure application-wide logging.

    Level is DEBUG when settings.debug is True, otherwise INFO.
    Output goes to stdout.
    """
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

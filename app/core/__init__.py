"""Core: settings, rate limits, exception handlers and application lifespan."""

from app.core.config import get_settings

__all__ = ["get_settings"]

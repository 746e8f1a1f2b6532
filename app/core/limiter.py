"""Rate limiter instance for SlowAPI.

Shared so both main (app.state.limiter) and route modules can use the same
instance without circular imports. Central limit strings and decorators keep
rate limits in one place.
"""

import time
from collections import defaultdict
from threading import Lock

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.domain.exceptions import TooManyAttemptsException

limiter = Limiter(key_func=get_remote_address)

LOGIN_LIMIT = "10/minute"
USER_ADMIN_LIMIT = "30/minute"
WRITE_ENDPOINT_LIMIT = "120/minute"
UPLOAD_LIMIT = "30/minute"
LOGIN_PER_IDENTIFIER_LIMIT = 5  # attempts per minute per username / e-mail
LOGIN_PER_IDENTIFIER_WINDOW_SEC = 60

limit_auth = limiter.limit(LOGIN_LIMIT)
limit_user_admin = limiter.limit(USER_ADMIN_LIMIT)
limit_writes = limiter.limit(WRITE_ENDPOINT_LIMIT)
limit_upload = limiter.limit(UPLOAD_LIMIT)

# In-memory sliding window per login identifier (one process). Identifiers
# come from clients, so idle ones are swept once per window.
_login_attempts: defaultdict[str, list[float]] = defaultdict(list)
_login_attempts_lock = Lock()
_last_sweep = 0.0
_clock = time.monotonic


def _sweep_expired(cutoff: float) -> None:
    for key in [k for k, times in _login_attempts.items() if not times or times[-1] <= cutoff]:
        del _login_attempts[key]


def check_login_rate_per_identifier(identifier: str) -> None:
    """Raise TooManyAttemptsException after too many sign-ins for one identifier."""
    global _last_sweep
    key = (identifier or "").strip().lower()
    if not key:
        return
    now = _clock()
    cutoff = now - LOGIN_PER_IDENTIFIER_WINDOW_SEC
    with _login_attempts_lock:
        if now - _last_sweep >= LOGIN_PER_IDENTIFIER_WINDOW_SEC:
            _sweep_expired(cutoff)
            _last_sweep = now
        _login_attempts[key] = [t for t in _login_attempts[key] if t > cutoff]
        if len(_login_attempts[key]) >= LOGIN_PER_IDENTIFIER_LIMIT:
            raise TooManyAttemptsException()
        _login_attempts[key].append(now)


def reset_login_attempts() -> None:
    """Forget all recorded attempts (tests)."""
    global _last_sweep
    with _login_attempts_lock:
        _login_attempts.clear()
        _last_sweep = 0.0

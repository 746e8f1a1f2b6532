"""Repair Portal API.

Three surfaces share one app: the versioned portal API under /api/v1, the
legacy user routes under /api and the callable functions under /functions.
Startup and shutdown live in app.core.lifespan, error rendering in
app.core.exception_handlers.
"""

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import functions, legacy
from app.api.v1 import api_router
from app.core.config import get_settings
from app.core.exception_handlers import register_exception_handlers
from app.core.lifespan import create_lifespan
from app.core.limiter import limiter
from app.middleware import PathCORSMiddleware, RequestIDMiddleware


def create_app() -> FastAPI:
    """Assemble the app from current settings (tests may clear get_settings first)."""
    settings = get_settings()
    origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Request ID is added last so it is outermost and tags CORS preflights too.
    app.add_middleware(PathCORSMiddleware, allow_origins=origins)
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)

    app.include_router(api_router, prefix="/api/v1")
    app.include_router(legacy.router, prefix="/api", tags=["legacy"])
    app.include_router(functions.router, prefix="/functions", tags=["functions"])
    return app


app = create_app()

"""Path-aware CORS.

The legacy /api/* routes and the callable /functions/* allow any origin, as
the old edge worker and callable functions did; the versioned API keeps the
configured origin allowlist. Raw ASGI dispatching to two CORSMiddleware
instances that wrap the same app.
"""

from typing import Callable

from starlette.middleware.cors import CORSMiddleware

VERSIONED_PREFIX = "/api/v1"


def PathCORSMiddleware(
    app: Callable,
    allow_origins: list[str],
    permissive_prefixes: tuple[str, ...] = ("/api/", "/functions/"),
) -> Callable:
    """Permissive CORS under permissive_prefixes, allowlisted origins elsewhere."""
    permissive = CORSMiddleware(
        app,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    restricted = CORSMiddleware(
        app,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        path = scope.get("path", "")
        if (
            scope["type"] == "http"
            and path.startswith(permissive_prefixes)
            and not path.startswith(VERSIONED_PREFIX)
        ):
            await permissive(scope, receive, send)
        else:
            await restricted(scope, receive, send)

    return asgi_app

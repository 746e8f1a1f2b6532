"""Health check endpoint. No auth; used for liveness probes."""

from fastapi import APIRouter, Request

from app.infrastructure.firebase.client import get_firestore_client
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check(request: Request) -> HealthResponse:
    """Return ok plus whether the document store is configured."""
    hub = getattr(request.app.state, "live_query_hub", None)
    return HealthResponse(
        store="configured" if get_firestore_client() is not None else "unconfigured",
        live_queries=hub.active_count() if hub is not None else 0,
    )

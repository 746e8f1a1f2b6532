"""Health check API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health (liveness)."""

    status: str = Field(default="ok", description="Service status")
    store: str = Field(default="unconfigured", description="configured or unconfigured")
    live_queries: int = Field(default=0, description="Open live subscriptions in this process")


class LegacyHealthResponse(BaseModel):
    """Response for GET /api/health."""

    status: str = "ok"
    message: str = "Repair Portal API is running"
    timestamp: str

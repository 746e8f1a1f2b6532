"""Application lifespan: startup and shutdown.

Single place for startup/shutdown wiring: Firestore and Identity Toolkit
clients, the live-query hub (plus the Redis change relay when enabled),
photo storage and telemetry. No business logic here.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.core.config import get_settings
from app.infrastructure.firebase.client import close_firebase, get_firestore_client, init_firebase
from app.infrastructure.firebase.identity import FirebaseIdentityClient
from app.infrastructure.firebase.live_query import LiveQueryHub
from app.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


def _init_storage(app: FastAPI, credentials) -> None:
    from app.infrastructure.external.storage.factory import StorageFactory

    try:
        app.state.storage = StorageFactory.create_storage_service(credentials=credentials)
    except ValueError as e:
        logger.error("Photo storage disabled: %s", e)
        app.state.storage = None


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, telemetry (if enabled), Firestore and identity
    clients, live-query hub with Redis relay (if enabled), storage.
    Shutdown runs in reverse.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    if settings.telemetry_enabled:
        from app.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.telemetry_environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument(app, redis=settings.redis_enabled)
        logger.info("Telemetry initialized")

    init_firebase()
    client = get_firestore_client()
    if client is not None:
        app.state.identity = FirebaseIdentityClient(
            client.project_id,
            client.credentials,
            web_api_key=(
                settings.firebase_web_api_key.get_secret_value()
                if settings.firebase_web_api_key
                else None
            ),
        )
    else:
        app.state.identity = None

    hub = LiveQueryHub(poll_seconds=settings.live_query_poll_seconds)
    app.state.live_query_hub = hub
    app.state.change_relay_task = None
    if settings.redis_enabled:
        from app.infrastructure.messaging.redis_pubsub import (
            ChangeNotificationPublisher,
            run_change_relay,
        )
        publisher = ChangeNotificationPublisher()
        await publisher.connect()
        if publisher.is_available():
            hub.publisher = publisher
            app.state.change_relay_task = asyncio.create_task(run_change_relay(hub))
        app.state.change_publisher = publisher
    else:
        app.state.change_publisher = None

    _init_storage(app, client.credentials if client is not None else None)

    yield

    # ---- Shutdown ----
    await hub.close()

    relay = app.state.change_relay_task
    if relay is not None:
        relay.cancel()
        try:
            await relay
        except asyncio.CancelledError:
            pass
        logger.info("Change relay task stopped")
    if app.state.change_publisher is not None:
        await app.state.change_publisher.disconnect()

    storage = getattr(app.state, "storage", None)
    if storage is not None and hasattr(storage, "aclose"):
        await storage.aclose()

    if app.state.identity is not None:
        await app.state.identity.aclose()
        app.state.identity = None
    await close_firebase()

    from app.shared.telemetry.telemetry import get_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()

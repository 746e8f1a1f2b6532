"""Redis Pub/Sub for collection change notifications.

Repositories notify the local LiveQueryHub after each write; the hub hands
the notification to ChangeNotificationPublisher so other server processes
refresh their live queries too. run_change_relay() is the receiving side.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import asdict, dataclass
from typing import Any

import redis.asyncio as redis

from app.core.config import get_settings
from app.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ChangeNotification:
    """Payload published for each write to a collection."""

    collection: str
    origin: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangeNotification:
        return cls(
            collection=data["collection"],
            origin=data.get("origin", ""),
            timestamp=data.get("timestamp", ""),
        )


class _RedisPubSubBase:
    """Shared Redis connection and channel logic for change notifications."""

    CHANNEL_PREFIX = "collection_changed"

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.redis = redis_client
        self.settings = get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self._connected:
            return
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await self.redis.ping()
                self._connected = True
                logger.info("Redis pub/sub connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis pub/sub connection failed: %s", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.close()
            self._connected = False
            logger.info("Redis pub/sub disconnected")

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    def _get_channel(self, collection: str) -> str:
        return f"{self.CHANNEL_PREFIX}:{collection}"


class ChangeNotificationPublisher(_RedisPubSubBase):
    """Publishes a notification per write on the collection's channel."""

    async def publish(self, collection: str, origin: str) -> bool:
        """Publish a change notification.

        Returns:
            True if published, False if Redis is unavailable or the publish failed.
        """
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping publish")
            return False
        event = ChangeNotification(
            collection=collection, origin=origin, timestamp=utc_now().isoformat()
        )
        try:
            await self.redis.publish(self._get_channel(collection), json.dumps(event.to_dict()))
        except (redis.ConnectionError, redis.TimeoutError):
            logger.exception("Failed to publish change notification for %s", collection)
            return False
        return True


class ChangeNotificationSubscriber(_RedisPubSubBase):
    """Iterates change notifications for every collection."""

    async def listen(self) -> AsyncIterator[ChangeNotification]:
        if not self.is_available() or self.redis is None:
            logger.warning("Redis not available for subscription")
            return
        pattern = f"{self.CHANNEL_PREFIX}:*"
        pubsub = self.redis.pubsub()
        try:
            await pubsub.psubscribe(pattern)
            logger.info("Subscribed to %s", pattern)
            async for message in pubsub.listen():
                if message["type"] != "pmessage":
                    continue
                try:
                    yield ChangeNotification.from_dict(json.loads(message["data"]))
                except (json.JSONDecodeError, KeyError, TypeError):
                    logger.exception("Failed to parse change notification")
        finally:
            await pubsub.punsubscribe()
            await pubsub.close()
            logger.info("Unsubscribed from %s", pattern)


async def run_change_relay(hub: Any, subscriber: ChangeNotificationSubscriber | None = None) -> None:
    """Relay notifications published by other processes into the local hub.

    Call as a background task from lifespan when Redis is enabled. Cancelling
    the task stops the loop.
    """
    subscriber = subscriber or ChangeNotificationSubscriber()
    await subscriber.connect()
    if not subscriber.is_available():
        logger.warning("Redis not available, change relay not started")
        return
    try:
        async for note in subscriber.listen():
            if note.origin == hub.origin:
                continue
            await hub.notify(note.collection, broadcast=False)
    except asyncio.CancelledError:
        logger.info("Change relay task cancelled")
        raise
    except (redis.ConnectionError, redis.TimeoutError):
        logger.exception("Change relay lost its Redis connection")
    finally:
        await subscriber.disconnect()

"""Messaging: Redis pub/sub for collection change notifications.

Lets several server processes share one live-query feed.
"""

from app.infrastructure.messaging.redis_pubsub import (
    ChangeNotification,
    ChangeNotificationPublisher,
    ChangeNotificationSubscriber,
    run_change_relay,
)

__all__ = [
    "ChangeNotification",
    "ChangeNotificationPublisher",
    "ChangeNotificationSubscriber",
    "run_change_relay",
]

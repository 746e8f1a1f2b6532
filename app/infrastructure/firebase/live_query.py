"""Live queries: standing reads that push a new result set whenever it changes.

Each subscription is one asyncio task that re-runs its fetch when the hub is
notified of a write to the collection, and otherwise every poll interval.
A result is delivered only when it differs from the last one delivered.
Fetch failures go to the subscriber's on_error callback; the task keeps
running and delivers again once the store recovers.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, Generic, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnChange = Callable[[list[T]], Awaitable[None] | None]
OnError = Callable[[Exception], Awaitable[None] | None]

_UNSET: Any = object()


class ChangePublisher(Protocol):
    """Fan-out of change notifications to other processes (e.g. Redis)."""

    async def publish(self, collection: str, origin: str) -> bool: ...


async def _invoke(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class Subscription(Generic[T]):
    """Handle for a live query. unsubscribe() stops deliveries; repeat calls are no-ops."""

    def __init__(
        self,
        hub: LiveQueryHub,
        collection: str,
        fetch: Callable[[], Awaitable[list[T]]],
        on_change: OnChange,
        on_error: OnError | None,
        poll_seconds: float,
    ) -> None:
        self._hub = hub
        self.collection = collection
        self._fetch = fetch
        self._on_change = on_change
        self._on_error = on_error
        self._poll_seconds = poll_seconds
        self._wake = asyncio.Event()
        self._last: list[T] = _UNSET
        self._closed = False
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return not self._closed

    def _start(self) -> None:
        self._task = asyncio.create_task(self._run(), name=f"live-query:{self.collection}")

    def wake(self) -> None:
        self._wake.set()

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._hub._discard(self)
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait for the polling task to finish after unsubscribe()."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _deliver(self, callback: Callable[..., Any], arg: Any) -> None:
        if self._closed:
            return
        try:
            await _invoke(callback, arg)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Live query callback failed for %s", self.collection)

    async def _refresh(self) -> None:
        try:
            items = await self._fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Live query refresh failed for %s: %s", self.collection, e)
            if self._on_error is not None:
                await self._deliver(self._on_error, e)
            return
        if self._last is _UNSET or items != self._last:
            self._last = items
            await self._deliver(self._on_change, items)

    async def _run(self) -> None:
        while not self._closed:
            self._wake.clear()
            await self._refresh()
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._poll_seconds)
            except asyncio.TimeoutError:
                pass


class LiveQueryHub:
    """Owns every live subscription of the process.

    notify(collection) wakes the collection's subscriptions; with a publisher
    attached the notification is also sent to other processes, which relay it
    back with broadcast=False. close() cancels whatever is still running.
    """

    def __init__(
        self,
        poll_seconds: float = 5.0,
        publisher: ChangePublisher | None = None,
    ) -> None:
        self.poll_seconds = poll_seconds
        self.publisher = publisher
        self.origin = uuid.uuid4().hex
        self._subscriptions: dict[str, set[Subscription]] = {}

    def subscribe(
        self,
        collection: str,
        fetch: Callable[[], Awaitable[list[T]]],
        on_change: OnChange,
        on_error: OnError | None = None,
    ) -> Subscription[T]:
        """Start a live query; the first result is delivered as soon as it is fetched."""
        sub: Subscription[T] = Subscription(
            self, collection, fetch, on_change, on_error, self.poll_seconds
        )
        self._subscriptions.setdefault(collection, set()).add(sub)
        sub._start()
        logger.debug("Live query opened on %s", collection)
        return sub

    def _discard(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.collection)
        if subs is not None:
            subs.discard(sub)
            if not subs:
                del self._subscriptions[sub.collection]

    def active_count(self, collection: str | None = None) -> int:
        if collection is not None:
            return len(self._subscriptions.get(collection, ()))
        return sum(len(subs) for subs in self._subscriptions.values())

    async def notify(self, collection: str, *, broadcast: bool = True) -> None:
        """Wake subscriptions on ``collection`` after a write."""
        for sub in list(self._subscriptions.get(collection, ())):
            sub.wake()
        if broadcast and self.publisher is not None:
            await self.publisher.publish(collection, self.origin)

    async def close(self) -> None:
        """Cancel all subscriptions. Call from app shutdown."""
        subs = [s for group in self._subscriptions.values() for s in group]
        for sub in subs:
            sub.unsubscribe()
        for sub in subs:
            await sub.wait_closed()
        if subs:
            logger.info("Closed %d live queries", len(subs))

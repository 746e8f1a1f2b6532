"""LiveQueryHub: first delivery, change-only redelivery, notify wake-up, errors, unsubscribe."""

import asyncio

import pytest

from app.infrastructure.firebase.live_query import LiveQueryHub

WAIT = 2.0


@pytest.fixture
async def hub() -> LiveQueryHub:
    # Long poll interval: only notify() triggers refreshes after the first one.
    hub = LiveQueryHub(poll_seconds=60)
    yield hub
    await hub.close()


class Source:
    """Mutable result set whose fetch can be made to fail."""

    def __init__(self, items: list[str]) -> None:
        self.items = items
        self.error: Exception | None = None
        self.calls = 0

    async def fetch(self) -> list[str]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.items)


async def test_first_result_delivered(hub: LiveQueryHub) -> None:
    source = Source(["a"])
    received: asyncio.Queue = asyncio.Queue()
    hub.subscribe("repairs", source.fetch, received.put_nowait)
    assert await asyncio.wait_for(received.get(), WAIT) == ["a"]
    assert hub.active_count("repairs") == 1


async def test_empty_first_result_delivered(hub: LiveQueryHub) -> None:
    received: asyncio.Queue = asyncio.Queue()
    hub.subscribe("users", Source([]).fetch, received.put_nowait)
    assert await asyncio.wait_for(received.get(), WAIT) == []


async def test_notify_redelivers_only_on_change(hub: LiveQueryHub) -> None:
    source = Source(["a"])
    received: asyncio.Queue = asyncio.Queue()
    hub.subscribe("repairs", source.fetch, received.put_nowait)
    await asyncio.wait_for(received.get(), WAIT)

    await hub.notify("repairs")
    await asyncio.sleep(0.05)
    assert received.empty()
    assert source.calls == 2

    source.items = ["a", "b"]
    await hub.notify("repairs")
    assert await asyncio.wait_for(received.get(), WAIT) == ["a", "b"]


async def test_notify_other_collection_ignored(hub: LiveQueryHub) -> None:
    source = Source(["a"])
    received: asyncio.Queue = asyncio.Queue()
    hub.subscribe("repairs", source.fetch, received.put_nowait)
    await asyncio.wait_for(received.get(), WAIT)
    await hub.notify("users")
    await asyncio.sleep(0.05)
    assert source.calls == 1


async def test_error_reported_then_recovers(hub: LiveQueryHub) -> None:
    source = Source(["a"])
    source.error = RuntimeError("store down")
    errors: asyncio.Queue = asyncio.Queue()
    received: asyncio.Queue = asyncio.Queue()
    hub.subscribe("repairs", source.fetch, received.put_nowait, errors.put_nowait)
    assert str(await asyncio.wait_for(errors.get(), WAIT)) == "store down"

    source.error = None
    await hub.notify("repairs")
    assert await asyncio.wait_for(received.get(), WAIT) == ["a"]


async def test_async_callback(hub: LiveQueryHub) -> None:
    received: list[list[str]] = []
    done = asyncio.Event()

    async def on_change(items: list[str]) -> None:
        received.append(items)
        done.set()

    hub.subscribe("repairs", Source(["x"]).fetch, on_change)
    await asyncio.wait_for(done.wait(), WAIT)
    assert received == [["x"]]


async def test_unsubscribe_stops_delivery_and_is_idempotent(hub: LiveQueryHub) -> None:
    source = Source(["a"])
    received: asyncio.Queue = asyncio.Queue()
    sub = hub.subscribe("repairs", source.fetch, received.put_nowait)
    await asyncio.wait_for(received.get(), WAIT)

    sub.unsubscribe()
    sub.unsubscribe()
    await sub.wait_closed()
    assert not sub.active
    assert hub.active_count() == 0

    source.items = ["b"]
    await hub.notify("repairs")
    await asyncio.sleep(0.05)
    assert received.empty()


async def test_notify_broadcasts_to_publisher() -> None:
    published: list[tuple[str, str]] = []

    class Publisher:
        async def publish(self, collection: str, origin: str) -> bool:
            published.append((collection, origin))
            return True

    hub = LiveQueryHub(poll_seconds=60, publisher=Publisher())
    await hub.notify("repairs")
    await hub.notify("repairs", broadcast=False)
    assert published == [("repairs", hub.origin)]


async def test_close_cancels_everything(hub: LiveQueryHub) -> None:
    subs = [hub.subscribe("repairs", Source([]).fetch, lambda items: None) for _ in range(3)]
    await hub.close()
    assert hub.active_count() == 0
    assert all(not s.active for s in subs)

import pytest

from clientportal.domain.services.broadcaster import InMemoryBroadcaster, NullBroadcaster


@pytest.mark.asyncio
async def test_null_broadcaster_drops_events():
    await NullBroadcaster().emit("user-1", "session:revoked", {"reason": "test"})


@pytest.mark.asyncio
async def test_in_memory_broadcaster_delivers_to_room():
    broadcaster = InMemoryBroadcaster()
    received = []

    async def listener(event, payload):
        received.append((event, payload))

    broadcaster.subscribe("user-1", listener)
    await broadcaster.emit("user-1", "mfa:updated", {"mfaEnabled": True})
    await broadcaster.emit("user-2", "mfa:updated", {"mfaEnabled": False})

    assert received == [("mfa:updated", {"mfaEnabled": True})]


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_others():
    broadcaster = InMemoryBroadcaster()
    received = []

    async def broken(event, payload):
        raise RuntimeError("socket closed")

    async def healthy(event, payload):
        received.append(event)

    broadcaster.subscribe("user-1", broken)
    broadcaster.subscribe("user-1", healthy)
    await broadcaster.emit("user-1", "session:revoked", {})

    assert received == ["session:revoked"]


@pytest.mark.asyncio
async def test_unsubscribe():
    broadcaster = InMemoryBroadcaster()
    received = []

    async def listener(event, payload):
        received.append(event)

    broadcaster.subscribe("user-1", listener)
    broadcaster.unsubscribe("user-1", listener)
    await broadcaster.emit("user-1", "session:revoked", {})

    assert received == []

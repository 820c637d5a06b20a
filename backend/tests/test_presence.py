import pytest

from fanhub.services.connection import ConnectionManager
from fanhub.services.presence import PresenceRegistry
from helpers import FakeConnection


def _registry():
    manager = ConnectionManager()
    return manager, PresenceRegistry(manager)


@pytest.mark.asyncio
async def test_set_online_broadcasts_to_every_connection():
    manager, presence = _registry()
    watcher = FakeConnection("watcher")
    alice = FakeConnection("alice-1")
    manager.register(watcher)
    manager.register(alice)

    await presence.set_online("alice", alice)

    assert presence.is_online("alice")
    assert presence.get_connection("alice") is alice
    assert alice.user_id == "alice"
    expected = {"type": "presence.status", "userId": "alice", "isOnline": True}
    assert watcher.sent == [expected]
    assert alice.sent == [expected]


@pytest.mark.asyncio
async def test_last_connection_wins():
    manager, presence = _registry()
    first, second = FakeConnection("a-1"), FakeConnection("a-2")
    manager.register(first)
    manager.register(second)

    await presence.set_online("alice", first)
    await presence.set_online("alice", second)

    assert presence.get_connection("alice") is second
    assert len(presence) == 1


@pytest.mark.asyncio
async def test_stale_disconnect_does_not_take_user_offline():
    manager, presence = _registry()
    first, second = FakeConnection("a-1"), FakeConnection("a-2")
    manager.register(first)
    manager.register(second)
    await presence.set_online("alice", first)
    await presence.set_online("alice", second)
    second.sent.clear()

    cleared = await presence.clear("alice", first)

    assert cleared is False
    assert presence.get_connection("alice") is second
    assert second.sent == []


@pytest.mark.asyncio
async def test_clear_broadcasts_offline():
    manager, presence = _registry()
    watcher, alice = FakeConnection("watcher"), FakeConnection("alice-1")
    manager.register(watcher)
    manager.register(alice)
    await presence.set_online("alice", alice)
    watcher.sent.clear()

    assert await presence.clear("alice", alice) is True
    assert not presence.is_online("alice")
    assert watcher.sent == [{"type": "presence.status", "userId": "alice", "isOnline": False}]
    # Second clear is a no-op
    assert await presence.clear("alice", alice) is False


@pytest.mark.asyncio
async def test_reannounce_as_other_user_releases_old_identity():
    manager, presence = _registry()
    conn = FakeConnection("c-1")
    manager.register(conn)

    await presence.set_online("alice", conn)
    await presence.set_online("bob", conn)

    assert not presence.is_online("alice")
    assert presence.get_connection("bob") is conn
    assert presence.online_user_ids() == ["bob"]


@pytest.mark.asyncio
async def test_broadcast_skips_failed_sends():
    manager, _ = _registry()
    ok, broken = FakeConnection("ok"), FakeConnection("broken", fail_sends=True)
    manager.register(ok)
    manager.register(broken)

    sent = await manager.broadcast({"type": "presence.status"})

    assert sent == 1
    assert manager.get_total_connections() == 2
    assert manager.disconnect(broken) is True
    assert manager.disconnect(broken) is False

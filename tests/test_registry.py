import pytest

from journal_realtime.models.session import Identity
from journal_realtime.registry import SessionRegistry

from conftest import RecordingHandle

ALICE = Identity(user_id=1, role="student")
BOB = Identity(user_id=2, role="teacher")


@pytest.mark.asyncio
async def test_register_then_lookup():
    registry = SessionRegistry()
    handle = RecordingHandle("sid-1")
    displaced = await registry.register(ALICE, handle)

    assert displaced is None
    assert registry.lookup(1) is handle
    assert registry.get(1).role == "student"
    assert len(registry) == 1
    assert 1 in registry
    assert registry.is_online(1)


def test_lookup_absent_user():
    registry = SessionRegistry()
    assert registry.lookup(99) is None
    assert not registry.is_online(99)


@pytest.mark.asyncio
async def test_second_connect_replaces_first_and_closes_it():
    registry = SessionRegistry()
    first, second = RecordingHandle("sid-1"), RecordingHandle("sid-2")
    await registry.register(ALICE, first)
    displaced = await registry.register(ALICE, second)

    assert displaced.handle is first
    assert registry.lookup(1) is second
    assert len(registry) == 1
    assert first.close_calls == 1
    assert second.close_calls == 0


@pytest.mark.asyncio
async def test_replacement_without_closing_displaced():
    registry = SessionRegistry(close_displaced=False)
    first, second = RecordingHandle("sid-1"), RecordingHandle("sid-2")
    await registry.register(ALICE, first)
    await registry.register(ALICE, second)

    assert registry.lookup(1) is second
    assert first.close_calls == 0


@pytest.mark.asyncio
async def test_reregistering_same_handle_does_not_close_it():
    registry = SessionRegistry()
    handle = RecordingHandle("sid-1")
    await registry.register(ALICE, handle)
    assert await registry.register(ALICE, handle) is None
    assert handle.close_calls == 0


@pytest.mark.asyncio
async def test_failing_close_still_keeps_new_session():
    class BrokenHandle(RecordingHandle):
        async def close(self) -> None:
            raise RuntimeError("already gone")

    registry = SessionRegistry()
    await registry.register(ALICE, BrokenHandle("sid-1"))
    second = RecordingHandle("sid-2")
    await registry.register(ALICE, second)
    assert registry.lookup(1) is second


@pytest.mark.asyncio
async def test_unregister_removes_matching_handle():
    registry = SessionRegistry()
    handle = RecordingHandle("sid-1")
    await registry.register(ALICE, handle)

    assert registry.unregister(1, RecordingHandle("sid-1")) is True
    assert registry.lookup(1) is None


@pytest.mark.asyncio
async def test_stale_disconnect_keeps_newer_session():
    registry = SessionRegistry()
    first, second = RecordingHandle("sid-1"), RecordingHandle("sid-2")
    await registry.register(ALICE, first)
    await registry.register(ALICE, second)

    assert registry.unregister(1, first) is False
    assert registry.lookup(1) is second


@pytest.mark.asyncio
async def test_unconditional_unregister():
    registry = SessionRegistry()
    await registry.register(ALICE, RecordingHandle("sid-1"))
    assert registry.unregister(1) is True
    assert registry.unregister(1) is False


@pytest.mark.asyncio
async def test_sessions_are_per_user():
    registry = SessionRegistry()
    await registry.register(ALICE, RecordingHandle("sid-a"))
    await registry.register(BOB, RecordingHandle("sid-b"))

    assert registry.online_user_ids() == [1, 2]
    assert {s.sid for s in registry} == {"sid-a", "sid-b"}
    registry.unregister(1)
    assert registry.online_user_ids() == [2]

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fanhub.services.call import CallStatus
from helpers import FakeConnection, FakeDirectory, FakeHistoryStore, Harness

RING = 0.05


class SteppingClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


# === Initiate ===

@pytest.mark.asyncio
async def test_initiate_notifies_both_sides():
    h = Harness()
    a, b, session = await h.ringing("u1", "u2")

    assert session.call_id.startswith("call_u1_u2_")
    assert h.sessions.get(session.call_id).status == CallStatus.RINGING
    assert h.timeouts.is_armed(session.call_id)
    assert a.events() == [{"type": "call.initiated", "callId": session.call_id, "receiverId": "u2"}]
    assert b.events() == [{"type": "call.incoming", "callId": session.call_id, "caller": {"id": "u1", "name": "U1"}}]


@pytest.mark.asyncio
async def test_scenario_c_offline_receiver():
    h = Harness()
    a = await h.online("u1")

    result = await h.controller.initiate(a, "u3", "u1", {})

    assert result is None
    assert a.events() == [{"type": "call.error", "message": "User is offline"}]
    assert len(h.sessions) == 0
    assert len(h.timeouts) == 0
    assert h.history.records == []


@pytest.mark.asyncio
async def test_unknown_user_is_rejected():
    h = Harness(user_directory=FakeDirectory(known={"u1"}))
    a = await h.online("u1")
    await h.online("ghost")

    result = await h.controller.initiate(a, "ghost", "u1", {})

    assert result is None
    assert a.events() == [{"type": "call.error", "message": "User not found"}]
    assert len(h.sessions) == 0


@pytest.mark.asyncio
async def test_directory_outage_does_not_block_call():
    directory = FakeDirectory(fail=True)
    h = Harness(user_directory=directory)
    a = await h.online("u1")
    await h.online("u2")

    session = await h.controller.initiate(a, "u2", "u1", {})

    assert session is not None
    assert directory.lookups == ["u2"]


@pytest.mark.asyncio
async def test_duplicate_call_id_keeps_first_session():
    clock = SteppingClock()
    h = Harness(clock=clock)
    a = await h.online("u1")
    await h.online("u2")

    first = await h.controller.initiate(a, "u2", "u1", {})
    second = await h.controller.initiate(a, "u2", "u1", {})

    assert second is None
    assert h.sessions.get(first.call_id) is first
    assert len(h.sessions) == 1
    assert a.events("call.error") == [{"type": "call.error", "message": "Failed to initiate call"}]


# === Accept ===

@pytest.mark.asyncio
async def test_accept_disarms_timeout_and_notifies_both():
    h = Harness(ring_timeout=RING)
    a, b, session = await h.ringing("u1", "u2")

    assert await h.controller.accept(b, session.call_id) is True
    await asyncio.sleep(RING * 3)

    assert h.sessions.get(session.call_id).status == CallStatus.ACTIVE
    assert a.types() == ["call.initiated", "call.accepted"]
    assert b.types() == ["call.incoming", "call.accepted"]
    assert a.events("call.missed") == []
    assert h.history.records == []


@pytest.mark.asyncio
async def test_caller_cannot_accept_own_call():
    h = Harness()
    a, b, session = await h.ringing("u1", "u2")

    assert await h.controller.accept(a, session.call_id) is False
    assert h.sessions.get(session.call_id).status == CallStatus.RINGING


@pytest.mark.asyncio
async def test_non_participant_is_ignored():
    h = Harness()
    a, b, session = await h.ringing("u1", "u2")
    mallory = await h.online("u9")

    assert await h.controller.accept(mallory, session.call_id) is False
    assert await h.controller.end(mallory, session.call_id) is False
    assert session.call_id in h.sessions


@pytest.mark.asyncio
async def test_second_accept_is_ignored():
    h = Harness()
    a, b, session = await h.ringing("u1", "u2")

    await h.controller.accept(b, session.call_id)
    assert await h.controller.accept(b, session.call_id) is False
    assert len(a.events("call.accepted")) == 1


@pytest.mark.asyncio
async def test_accept_unknown_call_is_noop():
    h = Harness()
    b = await h.online("u2")

    assert await h.controller.accept(b, "call_nope") is False
    assert b.events() == []


# === Decline ===

@pytest.mark.asyncio
async def test_decline_notifies_caller_and_records_declined():
    h = Harness(ring_timeout=RING)
    a, b, session = await h.ringing("u1", "u2")

    assert await h.controller.decline(b, session.call_id, "Busy") is True
    await asyncio.sleep(RING * 3)

    assert session.call_id not in h.sessions
    assert a.events("call.declined") == [{"type": "call.declined", "callId": session.call_id, "reason": "Busy"}]
    assert b.events("call.declined") == []
    assert a.events("call.missed") == []
    assert [(r.sender_id, r.status, r.duration) for r in h.history.records] == [
        ("u1", "declined", 0),
        ("u2", "declined", 0),
    ]


@pytest.mark.asyncio
async def test_decline_default_reason_and_no_persist():
    h = Harness(persist_declined=False)
    a, b, session = await h.ringing("u1", "u2")

    await h.controller.decline(b, session.call_id)

    assert a.events("call.declined")[0]["reason"] == "Call declined"
    assert h.history.records == []


@pytest.mark.asyncio
async def test_double_decline_emits_once():
    h = Harness()
    a, b, session = await h.ringing("u1", "u2")

    first = await h.controller.decline(b, session.call_id)
    second = await h.controller.decline(b, session.call_id)

    assert (first, second) == (True, False)
    assert len(a.events("call.declined")) == 1


@pytest.mark.asyncio
async def test_decline_after_accept_is_ignored():
    h = Harness()
    a, b, session = await h.ringing("u1", "u2")
    await h.controller.accept(b, session.call_id)

    assert await h.controller.decline(b, session.call_id) is False
    assert session.call_id in h.sessions


# === End ===

@pytest.mark.asyncio
async def test_scenario_a_completed_call():
    h = Harness(ring_timeout=RING)
    a, b, session = await h.ringing("u1", "u2")
    await h.controller.accept(b, session.call_id)

    assert await h.controller.end(a, session.call_id, 42) is True
    await asyncio.sleep(RING * 3)

    ended = {
        "type": "call.ended",
        "callId": session.call_id,
        "duration": 42,
        "wasAccepted": True,
        "endedBy": "u1",
    }
    assert a.events("call.ended") == [ended]
    assert b.events("call.ended") == [ended]
    assert session.call_id not in h.sessions
    records = h.history.records
    assert [(r.sender_id, r.receiver_id, r.direction) for r in records] == [
        ("u1", "u2", "outgoing"),
        ("u2", "u1", "incoming"),
    ]
    assert all(r.status == "completed" and r.duration == 42 for r in records)
    assert a.events("call.missed") == []


@pytest.mark.asyncio
async def test_end_without_duration_uses_elapsed_time():
    clock = SteppingClock()
    h = Harness(clock=clock)
    a, b, session = await h.ringing("u1", "u2")
    await h.controller.accept(b, session.call_id)
    clock.advance(17.6)

    await h.controller.end(b, session.call_id)

    assert a.events("call.ended")[0]["duration"] == 17
    assert a.events("call.ended")[0]["endedBy"] == "u2"
    assert {r.status for r in h.history.records} == {"completed"}


@pytest.mark.asyncio
async def test_end_while_ringing_records_missed():
    h = Harness()
    a, b, session = await h.ringing("u1", "u2")

    await h.controller.end(a, session.call_id)

    assert b.events("call.ended")[0]["wasAccepted"] is False
    assert [r.status for r in h.history.records] == ["missed", "missed"]
    assert len(h.timeouts) == 0


@pytest.mark.asyncio
async def test_accepted_call_ended_at_zero_seconds_is_missed():
    h = Harness()
    a, b, session = await h.ringing("u1", "u2")
    await h.controller.accept(b, session.call_id)

    await h.controller.end(a, session.call_id, 0)

    assert [r.status for r in h.history.records] == ["missed", "missed"]


# === Ring timeout ===

@pytest.mark.asyncio
async def test_scenario_b_ring_timeout():
    h = Harness(ring_timeout=RING)
    a, b, session = await h.ringing("u1", "u2")

    await asyncio.sleep(RING * 4)

    assert session.call_id not in h.sessions
    assert a.events("call.missed") == [{
        "type": "call.missed", "callId": session.call_id, "reason": "No answer", "callType": "outgoing",
    }]
    assert b.events("call.missed") == [{
        "type": "call.missed", "callId": session.call_id, "reason": "Missed call", "callType": "incoming",
    }]
    records = h.history.records
    assert len(records) == 2
    assert {r.sender_id for r in records} == {"u1", "u2"}
    assert all(r.status == "missed" and r.duration == 0 for r in records)


@pytest.mark.asyncio
async def test_accept_after_timeout_is_noop():
    h = Harness(ring_timeout=RING)
    a, b, session = await h.ringing("u1", "u2")
    await asyncio.sleep(RING * 4)

    assert await h.controller.accept(b, session.call_id) is False
    assert a.events("call.accepted") == []


# === Disconnect ===

@pytest.mark.asyncio
async def test_scenario_d_caller_drops_mid_call():
    h = Harness(ring_timeout=RING)
    a, b, session = await h.ringing("u1", "u2")
    await h.controller.accept(b, session.call_id)
    a.sent.clear()

    dropped = await h.controller.handle_disconnect(a)
    await asyncio.sleep(RING * 3)

    assert dropped == [session.call_id]
    assert session.call_id not in h.sessions
    assert a.events() == []
    ended = b.events("call.ended")
    assert len(ended) == 1
    assert ended[0]["reason"] == "User disconnected"
    assert b.events("call.missed") == []


@pytest.mark.asyncio
async def test_disconnect_while_ringing_disarms_timer():
    h = Harness(ring_timeout=RING)
    a, b, session = await h.ringing("u1", "u2")

    await h.controller.handle_disconnect(b)
    await asyncio.sleep(RING * 3)

    assert len(h.timeouts) == 0
    assert a.events("call.missed") == []
    assert a.events("call.ended")[0]["wasAccepted"] is False
    assert [r.status for r in h.history.records] == ["missed", "missed"]


@pytest.mark.asyncio
async def test_disconnect_without_calls():
    h = Harness()
    idle = FakeConnection("idle")

    assert await h.controller.handle_disconnect(idle) == []


@pytest.mark.asyncio
async def test_disconnect_persistence_can_be_disabled():
    h = Harness(persist_disconnected=False)
    a, b, session = await h.ringing("u1", "u2")

    await h.controller.handle_disconnect(a)

    assert b.events("call.ended")
    assert h.history.records == []


# === Persistence failures ===

@pytest.mark.asyncio
async def test_history_failure_still_notifies():
    h = Harness(history=FakeHistoryStore(fail_times=100), history_retries=1)
    a, b, session = await h.ringing("u1", "u2")
    await h.controller.accept(b, session.call_id)

    await h.controller.end(a, session.call_id, 30)

    assert a.events("call.ended") and b.events("call.ended")
    assert h.history.records == []
    # two records, two attempts each
    assert h.history.attempts == 4


@pytest.mark.asyncio
async def test_history_retry_recovers():
    h = Harness(history=FakeHistoryStore(fail_times=1), history_retries=2)
    a, b, session = await h.ringing("u1", "u2")

    await h.controller.decline(b, session.call_id)

    assert len(h.history.records) == 2


@pytest.mark.asyncio
async def test_slow_history_write_times_out():
    h = Harness(history=FakeHistoryStore(delay=1.0), history_retries=0, history_write_timeout=0.01)
    a, b, session = await h.ringing("u1", "u2")

    await h.controller.decline(b, session.call_id)

    assert a.events("call.declined")
    assert h.history.records == []


@pytest.mark.asyncio
async def test_disconnect_notifies_every_survivor_before_writing_history():
    h = Harness(history=FakeHistoryStore(delay=0.3))
    a = await h.online("u1")
    b = await h.online("u2")
    c = await h.online("u3")
    first = await h.controller.initiate(a, "u2", "u1", {})
    second = await h.controller.initiate(a, "u3", "u1", {})

    task = asyncio.create_task(h.controller.handle_disconnect(a))
    await asyncio.sleep(0.05)

    assert len(b.events("call.ended")) == 1
    assert len(c.events("call.ended")) == 1
    assert h.history.records == []

    dropped = await task
    assert sorted(dropped) == sorted([first.call_id, second.call_id])
    assert len(h.history.records) == 4


# === Re-entrancy ===

@pytest.mark.asyncio
async def test_events_arriving_during_pending_write_are_noops():
    h = Harness(history=FakeHistoryStore(delay=0.2))
    a, b, session = await h.ringing("u1", "u2")
    await h.controller.accept(b, session.call_id)

    results = await asyncio.gather(
        h.controller.end(a, session.call_id, 12),
        h.controller.end(b, session.call_id, 12),
        h.controller.handle_disconnect(a),
    )

    assert results == [True, False, []]
    assert len(h.history.records) == 2
    assert len(a.events("call.ended")) == 1
    assert len(b.events("call.ended")) == 1
    assert session.call_id not in h.sessions

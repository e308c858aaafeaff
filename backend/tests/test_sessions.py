from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import uuid

import pytest

from core.database import init_indexes
from core.exceptions import InvalidAction
from devices.settings_store import update_settings
from lockdown.state_machine import new_lockdown_fields
from lockdown.sessions import (
    _create_locked_session,
    create_check_in,
    get_user_stats,
    resolve_current_session,
    start_lockdown,
)
from schemas.session import CheckInType, SessionStatus

pytestmark = pytest.mark.asyncio


async def test_first_resolve_creates_one_locked_session(mock_db, frozen_clock, device_id):
    session = await resolve_current_session(device_id)

    assert session.status == SessionStatus.LOCKED
    assert session.time_remaining == 3600
    assert session.time_ahead is None
    assert await mock_db.sessions.count_documents({"device_id": device_id}) == 1
    assert await mock_db.devices.count_documents({"id": device_id}) == 1
    assert await mock_db.settings.count_documents({"device_id": device_id}) == 1


async def test_repeated_resolve_reuses_the_live_session(mock_db, frozen_clock, device_id):
    first = await resolve_current_session(device_id)
    frozen_clock.advance(minutes=5)
    second = await resolve_current_session(device_id)

    assert second.id == first.id
    assert second.time_remaining == 3300
    assert await mock_db.sessions.count_documents({"device_id": device_id}) == 1


async def test_expiry_unlocks_and_persists(mock_db, frozen_clock, device_id):
    first = await resolve_current_session(device_id)
    frozen_clock.advance(minutes=61)
    session = await resolve_current_session(device_id)

    assert session.id == first.id
    assert session.status == SessionStatus.ACTIVE
    assert session.time_remaining is None
    stored = await mock_db.sessions.find_one({"id": first.id})
    assert stored["status"] == "active"
    assert stored["live"] is True

    frozen_clock.advance(minutes=10)
    later = await resolve_current_session(device_id)
    assert later.time_ahead == 11 * 60


async def test_completed_variant_rolls_over_to_a_new_lockdown(mock_db, frozen_clock, device_id, expiry_status):
    expiry_status("completed")
    first = await resolve_current_session(device_id)
    frozen_clock.advance(minutes=61)

    closed = await resolve_current_session(device_id)
    assert closed.id == first.id
    assert closed.status == SessionStatus.COMPLETED

    fresh = await resolve_current_session(device_id)
    assert fresh.id != first.id
    assert fresh.status == SessionStatus.LOCKED
    assert fresh.time_remaining == 3600


async def test_start_lockdown_supersedes_active_session(mock_db, frozen_clock, device_id):
    first = await resolve_current_session(device_id)
    frozen_clock.advance(minutes=61)
    active = await resolve_current_session(device_id)

    new = await start_lockdown(device_id, active.id)

    assert new.id != first.id
    assert new.status == SessionStatus.LOCKED
    old = await mock_db.sessions.find_one({"id": first.id})
    assert old["status"] == "completed"
    assert old["live"] is False
    live = await mock_db.sessions.count_documents({"device_id": device_id, "live": True})
    assert live == 1


async def test_settings_change_does_not_move_live_session(mock_db, frozen_clock, device_id):
    session = await resolve_current_session(device_id)
    await update_settings(device_id, {"lockdown_minutes": 15})

    again = await resolve_current_session(device_id)
    assert again.id == session.id
    assert again.end_time == session.end_time
    assert again.lockdown_minutes == 60


async def test_user_stats_count_finished_lockdowns(mock_db, frozen_clock, device_id):
    await resolve_current_session(device_id)
    frozen_clock.advance(minutes=61)
    active = await resolve_current_session(device_id)
    await start_lockdown(device_id, active.id)

    stats = await get_user_stats(device_id)
    assert stats.id == device_id
    assert stats.total_time_saved == 3600
    assert stats.current_streak == 1
    assert stats.last_relapse is None


async def test_check_in_is_attached_to_live_session(mock_db, frozen_clock, device_id):
    result = await create_check_in(device_id, CheckInType.CHECK_IN, frozen_clock.now)

    assert result.check_in.type == CheckInType.CHECK_IN
    stored = await mock_db.check_ins.find_one({"id": result.check_in.id})
    assert stored["session_id"] == result.session.id
    # Presence never changes state
    assert result.session.status == SessionStatus.LOCKED


async def test_stale_supersede_is_rejected_without_a_second_lockdown(mock_db, frozen_clock, device_id):
    await resolve_current_session(device_id)
    frozen_clock.advance(minutes=61)
    active = await resolve_current_session(device_id)

    # Two harms both saw the same active session; the first one wins
    winner = await start_lockdown(device_id, active.id)
    with pytest.raises(InvalidAction):
        await start_lockdown(device_id, active.id)

    assert await mock_db.sessions.count_documents({"device_id": device_id}) == 2
    live = await mock_db.sessions.find_one({"device_id": device_id, "live": True})
    assert live["id"] == winner.id


async def test_live_session_index_makes_loser_adopt_winner(mock_db, frozen_clock, device_id):
    await init_indexes()
    existing = {"id": str(uuid.uuid4()), "device_id": device_id, **new_lockdown_fields(frozen_clock.now, 60)}
    await mock_db.sessions.insert_one(existing)

    frozen_clock.advance(minutes=1)
    adopted = await _create_locked_session(device_id, 60, frozen_clock.now)

    assert adopted["id"] == existing["id"]
    assert adopted["time_remaining"] == 59 * 60
    assert await mock_db.sessions.count_documents({"device_id": device_id, "live": True}) == 1


async def test_live_session_index_ignores_finished_sessions(mock_db, frozen_clock, device_id):
    await init_indexes()
    finished = {
        "id": str(uuid.uuid4()),
        "device_id": device_id,
        **new_lockdown_fields(frozen_clock.now, 60),
        "status": "completed",
        "live": False,
    }
    await mock_db.sessions.insert_one(finished)

    session = await resolve_current_session(device_id)

    assert session.id != finished["id"]
    assert session.status == SessionStatus.LOCKED
    assert await mock_db.sessions.count_documents({"device_id": device_id}) == 2

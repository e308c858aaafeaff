from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
from pydantic import ValidationError

from devices.settings_store import ensure_settings, get_or_default, update_settings
from schemas.settings import UpdateSettingsRequest


@pytest.mark.asyncio
async def test_get_or_default_never_writes(mock_db, frozen_clock, device_id):
    settings = await get_or_default(device_id)

    assert settings.lockdown_minutes == 60
    assert settings.work_minutes == 25
    assert settings.short_break_minutes == 5
    assert settings.long_break_minutes == 15
    assert settings.updated_at is None
    assert await mock_db.settings.count_documents({}) == 0


@pytest.mark.asyncio
async def test_ensure_settings_never_overwrites(mock_db, frozen_clock, device_id):
    await update_settings(device_id, {"lockdown_minutes": 90})
    settings = await ensure_settings(device_id)

    assert settings.lockdown_minutes == 90
    assert await mock_db.settings.count_documents({"device_id": device_id}) == 1


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(mock_db, frozen_clock, device_id):
    await update_settings(device_id, {"work_minutes": 50})
    frozen_clock.advance(minutes=1)
    settings = await update_settings(device_id, {"short_break_minutes": 10})

    assert settings.work_minutes == 50
    assert settings.short_break_minutes == 10
    assert settings.lockdown_minutes == 60
    assert settings.updated_at == frozen_clock.now


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(mock_db, frozen_clock, device_id):
    with pytest.raises(ValueError):
        await update_settings(device_id, {"theme": "dark"})


@pytest.mark.parametrize("payload", [
    {"lockdownMinutes": 0},
    {"lockdownMinutes": 10081},
    {"workMinutes": 181},
    {"shortBreakMinutes": 61},
    {"longBreakMinutes": 0},
    {},
    {"theme": "dark"},
])
def test_update_request_bounds(payload):
    with pytest.raises(ValidationError):
        UpdateSettingsRequest.model_validate(payload)


def test_update_request_accepts_bounds_inclusive():
    req = UpdateSettingsRequest.model_validate({"lockdownMinutes": 10080, "workMinutes": 1})
    assert req.changes() == {"lockdown_minutes": 10080, "work_minutes": 1}

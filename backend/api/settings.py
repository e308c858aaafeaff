"""Per-device settings endpoints."""
from datetime import datetime

from fastapi import APIRouter, Depends

from auth.device_auth import require_device_id
from auth.time_validation import require_client_time
from devices.registry import ensure_device
from devices.settings_store import get_or_default, update_settings
from schemas.settings import DeviceSettings, UpdateSettingsRequest

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=DeviceSettings)
async def read_settings(device_id: str = Depends(require_device_id)):
    return await get_or_default(device_id)


@router.put("", response_model=DeviceSettings)
async def write_settings(
    req: UpdateSettingsRequest,
    device_id: str = Depends(require_device_id),
    _client_time: datetime = Depends(require_client_time),
):
    await ensure_device(device_id)
    return await update_settings(device_id, req.changes())

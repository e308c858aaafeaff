"""Lockdown session endpoints: current state and page presence pings."""
from datetime import datetime

from fastapi import APIRouter, Depends

from auth.device_auth import require_device_id
from auth.time_validation import require_client_time
from lockdown.sessions import create_check_in, get_current_session_view
from schemas.session import CheckInResponse, CheckInType, CurrentSessionResponse

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/current", response_model=CurrentSessionResponse)
async def current_session(
    device_id: str = Depends(require_device_id),
    _client_time: datetime = Depends(require_client_time),
):
    return await get_current_session_view(device_id)


@router.post("/check-in", response_model=CheckInResponse, status_code=201)
async def check_in(
    device_id: str = Depends(require_device_id),
    client_time: datetime = Depends(require_client_time),
):
    return await create_check_in(device_id, CheckInType.CHECK_IN, client_time)


@router.post("/check-out", response_model=CheckInResponse, status_code=201)
async def check_out(
    device_id: str = Depends(require_device_id),
    client_time: datetime = Depends(require_client_time),
):
    return await create_check_in(device_id, CheckInType.CHECK_OUT, client_time)

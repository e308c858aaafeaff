"""Action endpoints: cheat/harm declarations and the harm follow-up."""
from datetime import datetime

from fastapi import APIRouter, Depends

from auth.device_auth import require_device_id
from auth.time_validation import require_client_time
from lockdown.actions import get_pending_follow_up, log_cheat, log_harm, submit_follow_up
from schemas.action import (
    ActionResponse,
    FollowUpRequest,
    FollowUpResponse,
    PendingFollowUpResponse,
)

router = APIRouter(prefix="/actions", tags=["actions"])


@router.post("/cheat", response_model=ActionResponse, status_code=201)
async def cheat(
    device_id: str = Depends(require_device_id),
    client_time: datetime = Depends(require_client_time),
):
    return await log_cheat(device_id, client_time)


@router.post("/harm", response_model=ActionResponse, status_code=201)
async def harm(
    device_id: str = Depends(require_device_id),
    client_time: datetime = Depends(require_client_time),
):
    return await log_harm(device_id, client_time)


@router.get("/follow-up/pending", response_model=PendingFollowUpResponse)
async def pending_follow_up(device_id: str = Depends(require_device_id)):
    return await get_pending_follow_up(device_id)


@router.post("/follow-up", response_model=FollowUpResponse, status_code=201)
async def follow_up(
    req: FollowUpRequest,
    device_id: str = Depends(require_device_id),
    client_time: datetime = Depends(require_client_time),
):
    return await submit_follow_up(device_id, req, client_time)

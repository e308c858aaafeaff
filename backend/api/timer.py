"""Pomodoro timer endpoints. Every command answers with the resulting timer."""

from fastapi import APIRouter, Depends

from auth.device_auth import require_device_id
from pomodoro.timer import get_timer, pause_timer, reset_timer, resume_timer, start_timer
from schemas.timer import StartTimerRequest, TimerResponse

router = APIRouter(prefix="/timer", tags=["timer"])


@router.get("/current", response_model=TimerResponse)
async def current_timer(device_id: str = Depends(require_device_id)):
    return await get_timer(device_id)


@router.post("/start", response_model=TimerResponse)
async def start(req: StartTimerRequest, device_id: str = Depends(require_device_id)):
    return await start_timer(device_id, req.type)


@router.post("/pause", response_model=TimerResponse)
async def pause(device_id: str = Depends(require_device_id)):
    return await pause_timer(device_id)


@router.post("/resume", response_model=TimerResponse)
async def resume(device_id: str = Depends(require_device_id)):
    return await resume_timer(device_id)


@router.post("/reset", response_model=TimerResponse)
async def reset(device_id: str = Depends(require_device_id)):
    return await reset_timer(device_id)

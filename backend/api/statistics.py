"""Statistics endpoints: derived, read-only reports."""
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query

from auth.device_auth import require_device_id
from auth.time_validation import require_client_time
from reporting import aggregator
from schemas.statistics import (
    LockdownNowResponse,
    PomodoroSummary,
    StatisticsDetailsResponse,
    StatisticsSummary,
)

router = APIRouter(prefix="/stats", tags=["statistics"])


@router.get("/now", response_model=LockdownNowResponse)
async def lockdown_now(
    device_id: str = Depends(require_device_id),
    _client_time: datetime = Depends(require_client_time),
):
    return await aggregator.lockdown_now(device_id)


@router.get("/summary", response_model=StatisticsSummary)
async def summary(
    device_id: str = Depends(require_device_id),
    _client_time: datetime = Depends(require_client_time),
):
    return await aggregator.summary(device_id)


@router.get("/details", response_model=StatisticsDetailsResponse)
async def details(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    device_id: str = Depends(require_device_id),
    _client_time: datetime = Depends(require_client_time),
):
    return await aggregator.details(device_id, start_date, end_date)


@router.get("/pomodoro", response_model=PomodoroSummary)
async def pomodoro(
    device_id: str = Depends(require_device_id),
    _client_time: datetime = Depends(require_client_time),
):
    return await aggregator.pomodoro_summary(device_id)

"""Per-device settings schemas and bounds."""
from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from core.clock import as_utc
from schemas.base import ApiModel, RequestModel

LOCKDOWN_MINUTES_MAX = 10080  # one week
WORK_MINUTES_MAX = 180
SHORT_BREAK_MINUTES_MAX = 60
LONG_BREAK_MINUTES_MAX = 120


class DeviceSettings(ApiModel):
    lockdown_minutes: int
    work_minutes: int
    short_break_minutes: int
    long_break_minutes: int
    updated_at: Optional[datetime] = None  # None until first persisted

    @classmethod
    def from_doc(cls, doc: dict) -> "DeviceSettings":
        return cls(
            lockdown_minutes=doc["lockdown_minutes"],
            work_minutes=doc["work_minutes"],
            short_break_minutes=doc["short_break_minutes"],
            long_break_minutes=doc["long_break_minutes"],
            updated_at=as_utc(doc.get("updated_at")),
        )


class UpdateSettingsRequest(RequestModel):
    lockdown_minutes: Optional[int] = Field(default=None, ge=1, le=LOCKDOWN_MINUTES_MAX)
    work_minutes: Optional[int] = Field(default=None, ge=1, le=WORK_MINUTES_MAX)
    short_break_minutes: Optional[int] = Field(default=None, ge=1, le=SHORT_BREAK_MINUTES_MAX)
    long_break_minutes: Optional[int] = Field(default=None, ge=1, le=LONG_BREAK_MINUTES_MAX)

    @model_validator(mode="after")
    def _at_least_one(self) -> "UpdateSettingsRequest":
        if not self.changes():
            raise ValueError("At least one setting must be provided")
        return self

    def changes(self) -> dict:
        """Fields the caller actually set, keyed by storage name."""
        return self.model_dump(exclude_none=True)

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CalendarSlotRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slot_start: datetime
    slot_end: datetime
    is_available: bool


class CalendarSlotAdminRead(CalendarSlotRead):
    booked_by_submission: UUID | None = None
    created_by: UUID | None = None
    notes: str | None = None
    created_at: datetime


class CalendarSlotCreate(BaseModel):
    slot_start: datetime
    slot_end: datetime
    notes: str | None = None

    @field_validator("slot_start", "slot_end")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return as_utc(value)


class CalendarSlotBatchCreate(BaseModel):
    slots: list[CalendarSlotCreate] = Field(min_length=1, max_length=200)


class BookSlotRequest(BaseModel):
    slot_id: UUID


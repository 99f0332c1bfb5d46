"""Scheduling domain schemas - Pydantic models for slots and bookings"""

from datetime import date as date_type
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _to_date(v):
    # Datetimes are accepted and truncated to the calendar date
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, str) and len(v) > 10:
        return datetime.fromisoformat(v).date()
    return v


class SlotCreate(BaseModel):
    """Schema for creating a slot; times use H:MM AM/PM"""

    lab_id: int
    date: date_type
    start_time: str = Field(min_length=1)
    end_time: str = Field(min_length=1)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return _to_date(v)


class SlotUpdate(BaseModel):
    """Partial slot update; omitted fields keep their current value"""

    lab_id: Optional[int] = None
    date: Optional[date_type] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return _to_date(v)


class SlotResponse(BaseModel):
    id: int
    lab_id: int
    lab_name: Optional[str] = None
    date: date_type
    start_time: str
    end_time: str
    capacity: int
    booked_count: int
    current_bookings: int = 0
    status: str
    is_active: bool
    is_available: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingCreate(BaseModel):
    slot_id: int
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        if v is not None:
            v = v.strip() or None
        return v


class BookingResponse(BaseModel):
    id: int
    faculty_id: int
    faculty_name: Optional[str] = None
    slot_id: int
    lab_id: Optional[int] = None
    lab_name: Optional[str] = None
    date: Optional[date_type] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: str
    notes: Optional[str] = None
    booked_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SlotStats(BaseModel):
    total_slots: int
    available_slots: int
    booked_slots: int
    utilization_rate: float


class FacultyStats(BaseModel):
    total_bookings: int
    active_bookings: int
    completed_bookings: int
    cancelled_bookings: int


class AutomationResult(BaseModel):
    slots_completed: int
    bookings_completed: int
    total_updated: int

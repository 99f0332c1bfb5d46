"""Scheduling routers - FastAPI endpoints for slots, bookings and status automation"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_faculty
from ...clock import Clock, get_clock
from ...database import get_db
from ...models import User
from ...services.notification_service import get_notifier
from .schemas import (
    AutomationResult,
    BookingCreate,
    BookingResponse,
    FacultyStats,
    SlotCreate,
    SlotResponse,
    SlotStats,
    SlotUpdate,
)
from .service import SchedulingService

logger = logging.getLogger(__name__)

slots_router = APIRouter(prefix="/slots", tags=["Slots"])
bookings_router = APIRouter(prefix="/bookings", tags=["Bookings"])
status_router = APIRouter(prefix="/status", tags=["Status Automation"])


def get_scheduling_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier=Depends(get_notifier),
) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db, clock=clock, notifier=notifier)


# ============================================
# Slots
# ============================================


@slots_router.get("", response_model=list[SlotResponse])
async def list_slots(
    lab_id: Optional[int] = None,
    slot_date: Optional[date] = Query(default=None, alias="date"),
    status: Optional[str] = None,
    _user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Get active slots, optionally filtered by lab, date and status"""
    return service.list_slots(lab_id=lab_id, day=slot_date, status=status)


@slots_router.get("/available", response_model=list[SlotResponse])
async def list_available_slots(
    lab_id: Optional[int] = None,
    slot_date: Optional[date] = Query(default=None, alias="date"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    _user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Bookable slots from today through the advance booking window"""
    return service.list_available_slots(
        lab_id=lab_id, day=slot_date, start_date=start_date, end_date=end_date
    )


@slots_router.get("/stats", response_model=SlotStats)
async def get_slot_stats(
    _admin: User = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.get_slot_stats()


@slots_router.get("/{slot_id}", response_model=SlotResponse)
async def get_slot(
    slot_id: int,
    _user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.get_slot(slot_id)


@slots_router.post("", response_model=SlotResponse, status_code=201)
async def create_slot(
    data: SlotCreate,
    _admin: User = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    slot = service.add_slot(data.lab_id, data.date, data.start_time, data.end_time)
    return service.slot_response(slot, current_bookings=0)


@slots_router.patch("/{slot_id}", response_model=SlotResponse)
async def update_slot(
    slot_id: int,
    data: SlotUpdate,
    _admin: User = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    slot = service.update_slot(slot_id, data)
    return service.slot_response(slot)


@slots_router.post("/{slot_id}/cancel", response_model=SlotResponse)
async def cancel_slot(
    slot_id: int,
    _admin: User = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    slot = service.cancel_slot(slot_id)
    return service.slot_response(slot)


@slots_router.post("/{slot_id}/restore", response_model=SlotResponse)
async def restore_slot(
    slot_id: int,
    _admin: User = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    slot = service.restore_slot(slot_id)
    return service.slot_response(slot)


@slots_router.delete("/{slot_id}")
async def delete_slot(
    slot_id: int,
    hard: bool = False,
    _admin: User = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Delete a slot without active bookings (soft by default)"""
    return service.delete_slot(slot_id, hard=hard)


# ============================================
# Bookings
# ============================================


@bookings_router.post("", response_model=BookingResponse, status_code=201)
def book_slot(
    data: BookingCreate,
    faculty: User = Depends(require_faculty),
    service: SchedulingService = Depends(get_scheduling_service),
):
    booking = service.book_slot(faculty, data.slot_id, notes=data.notes)
    return service.booking_response(booking)


@bookings_router.get("", response_model=list[BookingResponse])
async def list_bookings(
    status: Optional[str] = None,
    _admin: User = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.list_bookings(status=status)


@bookings_router.get("/me", response_model=list[BookingResponse])
async def list_my_bookings(
    status: Optional[str] = None,
    faculty: User = Depends(require_faculty),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.list_faculty_bookings(faculty, status=status)


@bookings_router.get("/me/stats", response_model=FacultyStats)
async def get_my_booking_stats(
    faculty: User = Depends(require_faculty),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.get_faculty_stats(faculty)


@bookings_router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Booking details for its owner or an admin"""
    return service.get_booking(current_user, booking_id)


@bookings_router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    booking = service.cancel_booking(current_user, booking_id)
    return service.booking_response(booking)


# ============================================
# Status automation
# ============================================


@status_router.post("/automation/run", response_model=AutomationResult)
async def run_status_automation(
    admin: User = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Manually trigger the lapsed slot/booking sweep"""
    logger.info(f"📊 Status automation triggered by admin {admin.id}")
    return service.complete_lapsed()

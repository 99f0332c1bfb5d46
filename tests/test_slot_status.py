from datetime import date, datetime

import pytest

from labbooking.domain.scheduling.status import (
    derive_slot_status,
    is_slot_available,
    validate_booking_transition,
)
from labbooking.models import Booking, Slot
from labbooking.shared.errors import Conflict, InvalidState


def make_slot(**fields):
    values = {
        "lab_id": 1,
        "date": date(2030, 1, 15),
        "start_time": "9:00 AM",
        "end_time": "10:00 AM",
        "capacity": 30,
        "booked_count": 0,
        "status": "available",
        "is_active": True,
    }
    values.update(fields)
    return Slot(**values)


@pytest.mark.parametrize(
    "booked_count,current,expected",
    [
        (0, "available", "available"),
        (1, "available", "booked"),
        (0, "booked", "available"),
        (5, "booked", "booked"),
        (3, "cancelled", "cancelled"),
        (0, "completed", "completed"),
    ],
)
def test_derive_slot_status(booked_count, current, expected):
    assert derive_slot_status(booked_count, current) == expected


@pytest.mark.parametrize("status", ["available", "booked", "cancelled", "completed"])
@pytest.mark.parametrize("booked_count", [0, 1, 2])
def test_derivation_is_idempotent(status, booked_count):
    once = derive_slot_status(booked_count, status)
    assert derive_slot_status(booked_count, once) == once


def test_availability_rules():
    assert is_slot_available(True, "available", 0, 30)
    assert is_slot_available(True, "available", 100, 0)  # capacity 0 is unlimited
    assert not is_slot_available(True, "available", 30, 30)
    assert not is_slot_available(False, "available", 0, 30)
    assert not is_slot_available(True, "booked", 1, 30)
    assert not is_slot_available(True, "cancelled", 0, 30)


def test_booking_transitions():
    assert validate_booking_transition("booked", "cancelled")
    assert validate_booking_transition("booked", "completed")
    assert validate_booking_transition("booked", "no-show")
    assert validate_booking_transition("completed", "completed")
    assert not validate_booking_transition("cancelled", "booked")
    assert not validate_booking_transition("completed", "cancelled")


def test_slot_lapses_strictly_after_end():
    slot = make_slot()
    assert not slot.has_lapsed(datetime(2030, 1, 15, 10, 0))
    assert slot.has_lapsed(datetime(2030, 1, 15, 10, 1))
    assert not slot.has_lapsed(datetime(2030, 1, 14, 23, 0))


def test_recompute_status_keeps_manual_overrides():
    slot = make_slot(booked_count=2, status="cancelled")
    assert slot.recompute_status() == "cancelled"
    slot = make_slot(booked_count=2)
    assert slot.recompute_status() == "booked"
    assert slot.recompute_status() == "booked"


def test_cancel_completed_slot_is_invalid():
    slot = make_slot(status="completed")
    with pytest.raises(InvalidState):
        slot.cancel()


def test_cancel_keeps_booked_count():
    slot = make_slot(booked_count=1, status="booked")
    slot.cancel()
    assert slot.status == "cancelled"
    assert slot.booked_count == 1


def test_restore_requires_cancelled():
    slot = make_slot()
    with pytest.raises(InvalidState):
        slot.restore(0)


def test_restore_trusts_active_booking_count():
    slot = make_slot(booked_count=5, status="cancelled")
    assert slot.restore(1) == "booked"
    assert slot.booked_count == 1

    slot = make_slot(booked_count=1, status="cancelled")
    assert slot.restore(0) == "available"
    assert slot.booked_count == 0


def test_soft_delete_blocked_by_active_bookings():
    slot = make_slot(booked_count=1, status="booked")
    with pytest.raises(Conflict):
        slot.soft_delete(1)

    slot.soft_delete(0)
    assert slot.is_active is False
    assert slot.status == "cancelled"


def test_booking_mark_completed_is_idempotent():
    booking = Booking(faculty_id=1, slot_id=1, status="booked")
    assert booking.mark_completed() is True
    assert booking.status == "completed"
    assert booking.mark_completed() is False

    cancelled = Booking(faculty_id=1, slot_id=1, status="cancelled")
    assert cancelled.mark_completed() is False
    assert cancelled.status == "cancelled"

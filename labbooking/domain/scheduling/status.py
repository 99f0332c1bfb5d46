"""
Slot and booking status rules.

Slot statuses: available → booked (derived from booked_count), plus the two
manual overrides cancelled and completed which derivation never touches.
Booking statuses: booked → cancelled / completed / no-show, all terminal.
"""

SLOT_AVAILABLE = "available"
SLOT_BOOKED = "booked"
SLOT_CANCELLED = "cancelled"
SLOT_COMPLETED = "completed"

SLOT_STATUSES = (SLOT_AVAILABLE, SLOT_BOOKED, SLOT_CANCELLED, SLOT_COMPLETED)
# Set only by explicit cancel/restore/complete actions
SLOT_MANUAL_STATUSES = (SLOT_CANCELLED, SLOT_COMPLETED)
# Statuses the sweep may move to completed
SLOT_OPEN_STATUSES = (SLOT_AVAILABLE, SLOT_BOOKED)

BOOKING_BOOKED = "booked"
BOOKING_CANCELLED = "cancelled"
BOOKING_COMPLETED = "completed"
BOOKING_NO_SHOW = "no-show"

BOOKING_STATUSES = (BOOKING_BOOKED, BOOKING_CANCELLED, BOOKING_COMPLETED, BOOKING_NO_SHOW)

BOOKING_TRANSITIONS = {
    BOOKING_BOOKED: [BOOKING_CANCELLED, BOOKING_COMPLETED, BOOKING_NO_SHOW],
    BOOKING_CANCELLED: [],  # Terminal state
    BOOKING_COMPLETED: [],  # Terminal state
    BOOKING_NO_SHOW: [],  # Terminal state
}


def derive_slot_status(booked_count: int, current_status: str) -> str:
    """
    Status a slot should have for its booked count.

    cancelled and completed are preserved; everything else is booked when at
    least one seat is taken and available otherwise.
    """
    if current_status in SLOT_MANUAL_STATUSES:
        return current_status
    return SLOT_BOOKED if booked_count >= 1 else SLOT_AVAILABLE


def is_slot_available(is_active: bool, status: str, booked_count: int, capacity: int) -> bool:
    """A slot accepts a new booking when active, available and not full (capacity 0 = unlimited)"""
    return bool(is_active) and status == SLOT_AVAILABLE and (capacity == 0 or booked_count < capacity)


def validate_booking_transition(current_status: str, new_status: str) -> bool:
    """
    Validate if a booking status transition is allowed

    Args:
        current_status: Current booking status
        new_status: Desired new status

    Returns:
        bool: True if transition is valid, False otherwise
    """
    if current_status == new_status:
        return True
    return new_status in BOOKING_TRANSITIONS.get(current_status, [])

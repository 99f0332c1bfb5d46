"""
Automated status transitions for slots and bookings
Handles available/booked → completed for slots whose end time has passed
Handles booked → completed for bookings on those slots
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from ..domain.scheduling.repository import BookingRepository, SlotRepository
from ..models import Slot

logger = logging.getLogger(__name__)


def complete_lapsed_slot(db: Session, slot: Slot, now: datetime) -> int:
    """
    Complete one slot (and its still-booked bookings) if its end time has passed.
    Does not commit. Returns the number of rows changed.

    Both updates are conditional, so a cancellation that landed first wins.
    """
    if not slot.has_lapsed(now):
        return 0

    changed = 0
    if SlotRepository.mark_completed_if_open(db, slot.id):
        changed += 1
        logger.info(f"✅ Slot {slot.id} transitioned: {slot.status} → completed")

    for booking in BookingRepository.get_active_for_slot(db, slot.id):
        if BookingRepository.mark_completed_if_booked(db, booking.id):
            changed += 1
            logger.info(f"✅ Booking {booking.id} transitioned: booked → completed")

    if changed:
        db.refresh(slot)
    return changed


def complete_lapsed_slots(db: Session, now: datetime) -> dict:
    """
    Complete every slot and booking whose end time has passed
    Should be run as a scheduled job (see worker.py); safe to run repeatedly

    Returns:
        dict: Summary of status changes made
    """
    summary = {
        "slots_completed": 0,
        "bookings_completed": 0,
        "total_updated": 0,
    }

    try:
        today = now.date()

        # 1. Open slots (available/booked) whose end time has passed
        for slot in SlotRepository.get_lapse_candidates(db, today):
            if not slot.has_lapsed(now):
                continue
            if SlotRepository.mark_completed_if_open(db, slot.id):
                summary["slots_completed"] += 1
                logger.info(f"✅ Slot {slot.id} transitioned: {slot.status} → completed")

        # 2. Bookings still marked booked on lapsed slots, whatever the slot status
        for booking in BookingRepository.get_active_before(db, today):
            if not booking.slot.has_lapsed(now):
                continue
            if BookingRepository.mark_completed_if_booked(db, booking.id):
                summary["bookings_completed"] += 1
                logger.info(f"✅ Booking {booking.id} transitioned: booked → completed")

        total = summary["slots_completed"] + summary["bookings_completed"]
        if total > 0:
            db.commit()
            summary["total_updated"] = total
            logger.info(f"📊 Status automation summary: {summary}")
        else:
            logger.debug("ℹ️ No slot/booking status updates needed")

        return summary

    except Exception as e:
        logger.error(f"❌ Error completing lapsed slots: {str(e)}")
        db.rollback()
        raise

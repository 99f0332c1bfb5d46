"""
Scheduling service - slot and booking business logic

Every write runs as one transaction: validate, mutate, re-derive slot status,
commit, then notify. Any failure before the commit rolls the session back so
nothing is left half-applied.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...clock import Clock
from ...config import CANCELLATION_LEAD_HOURS, SLOT_ADVANCE_DAYS
from ...models import Booking, Slot, User
from ...services.notification_service import NullNotifier
from ...services.status_automation import complete_lapsed_slot, complete_lapsed_slots
from ...shared.errors import (
    AlreadyBooked,
    Conflict,
    DuplicateLabDay,
    InvalidState,
    NotFound,
    SchedulingError,
    SlotUnavailable,
    TimeConflict,
    TooLate,
    Unauthorized,
    ValidationError,
)
from ...shared.locks import lab_day_lock
from ...shared.time_range import TimeRange
from ..labs.repository import LabRepository
from .conflicts import ConflictDetector
from .repository import BookingRepository, SlotRepository
from .schemas import SlotUpdate
from .status import (
    BOOKING_BOOKED,
    BOOKING_CANCELLED,
    BOOKING_COMPLETED,
    BOOKING_STATUSES,
    SLOT_AVAILABLE,
    SLOT_CANCELLED,
    SLOT_COMPLETED,
    SLOT_OPEN_STATUSES,
    SLOT_STATUSES,
)

logger = logging.getLogger(__name__)

DateValue = Union[date, datetime, str]


def to_date(value: DateValue) -> date:
    """Calendar date of a date, datetime or ISO string; the time of day is dropped"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError("Invalid date. Use YYYY-MM-DD", value=str(value))


def _status_filter(status: Optional[str], allowed: tuple) -> Optional[str]:
    if status in (None, "", "all"):
        return None
    if status not in allowed:
        raise ValidationError(f"Invalid status filter: {status}", allowed=list(allowed))
    return status


def _is_faculty_key_violation(error: IntegrityError) -> bool:
    # PostgreSQL names the constraint, SQLite lists its columns
    message = str(error.orig)
    return (
        "uq_booking_faculty_slot" in message
        or "bookings.faculty_id, bookings.slot_id" in message
    )


class SchedulingService:
    """Service layer for slot and booking business logic"""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        notifier=None,
        cancellation_lead_hours: float = CANCELLATION_LEAD_HOURS,
        advance_days: int = SLOT_ADVANCE_DAYS,
    ):
        self.db = db
        self.clock = clock or Clock()
        self.notifier = notifier or NullNotifier()
        self.cancellation_lead = timedelta(hours=cancellation_lead_hours)
        self.advance_days = advance_days
        self.slots = SlotRepository()
        self.bookings = BookingRepository()
        self.labs = LabRepository()
        self.conflicts = ConflictDetector(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_slot(self, slot_id: int, for_update: bool = False) -> Slot:
        slot = self.slots.get_slot(self.db, slot_id, for_update=for_update)
        if not slot:
            raise NotFound("Slot not found", slot_id=slot_id)
        return slot

    def _get_active_lab(self, lab_id: int):
        lab = self.labs.get_lab_by_id(self.db, lab_id)
        if not lab or not lab.is_active:
            raise NotFound("Lab not found", lab_id=lab_id)
        return lab

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def add_slot(self, lab_id: int, day: DateValue, start_time: str, end_time: str) -> Slot:
        """Create a slot in a lab; no active slot on that date may overlap it, in any lab"""
        day = to_date(day)
        candidate = TimeRange.parse(start_time, end_time)
        lab = self._get_active_lab(lab_id)
        self.conflicts.ensure_no_conflict(day, candidate)

        try:
            slot = self.slots.create_slot(
                self.db,
                lab_id=lab.id,
                date=day,
                start_time=candidate.start_label,
                end_time=candidate.end_label,
                capacity=lab.capacity,
                booked_count=0,
                status=SLOT_AVAILABLE,
                is_active=True,
            )
            self.db.commit()
        except IntegrityError as e:
            # Another request stored the same (date, start, end) after our check
            self.db.rollback()
            raise Conflict(
                f"A slot for {day.isoformat()} {candidate.start_label} - {candidate.end_label} "
                f"already exists",
                date=day.isoformat(),
                start_time=candidate.start_label,
                end_time=candidate.end_label,
            ) from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(slot)
        logger.info(
            f"✅ Slot {slot.id} created: lab {lab.id} on {day} {slot.start_time}-{slot.end_time}"
        )
        return slot

    def update_slot(self, slot_id: int, patch: Union[SlotUpdate, dict]) -> Slot:
        """
        Move or re-time a slot. Conflict detection runs again, excluding the
        slot itself. Changing lab re-snapshots capacity from the new lab.
        """
        slot = self._get_slot(slot_id, for_update=True)
        if not slot.is_active or slot.status == SLOT_COMPLETED:
            raise InvalidState(
                "Only active, uncompleted slots can be edited",
                slot_id=slot.id,
                status=slot.status,
                is_active=slot.is_active,
            )

        if isinstance(patch, SlotUpdate):
            patch = patch.model_dump(exclude_unset=True)

        lab_id = patch.get("lab_id") or slot.lab_id
        day = to_date(patch["date"]) if patch.get("date") is not None else slot.date
        candidate = TimeRange.parse(
            patch.get("start_time") or slot.start_time,
            patch.get("end_time") or slot.end_time,
        )

        capacity = slot.capacity
        if lab_id != slot.lab_id:
            lab = self._get_active_lab(lab_id)
            if lab.capacity < slot.booked_count:
                raise Conflict(
                    f"{lab.name} only seats {lab.capacity}, the slot already has "
                    f"{slot.booked_count} bookings",
                    slot_id=slot.id,
                    lab_id=lab.id,
                    capacity=lab.capacity,
                    booked_count=slot.booked_count,
                )
            capacity = lab.capacity

        self.conflicts.ensure_no_conflict(day, candidate, exclude_slot_id=slot.id)

        if lab_id != slot.lab_id or day != slot.date:
            self._ensure_bookings_can_move(slot, lab_id, day)

        try:
            slot.lab_id = lab_id
            slot.date = day
            slot.start_time = candidate.start_label
            slot.end_time = candidate.end_label
            slot.capacity = capacity
            slot.recompute_status()
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict(
                "A slot with the same date and times already exists",
                slot_id=slot_id,
                date=day.isoformat(),
                start_time=candidate.start_label,
                end_time=candidate.end_label,
            ) from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(slot)
        logger.info(f"✅ Slot {slot.id} updated: lab {slot.lab_id} on {slot.date} {slot.start_time}-{slot.end_time}")
        return slot

    def _ensure_bookings_can_move(self, slot: Slot, lab_id: int, day: date) -> None:
        """Bookers of a moved slot must not end up with two bookings in one lab on one day"""
        moving = self.bookings.get_active_for_slot(self.db, slot.id)
        if not moving:
            return
        existing = self.bookings.get_active_bookings_for_lab_day(self.db, lab_id, day)
        for booking in moving:
            for other in existing:
                if other.faculty_id == booking.faculty_id and other.slot_id != slot.id:
                    raise DuplicateLabDay(
                        "A faculty member booked on this slot already has a booking "
                        "in that lab on that date",
                        faculty_id=booking.faculty_id,
                        existing_booking_id=other.id,
                        existing_slot_id=other.slot_id,
                    )

    def cancel_slot(self, slot_id: int) -> Slot:
        """Admin cancellation; bookings are left as they are and booked_count is kept"""
        slot = self._get_slot(slot_id, for_update=True)
        if not slot.is_active:
            raise InvalidState("Slot has been deleted", slot_id=slot.id)
        slot.cancel()
        self._commit()
        logger.info(f"🚫 Slot {slot.id} cancelled")
        return slot

    def restore_slot(self, slot_id: int) -> Slot:
        slot = self._get_slot(slot_id, for_update=True)
        if not slot.is_active:
            raise InvalidState("Deleted slots cannot be restored", slot_id=slot.id)

        active_bookings = self.bookings.count_active_for_slot(self.db, slot.id)
        status = slot.restore(active_bookings)
        self._commit()
        logger.info(f"✅ Slot {slot.id} restored as {status} ({active_bookings} active bookings)")
        return slot

    def delete_slot(self, slot_id: int, hard: bool = False) -> dict:
        """
        Delete a slot with no active bookings. Soft delete deactivates it;
        hard delete removes the row together with its historical bookings.
        """
        slot = self._get_slot(slot_id, for_update=True)
        active_bookings = self.bookings.count_active_for_slot(self.db, slot.id)

        if hard:
            slot.ensure_deletable(active_bookings)
            self.slots.delete_slot(self.db, slot)
        else:
            slot.soft_delete(active_bookings)
        self._commit()

        logger.info(f"🗑️ Slot {slot_id} {'deleted' if hard else 'deactivated'}")
        return {"message": "Slot deleted successfully"}

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def book_slot(self, faculty: User, slot_id: int, notes: Optional[str] = None) -> Booking:
        """
        Book a slot for a faculty member.

        Rejects, in order: unknown slot, a second booking of the same slot by
        the same faculty (any status), a slot that is not bookable, a second
        active booking in the same lab on the same day, and an overlap with
        another faculty's active booking in that lab and day.
        """
        slot = self._get_slot(slot_id)
        logger.info(f"📥 Faculty {faculty.id} booking slot {slot.id}")

        with lab_day_lock(slot.lab_id, slot.date):
            self.db.refresh(slot, with_for_update=True)
            now = self.clock.now()

            existing = self.bookings.find_for_faculty_and_slot(self.db, faculty.id, slot.id)
            if existing:
                raise AlreadyBooked(
                    "You have already booked this slot",
                    slot_id=slot.id,
                    booking_id=existing.id,
                    booking_status=existing.status,
                )

            self._ensure_bookable(slot, now)

            lab_day = self.bookings.get_active_bookings_for_lab_day(self.db, slot.lab_id, slot.date)
            for other in lab_day:
                if other.faculty_id == faculty.id:
                    raise DuplicateLabDay(
                        "You can only book one slot per lab per day",
                        lab_id=slot.lab_id,
                        date=slot.date.isoformat(),
                        existing_booking_id=other.id,
                        existing_slot_id=other.slot_id,
                    )

            requested = slot.time_range
            for other in lab_day:
                if other.faculty_id != faculty.id and other.slot.time_range.overlaps(requested):
                    raise TimeConflict(
                        f"Time slot overlaps an existing booking "
                        f"({other.slot.start_time} - {other.slot.end_time})",
                        slot_id=slot.id,
                        conflicting_booking_id=other.id,
                        conflicting_slot_id=other.slot_id,
                        conflicting_faculty_id=other.faculty_id,
                        conflicting_faculty_name=other.faculty.name if other.faculty else None,
                    )

            booking = self._insert_booking(faculty, slot, notes, now)

        self._notify_booking_created(faculty, slot)
        return booking

    def _ensure_bookable(self, slot: Slot, now: datetime) -> None:
        context = {
            "slot_id": slot.id,
            "status": slot.status,
            "booked_count": slot.booked_count,
            "capacity": slot.capacity,
        }
        if not slot.is_active:
            raise SlotUnavailable("Slot is no longer offered", **context)
        if slot.has_lapsed(now):
            raise SlotUnavailable("Slot has already ended", **context)
        if slot.status == SLOT_CANCELLED:
            raise SlotUnavailable("Slot has been cancelled", **context)
        if not slot.is_available:
            raise SlotUnavailable("Slot is already booked", **context)

    def _insert_booking(
        self, faculty: User, slot: Slot, notes: Optional[str], now: datetime
    ) -> Booking:
        slot_id = slot.id
        try:
            booking = self.bookings.create_booking(
                self.db,
                faculty_id=faculty.id,
                slot_id=slot_id,
                status=BOOKING_BOOKED,
                notes=notes,
                booked_at=now,
            )
        except IntegrityError as e:
            self.db.rollback()
            if _is_faculty_key_violation(e):
                raise AlreadyBooked(
                    "You have already booked this slot", slot_id=slot_id
                ) from e
            raise

        try:
            if not self.slots.claim_seat(self.db, slot_id):
                # Filled or cancelled between our checks and the update
                self.db.rollback()
                raise SlotUnavailable("Slot is already booked", slot_id=slot_id)

            self.db.refresh(slot)
            slot.recompute_status()
            self.db.commit()
        except SchedulingError:
            raise
        except Exception as e:
            logger.error(f"❌ Failed to book slot {slot_id} for faculty {faculty.id}: {e}")
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(
            f"✅ Booking {booking.id} created: faculty {faculty.id} → slot {slot_id} "
            f"(slot now {slot.status}, {slot.booked_count}/{slot.capacity or '∞'})"
        )
        return booking

    def _notify_booking_created(self, faculty: User, slot: Slot) -> None:
        summary = slot.summary()
        summary["cancellation_lead_hours"] = self.cancellation_lead.total_seconds() / 3600
        try:
            result = self.notifier.notify_booking_created(
                {"id": faculty.id, "name": faculty.name, "email": faculty.email},
                summary,
            )
            if result and result.get("email_error"):
                logger.warning(f"⚠️ Booking notification failed: {result['email_error']}")
        except Exception as e:
            logger.error(f"❌ Booking notification raised for slot {slot.id}: {e}")

    def cancel_booking(self, actor: User, booking_id: int) -> Booking:
        """
        Cancel a booking. Only its owner or an admin may cancel, and not once
        the slot is less than the cancellation lead time away.
        """
        booking = self.bookings.get_booking(self.db, booking_id)
        if not booking:
            raise NotFound("Booking not found", booking_id=booking_id)

        if not actor.is_admin and booking.faculty_id != actor.id:
            raise Unauthorized(
                "You can only cancel your own bookings",
                booking_id=booking.id,
                user_id=actor.id,
            )

        if booking.status != BOOKING_BOOKED:
            raise InvalidState(
                f"Booking is already {booking.status}",
                booking_id=booking.id,
                status=booking.status,
            )

        slot = booking.slot
        self.db.refresh(slot, with_for_update=True)
        now = self.clock.now()
        if slot.time_until_start(now) < self.cancellation_lead:
            lead_hours = self.cancellation_lead.total_seconds() / 3600
            raise TooLate(
                f"Bookings can only be cancelled at least {lead_hours:g} hours before the slot starts",
                booking_id=booking.id,
                slot_id=slot.id,
                starts_at=slot.starts_at.isoformat(),
                lead_hours=lead_hours,
            )

        try:
            if not self.bookings.transition_if_booked(
                self.db, booking.id, status=BOOKING_CANCELLED, cancelled_at=now
            ):
                self.db.rollback()
                raise InvalidState("Booking is no longer active", booking_id=booking_id)

            self.slots.release_seat(self.db, slot.id)
            self.db.refresh(slot)
            slot.recompute_status()
            self.db.commit()
        except SchedulingError:
            raise
        except Exception as e:
            logger.error(f"❌ Failed to cancel booking {booking_id}: {e}")
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(
            f"🚫 Booking {booking.id} cancelled by user {actor.id} "
            f"(slot {slot.id} now {slot.status})"
        )
        return booking

    # ------------------------------------------------------------------
    # Time
    # ------------------------------------------------------------------

    def complete_lapsed(self) -> dict:
        """Complete every slot and booking whose end time has passed"""
        return complete_lapsed_slots(self.db, self.clock.now())

    def _settle_lapsed(self, slots) -> None:
        """Lazily complete lapsed slots about to be shown to a caller"""
        now = self.clock.now()
        changed = 0
        try:
            for slot in slots:
                if slot.is_active and slot.status in SLOT_OPEN_STATUSES:
                    changed += complete_lapsed_slot(self.db, slot, now)
            if changed:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _settle_lapsed_bookings(self, bookings) -> None:
        """Complete still-booked bookings whose slot has ended, whatever the slot's status"""
        now = self.clock.now()
        changed = 0
        try:
            for booking in bookings:
                if booking.is_active and booking.slot.has_lapsed(now):
                    if self.bookings.mark_completed_if_booked(self.db, booking.id):
                        changed += 1
                        logger.info(f"✅ Booking {booking.id} transitioned: booked → completed")
            if changed:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def slot_response(self, slot: Slot, current_bookings: Optional[int] = None) -> dict:
        if current_bookings is None:
            current_bookings = self.bookings.count_active_for_slot(self.db, slot.id)
        return {
            "id": slot.id,
            "lab_id": slot.lab_id,
            "lab_name": slot.lab.name if slot.lab else None,
            "date": slot.date,
            "start_time": slot.start_time,
            "end_time": slot.end_time,
            "capacity": slot.capacity,
            "booked_count": slot.booked_count,
            "current_bookings": current_bookings,
            "status": slot.status,
            "is_active": slot.is_active,
            "is_available": slot.is_available,
            "created_at": slot.created_at,
        }

    def _slot_responses(self, slots: list[Slot]) -> list[dict]:
        counts = self.bookings.count_active_by_slot(self.db, [slot.id for slot in slots])
        return [self.slot_response(slot, counts.get(slot.id, 0)) for slot in slots]

    def get_slot(self, slot_id: int) -> dict:
        slot = self._get_slot(slot_id)
        self._settle_lapsed([slot])
        return self.slot_response(slot)

    def list_slots(
        self,
        lab_id: Optional[int] = None,
        day: Optional[DateValue] = None,
        status: Optional[str] = None,
    ) -> list[dict]:
        """Active slots, optionally for one lab, one date or one status"""
        status = _status_filter(status, SLOT_STATUSES)
        slots = self.slots.search_slots(
            self.db, lab_id=lab_id, day=to_date(day) if day is not None else None
        )
        self._settle_lapsed(slots)
        if status:
            slots = [slot for slot in slots if slot.status == status]
        return self._slot_responses(slots)

    def list_available_slots(
        self,
        lab_id: Optional[int] = None,
        day: Optional[DateValue] = None,
        start_date: Optional[DateValue] = None,
        end_date: Optional[DateValue] = None,
    ) -> list[dict]:
        """
        Slots faculty can book right now. Defaults to today through the
        advance booking window; past dates are never returned.
        """
        today = self.clock.now().date()
        if day is not None:
            first = last = to_date(day)
        else:
            first = to_date(start_date) if start_date is not None else today
            last = (
                to_date(end_date)
                if end_date is not None
                else today + timedelta(days=self.advance_days)
            )
        first = max(first, today)
        if first > last:
            return []

        slots = self.slots.search_slots(
            self.db,
            lab_id=lab_id,
            status=SLOT_AVAILABLE,
            start_date=first,
            end_date=last,
        )
        self._settle_lapsed(slots)
        return self._slot_responses([slot for slot in slots if slot.is_available])

    def get_slot_stats(self) -> dict:
        return self.slots.get_stats(self.db, self.clock.now().date())

    def booking_response(self, booking: Booking) -> dict:
        slot = booking.slot
        return {
            "id": booking.id,
            "faculty_id": booking.faculty_id,
            "faculty_name": booking.faculty.name if booking.faculty else None,
            "slot_id": booking.slot_id,
            "lab_id": slot.lab_id if slot else None,
            "lab_name": slot.lab.name if slot and slot.lab else None,
            "date": slot.date if slot else None,
            "start_time": slot.start_time if slot else None,
            "end_time": slot.end_time if slot else None,
            "status": booking.status,
            "notes": booking.notes,
            "booked_at": booking.booked_at,
            "cancelled_at": booking.cancelled_at,
        }

    def _booking_responses(self, bookings: list[Booking]) -> list[dict]:
        self._settle_lapsed({booking.slot for booking in bookings if booking.is_active})
        # Cancelled or deleted slots are skipped above but their bookings still lapse
        self._settle_lapsed_bookings(bookings)
        return [self.booking_response(booking) for booking in bookings]

    def get_booking(self, actor: User, booking_id: int) -> dict:
        """One booking, visible to its owner and to admins"""
        booking = self.bookings.get_booking(self.db, booking_id)
        if not booking:
            raise NotFound("Booking not found", booking_id=booking_id)
        if not actor.is_admin and booking.faculty_id != actor.id:
            raise Unauthorized(
                "You can only view your own bookings",
                booking_id=booking.id,
                user_id=actor.id,
            )
        return self._booking_responses([booking])[0]

    def list_bookings(self, status: Optional[str] = None) -> list[dict]:
        """All bookings, newest first (admin view)"""
        status = _status_filter(status, BOOKING_STATUSES)
        return self._booking_responses(self.bookings.list_bookings(self.db, status=status))

    def list_faculty_bookings(self, faculty: User, status: Optional[str] = None) -> list[dict]:
        status = _status_filter(status, BOOKING_STATUSES)
        bookings = self.bookings.list_bookings(self.db, faculty_id=faculty.id, status=status)
        return self._booking_responses(bookings)

    def get_faculty_stats(self, faculty: User) -> dict:
        counts = self.bookings.count_by_status(self.db, faculty.id)
        return {
            "total_bookings": sum(counts.values()),
            "active_bookings": counts.get(BOOKING_BOOKED, 0),
            "completed_bookings": counts.get(BOOKING_COMPLETED, 0),
            "cancelled_bookings": counts.get(BOOKING_CANCELLED, 0),
        }

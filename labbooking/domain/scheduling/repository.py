"""Slot and booking repositories - Database operations for scheduling"""

from datetime import date
from typing import Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, Slot
from .status import (
    BOOKING_BOOKED,
    BOOKING_COMPLETED,
    SLOT_AVAILABLE,
    SLOT_BOOKED,
    SLOT_COMPLETED,
    SLOT_OPEN_STATUSES,
)


class SlotRepository:
    """Repository for slot database operations"""

    @staticmethod
    def get_slot(db: Session, slot_id: int, for_update: bool = False) -> Optional[Slot]:
        if for_update:
            # Row lock on PostgreSQL (no outer join allowed); ignored by SQLite
            return db.query(Slot).filter(Slot.id == slot_id).with_for_update().first()
        return db.query(Slot).options(joinedload(Slot.lab)).filter(Slot.id == slot_id).first()

    @staticmethod
    def get_active_slots_on(
        db: Session, day: date, exclude_slot_id: Optional[int] = None
    ) -> list[Slot]:
        """All active slots on a date, across every lab, in storage order"""
        query = db.query(Slot).filter(Slot.date == day, Slot.is_active.is_(True))
        if exclude_slot_id is not None:
            query = query.filter(Slot.id != exclude_slot_id)
        return query.order_by(Slot.id).all()

    @staticmethod
    def find_exact(
        db: Session, day: date, start_time: str, end_time: str, exclude_slot_id: Optional[int] = None
    ) -> Optional[Slot]:
        query = db.query(Slot).filter(
            Slot.date == day,
            Slot.start_time == start_time,
            Slot.end_time == end_time,
            Slot.is_active.is_(True),
        )
        if exclude_slot_id is not None:
            query = query.filter(Slot.id != exclude_slot_id)
        return query.order_by(Slot.id).first()

    @staticmethod
    def search_slots(
        db: Session,
        lab_id: Optional[int] = None,
        day: Optional[date] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Slot]:
        query = db.query(Slot).options(joinedload(Slot.lab)).filter(Slot.is_active.is_(True))
        if lab_id is not None:
            query = query.filter(Slot.lab_id == lab_id)
        if day is not None:
            query = query.filter(Slot.date == day)
        if start_date is not None:
            query = query.filter(Slot.date >= start_date)
        if end_date is not None:
            query = query.filter(Slot.date <= end_date)
        if status:
            query = query.filter(Slot.status == status)
        return query.order_by(Slot.date, Slot.id).all()

    @staticmethod
    def get_lapse_candidates(db: Session, today: date) -> list[Slot]:
        """Open slots dated today or earlier; callers check the end time"""
        return (
            db.query(Slot)
            .filter(
                Slot.is_active.is_(True),
                Slot.status.in_(SLOT_OPEN_STATUSES),
                Slot.date <= today,
            )
            .order_by(Slot.id)
            .all()
        )

    @staticmethod
    def create_slot(db: Session, **slot_data) -> Slot:
        slot = Slot(**slot_data)
        db.add(slot)
        db.flush()
        return slot

    @staticmethod
    def claim_seat(db: Session, slot_id: int) -> bool:
        """
        Atomically take one seat if the slot can still be booked.
        Returns False when another request got there first.
        """
        result = db.execute(
            update(Slot)
            .where(
                Slot.id == slot_id,
                Slot.is_active.is_(True),
                Slot.status == SLOT_AVAILABLE,
                or_(Slot.capacity == 0, Slot.booked_count < Slot.capacity),
            )
            .values(booked_count=Slot.booked_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def release_seat(db: Session, slot_id: int) -> bool:
        """Atomically give back one seat, never going below zero"""
        result = db.execute(
            update(Slot)
            .where(Slot.id == slot_id, Slot.booked_count > 0)
            .values(booked_count=Slot.booked_count - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def mark_completed_if_open(db: Session, slot_id: int) -> bool:
        """Conditional open → completed so a concurrent cancel is never overwritten"""
        result = db.execute(
            update(Slot)
            .where(Slot.id == slot_id, Slot.status.in_(SLOT_OPEN_STATUSES))
            .values(status=SLOT_COMPLETED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def delete_slot(db: Session, slot: Slot) -> None:
        db.delete(slot)

    @staticmethod
    def get_stats(db: Session, today: date) -> dict:
        total_slots = db.query(func.count(Slot.id)).filter(Slot.is_active.is_(True)).scalar()
        available_slots = (
            db.query(func.count(Slot.id))
            .filter(Slot.is_active.is_(True), Slot.status == SLOT_AVAILABLE, Slot.date >= today)
            .scalar()
        )
        booked_slots = (
            db.query(func.count(Slot.id))
            .filter(Slot.is_active.is_(True), Slot.status == SLOT_BOOKED)
            .scalar()
        )
        return {
            "total_slots": total_slots,
            "available_slots": available_slots,
            "booked_slots": booked_slots,
            "utilization_rate": round(booked_slots / total_slots * 100, 2) if total_slots else 0.0,
        }


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.slot).joinedload(Slot.lab), joinedload(Booking.faculty))
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def find_for_faculty_and_slot(db: Session, faculty_id: int, slot_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.faculty_id == faculty_id, Booking.slot_id == slot_id)
            .first()
        )

    @staticmethod
    def get_active_bookings_for_lab_day(db: Session, lab_id: int, day: date) -> list[Booking]:
        """Active bookings in one lab on one date, with their slots, in storage order"""
        return (
            db.query(Booking)
            .join(Slot, Booking.slot_id == Slot.id)
            .options(joinedload(Booking.slot), joinedload(Booking.faculty))
            .filter(
                Slot.lab_id == lab_id,
                Slot.date == day,
                Booking.status == BOOKING_BOOKED,
            )
            .order_by(Booking.id)
            .all()
        )

    @staticmethod
    def count_active_for_slot(db: Session, slot_id: int) -> int:
        return (
            db.query(func.count(Booking.id))
            .filter(Booking.slot_id == slot_id, Booking.status == BOOKING_BOOKED)
            .scalar()
        )

    @staticmethod
    def count_active_by_slot(db: Session, slot_ids: list[int]) -> dict[int, int]:
        if not slot_ids:
            return {}
        rows = (
            db.query(Booking.slot_id, func.count(Booking.id))
            .filter(Booking.slot_id.in_(slot_ids), Booking.status == BOOKING_BOOKED)
            .group_by(Booking.slot_id)
            .all()
        )
        return {slot_id: count for slot_id, count in rows}

    @staticmethod
    def get_active_for_slot(db: Session, slot_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.slot_id == slot_id, Booking.status == BOOKING_BOOKED)
            .order_by(Booking.id)
            .all()
        )

    @staticmethod
    def get_active_before(db: Session, today: date) -> list[Booking]:
        """Active bookings whose slot is dated today or earlier"""
        return (
            db.query(Booking)
            .join(Slot, Booking.slot_id == Slot.id)
            .options(joinedload(Booking.slot))
            .filter(Booking.status == BOOKING_BOOKED, Slot.date <= today)
            .order_by(Booking.id)
            .all()
        )

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def transition_if_booked(db: Session, booking_id: int, **values) -> bool:
        """Conditional update out of 'booked'; False if someone else moved it first"""
        result = db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BOOKING_BOOKED)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def mark_completed_if_booked(db: Session, booking_id: int) -> bool:
        return BookingRepository.transition_if_booked(db, booking_id, status=BOOKING_COMPLETED)

    @staticmethod
    def list_bookings(
        db: Session, faculty_id: Optional[int] = None, status: Optional[str] = None
    ) -> list[Booking]:
        query = db.query(Booking).options(
            joinedload(Booking.slot).joinedload(Slot.lab), joinedload(Booking.faculty)
        )
        if faculty_id is not None:
            query = query.filter(Booking.faculty_id == faculty_id)
        if status and status != "all":
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.booked_at.desc(), Booking.id.desc()).all()

    @staticmethod
    def count_by_status(db: Session, faculty_id: int) -> dict[str, int]:
        rows = (
            db.query(Booking.status, func.count(Booking.id))
            .filter(Booking.faculty_id == faculty_id)
            .group_by(Booking.status)
            .all()
        )
        return {status: count for status, count in rows}


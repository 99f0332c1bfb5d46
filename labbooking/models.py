from datetime import date, datetime, timedelta

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, text

from .config import DEFAULT_LAB_CAPACITY
from .database import Base
from .domain.scheduling.status import (
    BOOKING_BOOKED,
    BOOKING_COMPLETED,
    SLOT_AVAILABLE,
    SLOT_CANCELLED,
    SLOT_COMPLETED,
    derive_slot_status,
    is_slot_available,
)
from .shared.errors import Conflict, InvalidState
from .shared.time_range import TimeRange, parse_time


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(20), default="faculty", nullable=False)  # admin, faculty
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    bookings = relationship("Booking", back_populates="faculty", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Lab(Base):
    __tablename__ = "labs"
    __table_args__ = (
        # Names only need to be unique among active labs; soft-deleted labs may share one
        Index(
            "ix_labs_active_name",
            "name",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        CheckConstraint("capacity >= 1", name="ck_labs_capacity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    capacity = Column(Integer, default=DEFAULT_LAB_CAPACITY, nullable=False)
    equipment = Column(JSON, default=list, nullable=False)  # list of equipment names
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    slots = relationship("Slot", back_populates="lab")


class Slot(Base):
    """A bookable interval in one lab on one calendar date"""

    __tablename__ = "slots"
    __table_args__ = (
        # Storage-level guard against exact duplicates across ALL labs
        Index(
            "ix_slots_active_date_times",
            "date",
            "start_time",
            "end_time",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        CheckConstraint("booked_count >= 0", name="ck_slots_booked_count_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    lab_id = Column(Integer, ForeignKey("labs.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(10), nullable=False)  # H:MM AM/PM
    end_time = Column(String(10), nullable=False)
    capacity = Column(Integer, default=0, nullable=False)  # copied from the lab; 0 = unlimited
    booked_count = Column(Integer, default=0, nullable=False)

    # Status workflow: available ⇄ booked (derived from booked_count)
    # cancelled: admin cancelled the slot (restore re-derives)
    # completed: the slot's end time has passed
    status = Column(String(20), default=SLOT_AVAILABLE, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    lab = relationship("Lab", back_populates="slots")
    bookings = relationship("Booking", back_populates="slot", cascade="all, delete-orphan")

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(parse_time(self.start_time), parse_time(self.end_time))

    @property
    def starts_at(self) -> datetime:
        return self.time_range.start_on(self.date)

    @property
    def ends_at(self) -> datetime:
        return self.time_range.end_on(self.date)

    @property
    def is_available(self) -> bool:
        return is_slot_available(self.is_active, self.status, self.booked_count, self.capacity)

    def recompute_status(self) -> str:
        self.status = derive_slot_status(self.booked_count, self.status)
        return self.status

    def has_lapsed(self, now: datetime) -> bool:
        return now > self.ends_at

    def time_until_start(self, now: datetime) -> timedelta:
        return self.starts_at - now

    def cancel(self) -> None:
        if self.status == SLOT_COMPLETED:
            raise InvalidState(
                "Completed slots cannot be cancelled", slot_id=self.id, status=self.status
            )
        self.status = SLOT_CANCELLED

    def restore(self, active_booking_count: int) -> str:
        """Un-cancel, trusting the live booking count over the stored counter"""
        if self.status != SLOT_CANCELLED:
            raise InvalidState(
                f"Only cancelled slots can be restored (slot is {self.status})",
                slot_id=self.id,
                status=self.status,
            )
        self.booked_count = active_booking_count
        # Lift the manual override, then derive from the fresh count
        self.status = SLOT_AVAILABLE
        return self.recompute_status()

    def ensure_deletable(self, active_booking_count: int) -> None:
        if active_booking_count > 0:
            raise Conflict(
                "Cannot delete slot with existing bookings. Cancel bookings first.",
                slot_id=self.id,
                active_bookings=active_booking_count,
            )

    def soft_delete(self, active_booking_count: int) -> None:
        self.ensure_deletable(active_booking_count)
        self.is_active = False
        self.status = SLOT_CANCELLED

    def summary(self) -> dict:
        return {
            "slot_id": self.id,
            "lab_id": self.lab_id,
            "lab_name": self.lab.name if self.lab else None,
            "location": self.lab.location if self.lab else None,
            "date": self.date.isoformat() if isinstance(self.date, date) else self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


class Booking(Base):
    """A faculty member's claim on a slot"""

    __tablename__ = "bookings"
    __table_args__ = (
        # Last line of defense against a faculty double-booking the same slot
        UniqueConstraint("faculty_id", "slot_id", name="uq_booking_faculty_slot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    faculty_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id"), nullable=False, index=True)

    # Status workflow: booked → cancelled | completed | no-show
    status = Column(String(20), default=BOOKING_BOOKED, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    booked_at = Column(DateTime, nullable=False, default=datetime.now)
    cancelled_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    faculty = relationship("User", back_populates="bookings")
    slot = relationship("Slot", back_populates="bookings")

    @property
    def is_active(self) -> bool:
        return self.status == BOOKING_BOOKED

    def mark_completed(self) -> bool:
        """booked → completed; returns False when there was nothing to do"""
        if self.status != BOOKING_BOOKED:
            return False
        self.status = BOOKING_COMPLETED
        return True

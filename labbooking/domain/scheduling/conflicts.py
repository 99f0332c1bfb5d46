"""
Slot conflict detection.

Conflicts are checked across ALL labs on a date, not per lab: the institution
allows only one lab to hold any given time period. Touching ranges
(9-10 and 10-11) conflict too.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Slot
from ...shared.errors import Conflict, TimeConflict
from ...shared.time_range import TimeRange
from .repository import SlotRepository

logger = logging.getLogger(__name__)


def describe_slot(slot: Slot) -> dict:
    return {
        "conflicting_slot_id": slot.id,
        "conflicting_lab_id": slot.lab_id,
        "conflicting_lab_name": slot.lab.name if slot.lab else None,
        "conflicting_date": slot.date.isoformat(),
        "conflicting_start_time": slot.start_time,
        "conflicting_end_time": slot.end_time,
    }


class ConflictDetector:
    def __init__(self, db: Session):
        self.db = db
        self.repo = SlotRepository()

    def find_exact_duplicate(
        self, day: date, candidate: TimeRange, exclude_slot_id: Optional[int] = None
    ) -> Optional[Slot]:
        """Same date and identical start/end (canonical strings) among active slots"""
        return self.repo.find_exact(
            self.db, day, candidate.start_label, candidate.end_label, exclude_slot_id
        )

    def find_conflict(
        self, day: date, candidate: TimeRange, exclude_slot_id: Optional[int] = None
    ) -> Optional[Slot]:
        """
        First active slot on the date overlapping the candidate, in storage
        order. No priority among several conflicts is implied.
        """
        for slot in self.repo.get_active_slots_on(self.db, day, exclude_slot_id):
            if slot.time_range.overlaps(candidate):
                return slot
        return None

    def ensure_no_conflict(
        self, day: date, candidate: TimeRange, exclude_slot_id: Optional[int] = None
    ) -> None:
        """Raise Conflict for an exact duplicate, TimeConflict for any other overlap"""
        duplicate = self.find_exact_duplicate(day, candidate, exclude_slot_id)
        if duplicate:
            logger.warning(
                f"⚠️ Duplicate slot rejected: {day} {candidate.start_label}-{candidate.end_label} "
                f"already exists as slot {duplicate.id}"
            )
            raise Conflict(
                f"A slot for {day.isoformat()} {candidate.start_label} - {candidate.end_label} "
                f"already exists",
                **describe_slot(duplicate),
            )

        conflicting = self.find_conflict(day, candidate, exclude_slot_id)
        if conflicting:
            lab_name = conflicting.lab.name if conflicting.lab else f"lab {conflicting.lab_id}"
            logger.warning(
                f"⚠️ Slot {day} {candidate.start_label}-{candidate.end_label} conflicts with "
                f"slot {conflicting.id} ({lab_name})"
            )
            raise TimeConflict(
                f"Time slot conflicts with existing slot in {lab_name} "
                f"({conflicting.start_time} - {conflicting.end_time})",
                **describe_slot(conflicting),
            )

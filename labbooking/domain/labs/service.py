"""Lab service - Business logic for lab operations"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Lab
from ...shared.errors import Conflict, NotFound
from .repository import LabRepository
from .schemas import LabCreate, LabUpdate

logger = logging.getLogger(__name__)


class LabService:
    """Service layer for lab business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LabRepository()

    def get_labs(self) -> list[Lab]:
        return self.repo.get_labs(self.db)

    def get_lab(self, lab_id: int) -> Lab:
        lab = self.repo.get_lab_by_id(self.db, lab_id)
        if not lab:
            raise NotFound("Lab not found", lab_id=lab_id)
        return lab

    def _ensure_name_free(self, name: str, exclude_lab_id=None) -> None:
        existing = self.repo.find_active_by_name(self.db, name, exclude_lab_id)
        if existing:
            raise Conflict("Lab name already exists", name=name, existing_lab_id=existing.id)

    def create_lab(self, data: LabCreate) -> Lab:
        """Create a new lab; names are unique among active labs"""
        logger.info(f"📥 Creating lab '{data.name}'")
        self._ensure_name_free(data.name)

        try:
            lab = self.repo.create_lab(
                self.db,
                name=data.name,
                description=data.description,
                location=data.location,
                capacity=data.capacity,
                equipment=data.equipment,
                is_active=True,
            )
        except IntegrityError as e:
            # Another request created the same name between the check and the insert
            self.db.rollback()
            raise Conflict("Lab name already exists", name=data.name) from e

        logger.info(f"✅ Lab {lab.id} created: {lab.name}")
        return lab

    def update_lab(self, lab_id: int, data: LabUpdate) -> Lab:
        lab = self.get_lab(lab_id)
        if data.name is not None and data.name != lab.name and lab.is_active:
            self._ensure_name_free(data.name, exclude_lab_id=lab.id)

        updates = data.model_dump(exclude_unset=True)
        try:
            return self.repo.update_lab(self.db, lab, **updates)
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict("Lab name already exists", name=data.name) from e

    def delete_lab(self, lab_id: int) -> dict:
        """Soft delete a lab that no longer has active slots"""
        lab = self.get_lab(lab_id)

        active_slots = self.repo.count_active_slots(self.db, lab.id)
        if active_slots > 0:
            raise Conflict(
                "Cannot delete lab with active slots. Please deactivate or remove slots first.",
                lab_id=lab.id,
                active_slots=active_slots,
            )

        self.repo.update_lab(self.db, lab, is_active=False)
        logger.info(f"🗑️ Lab {lab.id} deactivated")
        return {"message": "Lab deleted successfully"}

    def get_stats(self) -> dict:
        return self.repo.get_stats(self.db)

"""Lab repository - Database operations for labs"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Lab, Slot


class LabRepository:
    """Repository for lab database operations"""

    @staticmethod
    def get_labs(db: Session) -> list[Lab]:
        """Get all active labs"""
        return db.query(Lab).filter(Lab.is_active.is_(True)).order_by(Lab.name).all()

    @staticmethod
    def get_lab_by_id(db: Session, lab_id: int) -> Optional[Lab]:
        return db.query(Lab).filter(Lab.id == lab_id).first()

    @staticmethod
    def find_active_by_name(
        db: Session, name: str, exclude_lab_id: Optional[int] = None
    ) -> Optional[Lab]:
        query = db.query(Lab).filter(Lab.name == name, Lab.is_active.is_(True))
        if exclude_lab_id is not None:
            query = query.filter(Lab.id != exclude_lab_id)
        return query.first()

    @staticmethod
    def create_lab(db: Session, **lab_data) -> Lab:
        lab = Lab(**lab_data)
        db.add(lab)
        db.commit()
        db.refresh(lab)
        return lab

    @staticmethod
    def update_lab(db: Session, lab: Lab, **updates) -> Lab:
        """Update a lab with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(lab, key):
                setattr(lab, key, value)

        db.commit()
        db.refresh(lab)
        return lab

    @staticmethod
    def count_active_slots(db: Session, lab_id: int) -> int:
        return (
            db.query(func.count(Slot.id))
            .filter(Slot.lab_id == lab_id, Slot.is_active.is_(True))
            .scalar()
        )

    @staticmethod
    def get_stats(db: Session) -> dict:
        total_labs = db.query(func.count(Lab.id)).filter(Lab.is_active.is_(True)).scalar()
        total_slots = db.query(func.count(Slot.id)).filter(Slot.is_active.is_(True)).scalar()
        return {"total_labs": total_labs, "total_slots": total_slots}

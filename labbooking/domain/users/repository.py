"""User repository - Database operations for users"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Booking, User
from ..scheduling.status import BOOKING_BOOKED


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def _filtered(
        db: Session,
        role: Optional[str] = None,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
    ):
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        return query

    @staticmethod
    def get_users(
        db: Session,
        role: Optional[str] = None,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[User], int]:
        """One page of users, newest first, and the total matching count"""
        query = UserRepository._filtered(db, role=role, search=search, is_active=is_active)
        total = query.count()
        users = (
            query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()
        )
        return users, total

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def find_by_email(
        db: Session, email: str, exclude_user_id: Optional[int] = None
    ) -> Optional[User]:
        query = db.query(User).filter(func.lower(User.email) == email.lower())
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        return query.first()

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        user = User(**user_data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, user: User, **updates) -> User:
        """Update a user with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)

        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def delete_user(db: Session, user: User) -> None:
        db.delete(user)
        db.commit()

    @staticmethod
    def count_active_bookings(db: Session, user_id: int) -> int:
        return (
            db.query(func.count(Booking.id))
            .filter(Booking.faculty_id == user_id, Booking.status == BOOKING_BOOKED)
            .scalar()
        )

    @staticmethod
    def get_stats(db: Session, registered_since: datetime) -> dict:
        total_users = db.query(func.count(User.id)).scalar()
        active_users = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar()
        faculties = db.query(func.count(User.id)).filter(User.role == "faculty").scalar()
        admins = db.query(func.count(User.id)).filter(User.role == "admin").scalar()
        recent = (
            db.query(func.count(User.id)).filter(User.created_at >= registered_since).scalar()
        )
        return {
            "total_users": total_users,
            "active_users": active_users,
            "inactive_users": total_users - active_users,
            "faculties": faculties,
            "admins": admins,
            "recent_registrations": recent,
        }

"""User service - Business logic for user accounts"""

import logging
import math
from datetime import timedelta
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...clock import Clock
from ...models import User
from ...shared.errors import Conflict, NotFound
from ..scheduling.repository import BookingRepository
from ..scheduling.status import BOOKING_BOOKED, BOOKING_COMPLETED
from .repository import UserRepository
from .schemas import ProfileUpdate, UserCreate, UserUpdate

logger = logging.getLogger(__name__)

RECENT_REGISTRATION_DAYS = 30


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or Clock()
        self.repo = UserRepository()

    def list_users(
        self,
        role: Optional[str] = None,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        page = max(page, 1)
        limit = max(limit, 1)
        skip = (page - 1) * limit
        users, total = self.repo.get_users(
            self.db, role=role, search=search, is_active=is_active, skip=skip, limit=limit
        )
        return {
            "users": users,
            "page": page,
            "total_pages": math.ceil(total / limit),
            "total_users": total,
            "has_more": skip + len(users) < total,
        }

    def _get(self, user_id: int) -> User:
        user = self.repo.get_user_by_id(self.db, user_id)
        if not user:
            raise NotFound("User not found", user_id=user_id)
        return user

    def get_user(self, user_id: int) -> dict:
        """User details; faculty accounts include their booking counts"""
        user = self._get(user_id)
        detail = {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "role": user.role,
            "is_active": user.is_active,
            "created_at": user.created_at,
            "stats": None,
        }
        if user.role == "faculty":
            counts = BookingRepository.count_by_status(self.db, user.id)
            detail["stats"] = {
                "total_bookings": sum(counts.values()),
                "active_bookings": counts.get(BOOKING_BOOKED, 0),
                "completed_bookings": counts.get(BOOKING_COMPLETED, 0),
            }
        return detail

    def _ensure_email_free(self, email: str, exclude_user_id=None) -> None:
        existing = self.repo.find_by_email(self.db, email, exclude_user_id)
        if existing:
            raise Conflict("Email already exists", email=email, existing_user_id=existing.id)

    def create_user(self, data: UserCreate) -> User:
        logger.info(f"📥 Creating {data.role} account for {data.email}")
        self._ensure_email_free(data.email)

        try:
            user = self.repo.create_user(
                self.db, name=data.name, email=data.email, role=data.role, is_active=True
            )
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict("Email already exists", email=data.email) from e

        logger.info(f"✅ User {user.id} created: {user.email} ({user.role})")
        return user

    def update_user(self, user_id: int, data: Union[UserUpdate, ProfileUpdate]) -> User:
        user = self._get(user_id)
        if data.email is not None:
            self._ensure_email_free(data.email, exclude_user_id=user.id)

        updates = data.model_dump(exclude_unset=True)
        try:
            user = self.repo.update_user(self.db, user, **updates)
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict("Email already exists", email=data.email) from e

        logger.info(f"✅ User {user.id} updated: {sorted(updates)}")
        return user

    def delete_user(self, user_id: int) -> dict:
        """Remove a user and their booking history; blocked while bookings are active"""
        user = self._get(user_id)

        active_bookings = self.repo.count_active_bookings(self.db, user.id)
        if active_bookings > 0:
            raise Conflict(
                "Cannot delete user with active bookings. Please cancel bookings first.",
                user_id=user.id,
                active_bookings=active_bookings,
            )

        try:
            self.repo.delete_user(self.db, user)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ User {user_id} deleted")
        return {"message": "User deleted successfully"}

    def get_stats(self) -> dict:
        since = self.clock.now() - timedelta(days=RECENT_REGISTRATION_DAYS)
        return self.repo.get_stats(self.db, since)

    def ensure_admin(self, email: str, name: str) -> User:
        """Create an admin for this email unless a user already has it"""
        existing = self.repo.find_by_email(self.db, email)
        if existing:
            return existing
        user = self.repo.create_user(
            self.db, name=name, email=email.lower(), role="admin", is_active=True
        )
        logger.info(f"✅ Bootstrap admin {user.id} created: {user.email}")
        return user

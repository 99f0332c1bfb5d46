"""User router - FastAPI endpoints for account management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...clock import Clock, get_clock
from ...database import get_db
from ...models import User
from .schemas import (
    ProfileUpdate,
    UserCreate,
    UserDetail,
    UserPage,
    UserResponse,
    UserStats,
    UserUpdate,
)
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db, clock=clock)


@router.get("/me", response_model=UserResponse)
async def get_my_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_my_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Change your own name or email"""
    return service.update_user(current_user.id, data)


@router.get("", response_model=UserPage)
async def list_users(
    role: Optional[str] = None,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.list_users(
        role=role, search=search, is_active=is_active, page=page, limit=limit
    )


@router.get("/stats", response_model=UserStats)
async def get_user_stats(
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.get_stats()


@router.get("/{user_id}", response_model=UserDetail)
async def get_user(
    user_id: int,
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.get_user(user_id)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.create_user(data)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.update_user(user_id, data)


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Delete a user without active bookings"""
    logger.info(f"🗑️ Admin {admin.id} deleting user {user_id}")
    return service.delete_user(user_id)

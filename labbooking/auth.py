"""
Actor resolution.

Authentication happens upstream (gateway / SSO); requests reach this service
with the authenticated user's id in the X-User-Id header. These dependencies
only turn that id into a User and check the role.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .shared.errors import Unauthorized

logger = logging.getLogger(__name__)


def get_current_user(
    x_user_id: Optional[int] = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = db.query(User).filter(User.id == x_user_id, User.is_active.is_(True)).first()
    if not user:
        logger.warning(f"Unknown or inactive user id in request: {x_user_id}")
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise Unauthorized("Admin access required", user_id=current_user.id)
    return current_user


def require_faculty(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "faculty":
        raise Unauthorized("Faculty access required", user_id=current_user.id)
    return current_user

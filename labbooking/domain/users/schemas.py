"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator

USER_ROLES = ("admin", "faculty")


def _check_role(v):
    if v is not None and v not in USER_ROLES:
        raise ValueError(f"Role must be one of: {', '.join(USER_ROLES)}")
    return v


def _clean_name(v):
    if v is not None:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
    return v


class UserCreate(BaseModel):
    """Schema for creating a new user"""

    name: str
    email: EmailStr
    role: str = "faculty"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)


class UserUpdate(BaseModel):
    """Schema for updating an existing user (admin)"""

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower() if v else v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own account"""

    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower() if v else v


class UserResponse(BaseModel):
    """Schema for user response"""

    id: int
    name: str
    email: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserBookingStats(BaseModel):
    total_bookings: int
    active_bookings: int
    completed_bookings: int


class UserDetail(UserResponse):
    stats: Optional[UserBookingStats] = None


class UserPage(BaseModel):
    users: list[UserResponse]
    page: int
    total_pages: int
    total_users: int
    has_more: bool


class UserStats(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    faculties: int
    admins: int
    recent_registrations: int

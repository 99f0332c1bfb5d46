"""Lab domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...config import DEFAULT_LAB_CAPACITY


def _clean_equipment(v):
    if v is None:
        return v
    return [item.strip() for item in v if item and item.strip()]


class LabCreate(BaseModel):
    """Schema for creating a new lab"""

    name: str = Field(min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: int = Field(default=DEFAULT_LAB_CAPACITY, ge=1)
    equipment: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Lab name is required")
        return v

    @field_validator("equipment")
    @classmethod
    def validate_equipment(cls, v):
        return _clean_equipment(v)


class LabUpdate(BaseModel):
    """Schema for updating an existing lab"""

    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    equipment: Optional[list[str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError("Lab name cannot be empty")
        return v

    @field_validator("equipment")
    @classmethod
    def validate_equipment(cls, v):
        return _clean_equipment(v)


class LabResponse(BaseModel):
    """Schema for lab response"""

    id: int
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: int
    equipment: list[str] = []
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LabStats(BaseModel):
    total_labs: int
    total_slots: int

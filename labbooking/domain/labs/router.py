"""Lab router - FastAPI endpoints for lab operations"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from .schemas import LabCreate, LabResponse, LabStats, LabUpdate
from .service import LabService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/labs", tags=["Labs"])


def get_lab_service(db: Session = Depends(get_db)) -> LabService:
    """Dependency injection for LabService"""
    return LabService(db)


@router.get("", response_model=list[LabResponse])
async def get_labs(
    _user: User = Depends(get_current_user),
    service: LabService = Depends(get_lab_service),
):
    """Get all active labs"""
    return service.get_labs()


@router.get("/stats", response_model=LabStats)
async def get_lab_stats(
    _admin: User = Depends(require_admin),
    service: LabService = Depends(get_lab_service),
):
    return service.get_stats()


@router.get("/{lab_id}", response_model=LabResponse)
async def get_lab(
    lab_id: int,
    _user: User = Depends(get_current_user),
    service: LabService = Depends(get_lab_service),
):
    return service.get_lab(lab_id)


@router.post("", response_model=LabResponse, status_code=201)
async def create_lab(
    data: LabCreate,
    _admin: User = Depends(require_admin),
    service: LabService = Depends(get_lab_service),
):
    return service.create_lab(data)


@router.patch("/{lab_id}", response_model=LabResponse)
async def update_lab(
    lab_id: int,
    data: LabUpdate,
    _admin: User = Depends(require_admin),
    service: LabService = Depends(get_lab_service),
):
    return service.update_lab(lab_id, data)


@router.delete("/{lab_id}")
async def delete_lab(
    lab_id: int,
    _admin: User = Depends(require_admin),
    service: LabService = Depends(get_lab_service),
):
    """Soft delete a lab (blocked while it has active slots)"""
    return service.delete_lab(lab_id)

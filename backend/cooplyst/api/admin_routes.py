"""
Admin settings and instance info routes
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cooplyst.api.deps import require_admin
from cooplyst.core.database import get_db
from cooplyst.core.exceptions import CoopLystError
from cooplyst.models.user import User
from cooplyst.schemas.provider_schemas import AdminInfo
from cooplyst.services.admin_service import AdminService

router = APIRouter()


@router.get("/settings", response_model=Dict[str, str])
async def get_settings(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """All stored runtime settings"""
    admin_service = AdminService(db)
    return await admin_service.get_settings()


@router.patch("/settings", response_model=Dict[str, str])
async def update_settings(
    updates: Dict[str, Any],
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update recognized runtime settings"""
    admin_service = AdminService(db)
    try:
        return await admin_service.update_settings(updates)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/info", response_model=AdminInfo)
async def get_info(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    admin_service = AdminService(db)
    return await admin_service.get_info()

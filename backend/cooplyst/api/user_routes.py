"""
User routes
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cooplyst.api.deps import get_current_user
from cooplyst.core.database import get_db
from cooplyst.core.exceptions import CoopLystError
from cooplyst.models.user import User
from cooplyst.schemas.user_schemas import UserCreate, UserResponse
from cooplyst.services.user_service import UserService

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    """Create a group member; the first one becomes admin"""
    user_service = UserService(db)
    try:
        return await user_service.create_user(user_data)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[UserResponse])
async def list_users(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    user_service = UserService(db)
    return await user_service.list_users()


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """The acting user"""
    return user

"""
Shared route dependencies
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from cooplyst.core.database import get_db
from cooplyst.core.exceptions import CoopLystError
from cooplyst.models.user import User
from cooplyst.services.user_service import UserService


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db)
) -> User:
    """Acting user identified by the X-User-Id header"""
    try:
        return UserService(db).authenticate(x_user_id)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user

"""
Group members and request identity
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from cooplyst.core.exceptions import AuthenticationError, ConflictError, ValidationError
from cooplyst.models.user import User
from cooplyst.schemas.user_schemas import UserCreate

logger = logging.getLogger(__name__)


class UserService:
    """User creation and lookup"""

    def __init__(self, db: Session):
        self.db = db

    async def create_user(self, user_data: UserCreate) -> User:
        """Create a member; the very first one becomes the admin"""
        username = user_data.username.strip()
        if not username:
            raise ValidationError("Username is required")

        taken = self.db.query(User.id).filter(func.lower(User.username) == func.lower(username)).first()
        if taken:
            raise ConflictError("Username already taken")

        role = "admin" if self.db.query(User).count() == 0 else "user"
        user = User(username=username, role=role)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("User %s created with role %s", user.username, user.role)
        return user

    async def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.created_at, User.username).all()

    def authenticate(self, user_id: Optional[str]) -> User:
        """Resolve the acting user from a request's user id"""
        if not user_id:
            raise AuthenticationError()
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise AuthenticationError()
        return user

"""
User data model
"""

import uuid
from sqlalchemy import Column, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from cooplyst.core.database import Base

USER_ROLES = ("admin", "user")

class User(Base):
    """Group member"""
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'user')", name="ck_users_role"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(50), nullable=False, unique=True)
    role = Column(String(10), nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

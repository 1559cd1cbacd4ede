"""
User schemas
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional
from datetime import datetime

from cooplyst.core.utils import format_timestamp_with_timezone


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)


class UserResponse(BaseModel):
    id: str
    username: str
    role: str
    created_at: Optional[datetime] = None

    @field_serializer('created_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_timestamp_with_timezone(dt)

    class Config:
        from_attributes = True

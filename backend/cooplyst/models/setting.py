"""
Runtime setting data model
"""

from sqlalchemy import Column, String, Text
from cooplyst.core.database import Base

class Setting(Base):
    """Admin-editable key/value setting"""
    __tablename__ = "settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)

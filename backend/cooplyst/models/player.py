"""
Player data model
"""

from sqlalchemy import Column, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cooplyst.core.database import Base

class Player(Base):
    """Membership of a user in a game once it has left voting"""
    __tablename__ = "game_players"

    game_id = Column(String(36), ForeignKey("games.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    game = relationship("Game", back_populates="players")
    user = relationship("User")

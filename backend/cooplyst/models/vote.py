"""
Vote data model
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cooplyst.core.database import Base

class Vote(Base):
    """Current vote of one user on one game (overwritten on re-vote)"""
    __tablename__ = "votes"
    __table_args__ = (
        CheckConstraint("vote IN (0, 1)", name="ck_votes_value"),
    )

    game_id = Column(String(36), ForeignKey("games.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    vote = Column(Integer, nullable=False)      # 1 = yes, 0 = no
    voted_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    game = relationship("Game", back_populates="votes")
    user = relationship("User")

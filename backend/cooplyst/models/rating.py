"""
Rating data model
"""

from sqlalchemy import Column, Float, String, ForeignKey, DateTime, Text, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cooplyst.core.database import Base

class Rating(Base):
    """Score a player gave to one run"""
    __tablename__ = "ratings"
    __table_args__ = (
        CheckConstraint("score >= 1 AND score <= 10", name="ck_ratings_score"),
    )

    run_id = Column(String(36), ForeignKey("game_runs.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    score = Column(Float, nullable=False)        # 1-10
    comment = Column(Text, nullable=True)
    rated_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    run = relationship("Run", back_populates="ratings")
    user = relationship("User")

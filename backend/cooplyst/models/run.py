"""
Run data model
"""

import uuid
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cooplyst.core.database import Base

class Run(Base):
    """One playthrough attempt of a game"""
    __tablename__ = "game_runs"
    __table_args__ = (
        UniqueConstraint("game_id", "run_number", name="uq_game_runs_number"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    game_id = Column(String(36), ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    run_number = Column(Integer, nullable=False)          # 1-based, per game
    name = Column(String(80), nullable=True)
    started_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    game = relationship("Game", back_populates="runs")
    ratings = relationship("Rating", back_populates="run", cascade="all, delete-orphan")

"""
Game data model
"""

import uuid
from sqlalchemy import Column, Integer, String, DateTime, Text, Float, JSON, ForeignKey, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cooplyst.core.database import Base

GAME_STATUSES = ("proposed", "voting", "backlog", "playing", "completed")
VOTING_STATUSES = ("proposed", "voting")

# Columns admins may edit and metadata refresh may fill
METADATA_FIELDS = (
    "title", "cover_url", "thumbnail_url", "logo_url", "backdrop_url",
    "description", "genre", "release_year", "release_date", "platforms",
    "rating", "developer", "age_rating", "time_to_beat", "player_counts",
    "coop", "online_offline", "screenshots", "videos", "tags", "website",
)

class Game(Base):
    """Proposed game, one row per title"""
    __tablename__ = "games"
    __table_args__ = (
        UniqueConstraint("api_id", "api_provider", name="uq_games_api_identity"),
        CheckConstraint(
            "status IN ('proposed', 'voting', 'backlog', 'playing', 'completed')",
            name="ck_games_status",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)

    # Images
    cover_url = Column(String(1000), nullable=True)
    thumbnail_url = Column(String(1000), nullable=True)
    logo_url = Column(String(1000), nullable=True)
    backdrop_url = Column(String(1000), nullable=True)

    # Descriptive metadata
    description = Column(Text, nullable=True)
    genre = Column(String(255), nullable=True)
    release_year = Column(Integer, nullable=True)
    release_date = Column(String(50), nullable=True)
    platforms = Column(Text, nullable=True)
    rating = Column(Float, nullable=True)
    developer = Column(String(255), nullable=True)
    age_rating = Column(String(100), nullable=True)
    time_to_beat = Column(String(100), nullable=True)
    player_counts = Column(String(100), nullable=True)
    coop = Column(String(255), nullable=True)
    online_offline = Column(String(50), nullable=True)
    tags = Column(Text, nullable=True)
    website = Column(String(1000), nullable=True)
    screenshots = Column(JSON, nullable=True)          # list of image URLs
    videos = Column(JSON, nullable=True)               # list of {type, name, url, provider}
    provider_payload = Column(JSON, nullable=True)     # raw details keyed by provider type

    # External identity
    api_id = Column(String(100), nullable=True)
    api_provider = Column(String(50), nullable=True)

    # Workflow
    status = Column(String(20), nullable=False, default="proposed")
    status_changed_at = Column(DateTime(timezone=True), server_default=func.now())
    last_run_number = Column(Integer, nullable=False, default=0)  # highest run number ever issued
    proposed_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    proposed_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    proposer = relationship("User")
    votes = relationship("Vote", back_populates="game", cascade="all, delete-orphan")
    players = relationship("Player", back_populates="game", cascade="all, delete-orphan")
    runs = relationship("Run", back_populates="game", cascade="all, delete-orphan", order_by="Run.run_number")

# Titles are unique regardless of case and surrounding whitespace
Index("ix_games_title_normalized", func.lower(func.trim(Game.title)), unique=True)

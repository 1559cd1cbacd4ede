"""
Game related schemas
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional, List, Dict, Any
from datetime import datetime

from cooplyst.core.utils import format_timestamp_with_timezone


def _serialize_dt(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return format_timestamp_with_timezone(dt)


class VideoInfo(BaseModel):
    """Trailer attached to a game"""
    type: Optional[str] = None
    name: Optional[str] = None
    url: str
    provider: Optional[str] = None


class GameMetadataFields(BaseModel):
    """Metadata fields shared by proposal and admin edits"""
    cover_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    logo_url: Optional[str] = None
    backdrop_url: Optional[str] = None
    description: Optional[str] = None
    genre: Optional[str] = None
    release_year: Optional[int] = None
    release_date: Optional[str] = None
    platforms: Optional[str] = None
    rating: Optional[float] = None
    developer: Optional[str] = None
    age_rating: Optional[str] = None
    time_to_beat: Optional[str] = None
    player_counts: Optional[str] = None
    coop: Optional[str] = None
    online_offline: Optional[str] = None
    screenshots: Optional[List[str]] = None
    videos: Optional[List[VideoInfo]] = None
    tags: Optional[str] = None
    website: Optional[str] = None


class GameCreate(GameMetadataFields):
    """Request body for proposing a game"""
    title: str = Field(..., description="Game title")
    api_id: Optional[str] = Field(default=None, description="Id of the game at the provider it was picked from")
    api_provider: Optional[str] = Field(default=None, description="Provider type the api_id belongs to")


class GameMetadataUpdate(GameMetadataFields):
    """Admin patch; only fields present in the body are applied"""
    title: Optional[str] = None
    provider_payload: Optional[Dict[str, Any]] = None


class VoteCreate(BaseModel):
    vote: Any = Field(..., description="1 = yes, 0 = no")


class StatusUpdate(BaseModel):
    status: str = Field(..., description="Target status")


class PlayerAdd(BaseModel):
    user_id: str


class PlayerInfo(BaseModel):
    """Game participant"""
    user_id: str
    username: str
    added_at: Optional[datetime] = None

    @field_serializer('added_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class VoterInfo(BaseModel):
    user_id: str
    username: str
    vote: int
    voted_at: Optional[datetime] = None

    @field_serializer('voted_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class RatingCreate(BaseModel):
    score: Any = Field(..., description="Number between 1 and 10")
    comment: Optional[str] = None


class RatingInfo(BaseModel):
    user_id: str
    username: str
    score: float
    comment: Optional[str] = None
    rated_at: Optional[datetime] = None

    @field_serializer('rated_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class RunRename(BaseModel):
    name: str


class RunResponse(BaseModel):
    """Run of a game"""
    id: str
    game_id: str
    run_number: int
    name: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_serializer('started_at', 'completed_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)

    class Config:
        from_attributes = True


class RunDetail(RunResponse):
    ratings: List[RatingInfo] = []
    average_rating: Optional[float] = None


class GameResponse(GameMetadataFields):
    """Game enriched with votes, players and ratings"""
    id: str
    title: str
    status: str
    status_changed_at: Optional[datetime] = None
    proposed_by: str
    proposed_at: Optional[datetime] = None
    api_id: Optional[str] = None
    api_provider: Optional[str] = None
    screenshots: List[str] = []
    videos: List[VideoInfo] = []
    provider_payload: Dict[str, Any] = {}
    votes_yes: int = 0
    votes_no: int = 0
    user_vote: Optional[int] = None
    players: List[PlayerInfo] = []
    voters: Optional[List[VoterInfo]] = None
    median_rating: Optional[float] = None

    @field_serializer('status_changed_at', 'proposed_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class GameDetail(GameResponse):
    """Single game view"""
    runs: List[RunDetail] = []
    proposed_by_username: str = "Unknown"


class OkResponse(BaseModel):
    ok: bool = True


class PlayersResponse(OkResponse):
    players: List[PlayerInfo] = []

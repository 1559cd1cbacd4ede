"""
Metadata provider and runtime settings schemas
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Literal, Dict, Any

class ProviderConfig(BaseModel):
    """One entry of the game_api_providers setting"""
    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Adapter type, e.g. rawg or igdb")
    enabled: bool = Field(False, description="Whether the provider takes part in search and merge")
    priority: Optional[int] = Field(None, description="Lower runs first; unset sorts last")
    api_key: Optional[str] = Field(None, description="RAWG API key")
    client_id: Optional[str] = Field(None, description="IGDB / Twitch client id")
    client_secret: Optional[str] = Field(None, description="IGDB / Twitch client secret")

    @property
    def sort_priority(self) -> int:
        return self.priority or 99


class AppSettings(BaseModel):
    """Typed view of the settings table"""
    vote_threshold: int = Field(3, ge=1)
    vote_visibility: Literal["public", "private"] = "public"
    game_api_providers: List[ProviderConfig] = Field(default_factory=list)

    def enabled_providers(self) -> List[ProviderConfig]:
        """Enabled providers in ascending priority; ties keep configured order"""
        return sorted(
            (p for p in self.game_api_providers if p.enabled),
            key=lambda p: p.sort_priority,
        )


class ProviderTestResponse(BaseModel):
    """Outcome of a provider connectivity test"""
    ok: bool
    detail: str


class SearchResult(BaseModel):
    """Basic game card returned by a provider search"""
    model_config = ConfigDict(extra="allow")

    api_id: str
    api_provider: str
    title: Optional[str] = None
    release_year: Optional[int] = None
    cover_url: Optional[str] = None
    backdrop_url: Optional[str] = None
    description: Optional[str] = None
    genre: Optional[str] = None
    platforms: Optional[str] = None
    rating: Optional[float] = None


class SearchResponse(BaseModel):
    results: List[SearchResult] = []
    provider: Optional[str] = None


class AdminInfo(BaseModel):
    """Instance overview for the admin screen"""
    app: Dict[str, Any]
    counts: Dict[str, int]

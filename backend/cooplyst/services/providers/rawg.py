"""
RAWG metadata provider (REST, API key)
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from cooplyst.core.config import settings
from cooplyst.core.exceptions import ProviderError
from cooplyst.schemas.provider_schemas import ProviderConfig, ProviderTestResponse
from cooplyst.services.providers.base import ProviderAdapter, ProviderRecord, uniq_strings

logger = logging.getLogger(__name__)


class RawgAdapter(ProviderAdapter):
    """rawg.io adapter"""

    name = "rawg"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.base_url = settings.RAWG_BASE_URL.rstrip('/')

    @staticmethod
    def _require_key(config: ProviderConfig) -> str:
        if not config.api_key:
            raise ProviderError("RAWG API key not configured")
        return config.api_key

    @staticmethod
    def _to_rating(game: Dict[str, Any]) -> Optional[float]:
        """Metacritic (0-100) or RAWG user rating (0-5), both scaled to 0-10"""
        if game.get("metacritic"):
            return round(game["metacritic"] / 10, 1)
        if game.get("rating"):
            return round(game["rating"] * 2, 1)
        return None

    @staticmethod
    def _join_names(items: Optional[List[Dict[str, Any]]], limit: Optional[int] = None) -> Optional[str]:
        names = [item.get("name") for item in (items or [])[:limit] if item.get("name")]
        return ", ".join(names) or None

    def _map_basic(self, game: Dict[str, Any]) -> ProviderRecord:
        released = game.get("released")
        platforms = [
            (entry.get("platform") or {}).get("name")
            for entry in game.get("platforms") or []
        ]
        return {
            "api_id": str(game["id"]),
            "api_provider": self.name,
            "title": game.get("name"),
            "cover_url": game.get("background_image"),
            "backdrop_url": game.get("background_image"),
            "description": game.get("description_raw") or game.get("description") or "",
            "genre": ", ".join(g.get("name", "") for g in game.get("genres") or []),
            "release_year": int(released[:4]) if released else None,
            "platforms": ", ".join(name for name in platforms if name),
            "rating": self._to_rating(game),
            "developer": self._join_names(game.get("developers")),
            "tags": self._join_names(game.get("tags"), limit=12),
            "website": game.get("website") or None,
        }

    def _map_details(self, game: Dict[str, Any], movies: Dict[str, Any]) -> ProviderRecord:
        record = self._map_basic(game)
        image = game.get("background_image")

        videos = []
        for item in movies.get("results") or []:
            data = item.get("data") or {}
            video_url = data.get("max") or data.get("480")
            if not video_url:
                continue
            videos.append({
                "provider": self.name,
                "type": "gameplay_trailer",
                "name": item.get("name") or "Trailer",
                "url": video_url,
            })

        playtime = game.get("playtime")
        record.update({
            "release_date": game.get("released"),
            "age_rating": (game.get("esrb_rating") or {}).get("name"),
            "time_to_beat": f"~{playtime}h" if playtime else None,
            "player_counts": None,
            "coop": None,
            "online_offline": None,
            "screenshots": uniq_strings(s.get("image") for s in game.get("short_screenshots") or []),
            "videos": videos,
            "images": {
                "poster": image,
                "thumbnail": image,
                "logo": None,
                "backdrop": image,
            },
        })
        return record

    async def search(self, query: str, config: ProviderConfig) -> List[ProviderRecord]:
        key = self._require_key(config)
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/games",
                params={"key": key, "search": query, "page_size": 10},
            )
        if not response.is_success:
            raise ProviderError(f"RAWG API error: {response.status_code}")
        data = response.json()
        return [self._map_basic(game) for game in data.get("results") or []]

    async def details(self, api_id: str, config: ProviderConfig) -> ProviderRecord:
        key = self._require_key(config)
        async with self._client() as client:
            game_response, movies_response = await asyncio.gather(
                client.get(f"{self.base_url}/games/{api_id}", params={"key": key}),
                client.get(f"{self.base_url}/games/{api_id}/movies", params={"key": key}),
                return_exceptions=True,
            )

        if isinstance(game_response, BaseException):
            raise ProviderError(f"RAWG request failed: {game_response}") from game_response
        if not game_response.is_success:
            raise ProviderError(f"RAWG API error: {game_response.status_code}")

        movies: Dict[str, Any] = {"results": []}
        if isinstance(movies_response, BaseException):
            logger.debug("RAWG movies request for %s failed: %s", api_id, movies_response)
        elif movies_response.is_success:
            movies = movies_response.json()

        return self._map_details(game_response.json(), movies)

    async def test(self, config: ProviderConfig) -> ProviderTestResponse:
        if not config.api_key:
            return ProviderTestResponse(ok=False, detail="API key is missing")
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/games",
                    params={"key": config.api_key, "page_size": 1},
                )
        except httpx.HTTPError as e:
            return ProviderTestResponse(ok=False, detail=str(e))
        if not response.is_success:
            return ProviderTestResponse(ok=False, detail=f"HTTP {response.status_code}")
        return ProviderTestResponse(ok=True, detail="Connection successful")

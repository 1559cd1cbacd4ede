"""
IGDB metadata provider (Apicalypse POST queries, Twitch client-credentials auth)
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

from cooplyst.core.config import settings
from cooplyst.core.exceptions import ProviderError
from cooplyst.schemas.provider_schemas import ProviderConfig, ProviderTestResponse
from cooplyst.services.providers.base import ProviderAdapter, ProviderRecord, uniq_strings

logger = logging.getLogger(__name__)

SEARCH_FIELDS = (
    "name,cover.url,summary,genres.name,first_release_date,platforms.name,rating,"
    "aggregated_rating,screenshots.url,involved_companies.company.name,"
    "involved_companies.developer,themes.name,websites.url,websites.category"
)
DETAIL_FIELDS = (
    "name,cover.url,summary,genres.name,first_release_date,release_dates.human,"
    "platforms.name,rating,aggregated_rating,screenshots.url,artworks.url,"
    "involved_companies.company.name,involved_companies.developer,themes.name,"
    "websites.url,websites.category,age_ratings.rating,age_ratings.category"
)
MULTIPLAYER_FIELDS = (
    "campaigncoop,dropin,lancoop,offlinecoop,offlinecoopmax,offlinemax,onlinecoop,"
    "onlinecoopmax,onlinemax,splitscreen,splitscreenonline"
)
OFFICIAL_WEBSITE_CATEGORY = 1
TOKEN_EXPIRY_MARGIN = 60  # seconds


class IgdbAdapter(ProviderAdapter):
    """igdb.com adapter"""

    name = "igdb"

    # client_id -> (access token, expiry epoch seconds), shared process-wide
    _token_cache: Dict[str, Tuple[str, float]] = {}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.base_url = settings.IGDB_BASE_URL.rstrip('/')
        self.token_url = settings.TWITCH_TOKEN_URL

    @classmethod
    def clear_token_cache(cls) -> None:
        cls._token_cache.clear()

    @staticmethod
    def _require_credentials(config: ProviderConfig) -> None:
        if not config.client_id or not config.client_secret:
            raise ProviderError("IGDB credentials not configured")

    async def _get_token(self, client: httpx.AsyncClient, config: ProviderConfig) -> str:
        """Return a cached access token or exchange client credentials for a new one"""
        now = time.time()
        cached = self._token_cache.get(config.client_id)
        if cached and cached[1] > now:
            return cached[0]

        response = await client.post(
            self.token_url,
            params={
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "grant_type": "client_credentials",
            },
        )
        if not response.is_success:
            raise ProviderError(f"IGDB token error: {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            raise ProviderError("IGDB token response is not JSON")
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise ProviderError("IGDB token response has no access_token")
        expires_in = int(payload.get("expires_in", 3600))
        IgdbAdapter._token_cache[config.client_id] = (token, now + expires_in - TOKEN_EXPIRY_MARGIN)
        logger.debug("Fetched new IGDB token for client %s", config.client_id)
        return token

    async def _post(self, client: httpx.AsyncClient, config: ProviderConfig, token: str, endpoint: str, body: str) -> List[Dict[str, Any]]:
        response = await client.post(
            f"{self.base_url}/{endpoint}",
            content=body,
            headers={
                "Client-ID": config.client_id,
                "Authorization": f"Bearer {token}",
                "Content-Type": "text/plain",
            },
        )
        if not response.is_success:
            raise ProviderError(f"IGDB API error {endpoint}: {response.status_code}")
        return response.json()

    @staticmethod
    def _build_image(url: Optional[str], size: str) -> Optional[str]:
        """IGDB image URLs come protocol-relative at thumbnail size"""
        if not url:
            return None
        url = url.replace("t_thumb", size)
        return f"https:{url}" if url.startswith("//") else url

    @staticmethod
    def _format_age_rating(age_ratings: Optional[List[Dict[str, Any]]]) -> Optional[str]:
        first = (age_ratings or [None])[0]
        if not first or not first.get("rating"):
            return None
        if first.get("category"):
            return f"Category {first['category']} - Rating {first['rating']}"
        return f"Rating {first['rating']}"

    @staticmethod
    def _format_time_to_beat(time_to_beat: Optional[Dict[str, Any]]) -> Optional[str]:
        if not time_to_beat:
            return None

        def hours(seconds):
            return round(seconds / 3600, 1) if seconds else None

        pieces = []
        for label, key in (("Rush", "hastily"), ("Main", "normally"), ("100%", "completely")):
            value = hours(time_to_beat.get(key))
            if value:
                pieces.append(f"{label}: {value}h")
        return " · ".join(pieces) or None

    @staticmethod
    def _summarize_multiplayer(modes: List[Dict[str, Any]]) -> Dict[str, Optional[str]]:
        """Player counts, coop flags and online/offline availability"""
        def max_of(key):
            return max([0] + [mode.get(key) or 0 for mode in modes])

        online_max = max_of("onlinemax")
        offline_max = max_of("offlinemax")
        online_coop_max = max_of("onlinecoopmax")
        offline_coop_max = max_of("offlinecoopmax")

        has_online = any(
            m.get("onlinecoop") or (m.get("onlinemax") or 0) > 1 or m.get("splitscreenonline")
            for m in modes
        )
        has_offline = any(
            m.get("offlinecoop") or (m.get("offlinemax") or 0) > 1 or m.get("splitscreen") or m.get("lancoop")
            for m in modes
        )

        player_counts = None
        if online_max > 0 or offline_max > 0:
            player_counts = f"Online max: {online_max} · Offline max: {offline_max}"

        coop_flags = []
        if online_coop_max > 0:
            coop_flags.append(f"Online coop: {online_coop_max}")
        if offline_coop_max > 0:
            coop_flags.append(f"Offline coop: {offline_coop_max}")
        if any(m.get("campaigncoop") for m in modes):
            coop_flags.append("Campaign coop")

        if has_online and has_offline:
            online_offline = "Online + Offline"
        elif has_online:
            online_offline = "Online"
        elif has_offline:
            online_offline = "Offline"
        else:
            online_offline = None

        return {
            "player_counts": player_counts,
            "coop": " · ".join(coop_flags) or None,
            "online_offline": online_offline,
        }

    def _map_basic(self, game: Dict[str, Any]) -> ProviderRecord:
        cover = self._build_image((game.get("cover") or {}).get("url"), "t_cover_big_2x")
        screenshots = game.get("screenshots") or []
        backdrop = self._build_image(screenshots[0].get("url"), "t_screenshot_big") if screenshots else cover

        raw_rating = game.get("aggregated_rating") or game.get("rating")
        first_release = game.get("first_release_date")
        developers = [
            (company.get("company") or {}).get("name")
            for company in game.get("involved_companies") or []
            if company.get("developer")
        ]
        website = next(
            (w.get("url") for w in game.get("websites") or [] if w.get("category") == OFFICIAL_WEBSITE_CATEGORY),
            None,
        )

        return {
            "api_id": str(game["id"]),
            "api_provider": self.name,
            "title": game.get("name"),
            "cover_url": cover,
            "backdrop_url": backdrop,
            "description": game.get("summary") or "",
            "genre": ", ".join(g.get("name", "") for g in game.get("genres") or []),
            "release_year": datetime.fromtimestamp(first_release, tz=timezone.utc).year if first_release else None,
            "platforms": ", ".join(p.get("name", "") for p in game.get("platforms") or []),
            "rating": round(raw_rating / 10, 1) if raw_rating else None,
            "developer": ", ".join(name for name in developers if name) or None,
            "tags": ", ".join(t.get("name") for t in game.get("themes") or [] if t.get("name")) or None,
            "website": website,
        }

    def _map_details(self, game: Dict[str, Any], time_to_beat: Optional[Dict[str, Any]],
                     multiplayer_modes: List[Dict[str, Any]], game_videos: List[Dict[str, Any]]) -> ProviderRecord:
        record = self._map_basic(game)

        cover = self._build_image((game.get("cover") or {}).get("url"), "t_cover_big_2x")
        screenshot_list = uniq_strings(
            self._build_image(s.get("url"), "t_screenshot_big") for s in game.get("screenshots") or []
        )
        artwork_list = uniq_strings(
            self._build_image(a.get("url"), "t_1080p") for a in game.get("artworks") or []
        )

        videos = [
            {
                "provider": self.name,
                "type": "trailer",
                "name": video.get("name") or "Trailer",
                "url": f"https://www.youtube.com/watch?v={video['video_id']}",
            }
            for video in game_videos
            if video.get("video_id")
        ]

        release_date = next(
            (r.get("human") for r in game.get("release_dates") or [] if r.get("human")),
            None,
        )

        record.update(self._summarize_multiplayer(multiplayer_modes))
        record.update({
            "release_date": release_date,
            "age_rating": self._format_age_rating(game.get("age_ratings")),
            "time_to_beat": self._format_time_to_beat(time_to_beat),
            "screenshots": uniq_strings(screenshot_list + artwork_list),
            "videos": videos,
            "images": {
                "poster": cover,
                "thumbnail": (artwork_list or [None])[0] or cover,
                "logo": None,
                "backdrop": (screenshot_list or artwork_list or [None])[0] or cover,
            },
        })
        return record

    async def search(self, query: str, config: ProviderConfig) -> List[ProviderRecord]:
        self._require_credentials(config)
        escaped = query.replace('"', '\\"')
        async with self._client() as client:
            token = await self._get_token(client, config)
            games = await self._post(
                client, config, token, "games",
                f'search "{escaped}"; fields {SEARCH_FIELDS}; limit 10;',
            )
        return [self._map_basic(game) for game in games]

    async def details(self, api_id: str, config: ProviderConfig) -> ProviderRecord:
        self._require_credentials(config)
        if not str(api_id).isdigit():
            raise ProviderError(f"Invalid IGDB id: {api_id}")

        async with self._client() as client:
            token = await self._get_token(client, config)
            games, time_to_beats, multiplayer_modes, game_videos = await asyncio.gather(
                self._post(client, config, token, "games",
                           f"where id = {api_id}; fields {DETAIL_FIELDS}; limit 1;"),
                self._post(client, config, token, "game_time_to_beats",
                           f"fields normally,hastily,completely; where game_id = {api_id}; limit 1;"),
                self._post(client, config, token, "multiplayer_modes",
                           f"fields {MULTIPLAYER_FIELDS}; where game = {api_id}; limit 20;"),
                self._post(client, config, token, "game_videos",
                           f"fields name,video_id; where game = {api_id}; limit 20;"),
                return_exceptions=True,
            )

        if isinstance(games, BaseException):
            raise ProviderError(f"IGDB request failed: {games}") from games
        if not games:
            raise ProviderError("Game not found on IGDB")

        # Secondary endpoints are optional
        def optional(result):
            if isinstance(result, BaseException):
                logger.debug("IGDB secondary query for %s failed: %s", api_id, result)
                return []
            return result or []

        time_to_beats = optional(time_to_beats)
        return self._map_details(
            games[0],
            time_to_beats[0] if time_to_beats else None,
            optional(multiplayer_modes),
            optional(game_videos),
        )

    async def test(self, config: ProviderConfig) -> ProviderTestResponse:
        if not config.client_id or not config.client_secret:
            return ProviderTestResponse(ok=False, detail="Client ID or Client Secret is missing")
        try:
            async with self._client() as client:
                await self._get_token(client, config)
        except (ProviderError, httpx.HTTPError) as e:
            return ProviderTestResponse(ok=False, detail=str(e))
        return ProviderTestResponse(ok=True, detail="Authentication successful")

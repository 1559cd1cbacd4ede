"""
Game metadata: provider lookup and field-by-field merge
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urldefrag, urlparse

import httpx

from cooplyst.core.utils import choose, is_set, normalize_text
from cooplyst.schemas.provider_schemas import ProviderConfig, ProviderTestResponse, SearchResponse, SearchResult
from cooplyst.services.providers import ProviderRecord, get_adapter, uniq_strings

logger = logging.getLogger(__name__)

SCALAR_FIELDS = (
    "title", "description", "genre", "release_year", "release_date", "platforms",
    "rating", "developer", "tags", "website", "age_rating",
    "time_to_beat", "player_counts", "coop", "online_offline",
)
IMAGE_TYPES = ("poster", "thumbnail", "logo", "backdrop")


def canonicalize_video_url(url: Optional[str]) -> str:
    """Rewrite YouTube links to watch?v=<id>; drop the fragment of anything else"""
    if not url:
        return ""
    url = str(url).strip()
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url

    host = parsed.hostname or ""
    if "youtube.com" in host or "youtu.be" in host:
        video_id = (parse_qs(parsed.query).get("v") or [None])[0]
        if not video_id and "youtu.be" in host:
            video_id = parsed.path.lstrip("/").split("/")[0]
        if not video_id and "/embed/" in parsed.path:
            video_id = parsed.path.split("/embed/", 1)[1].split("/")[0]
        if video_id:
            return f"https://www.youtube.com/watch?v={video_id}"

    return urldefrag(url).url


def classify_video(video: Dict[str, Any]) -> Optional[str]:
    """'gameplay_trailer', 'trailer' or None for anything that is not a trailer"""
    video_type = str(video.get("type") or "").lower()
    video_name = str(video.get("name") or "").lower()
    if video_type == "gameplay_trailer" or "gameplay trailer" in video_name:
        return "gameplay_trailer"
    if video_type == "trailer" or "trailer" in video_name:
        return "trailer"
    return None


def pick_best_search_match(results: List[ProviderRecord], title: str, release_year: Optional[int]) -> Optional[ProviderRecord]:
    """Highest scoring search result; ties keep the provider's order.

    +3 exact normalized title, +1 when one title contains the other,
    +2 same release year, +1 release years at most one apart.
    """
    if not results:
        return None

    target = normalize_text(title)

    def score(result: ProviderRecord) -> int:
        points = 0
        candidate = normalize_text(result.get("title"))
        if candidate == target:
            points += 3
        elif candidate in target or target in candidate:
            points += 1

        candidate_year = result.get("release_year")
        if release_year and candidate_year == release_year:
            points += 2
        elif release_year and candidate_year and abs(candidate_year - release_year) <= 1:
            points += 1
        return points

    return sorted(results, key=score, reverse=True)[0]


def merge_provider_data(records: List[ProviderRecord]) -> Dict[str, Any]:
    """Merge provider records given in priority order.

    Scalars and images take the first set value; screenshots are unioned;
    videos are restricted to trailers and de-duplicated by canonical URL
    plus normalized name.
    """
    merged: Dict[str, Any] = {field: None for field in SCALAR_FIELDS}
    merged["images"] = {image_type: None for image_type in IMAGE_TYPES}
    screenshots: List[Any] = []
    videos: List[Dict[str, Any]] = []

    for record in records:
        if not record:
            continue

        for field in SCALAR_FIELDS:
            if not is_set(merged[field]) and is_set(record.get(field)):
                merged[field] = record[field]

        if isinstance(record.get("screenshots"), list):
            screenshots.extend(record["screenshots"])
        if isinstance(record.get("videos"), list):
            videos.extend(record["videos"])

        images = record.get("images") or {}
        for image_type in IMAGE_TYPES:
            if not is_set(merged["images"][image_type]) and is_set(images.get(image_type)):
                merged["images"][image_type] = images[image_type]

    merged["screenshots"] = uniq_strings(screenshots)

    unique_videos = []
    seen = set()
    for video in videos:
        if not isinstance(video, dict) or not video.get("url"):
            continue
        video_type = classify_video(video)
        if video_type is None:
            continue
        canonical_url = canonicalize_video_url(video["url"])
        key = (canonical_url, normalize_text(video.get("name")))
        if key in seen:
            continue
        seen.add(key)
        unique_videos.append({**video, "type": video_type, "url": canonical_url})
    merged["videos"] = unique_videos

    images = merged["images"]
    if not is_set(images["backdrop"]):
        images["backdrop"] = images["poster"] or images["thumbnail"] or None
    if not is_set(images["thumbnail"]):
        images["thumbnail"] = images["poster"] or images["backdrop"] or None

    return merged


def build_update_from_merged(game: Any, merged: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Column values that fill only the game's empty fields from a merge result"""
    if not merged:
        return None

    images = merged.get("images") or {}
    cover = choose(game.cover_url, images.get("poster"))

    update = {
        "cover_url": cover,
        "thumbnail_url": choose(game.thumbnail_url, images.get("thumbnail") or cover),
        "logo_url": choose(game.logo_url, images.get("logo")),
        "backdrop_url": choose(game.backdrop_url, images.get("backdrop") or cover),
        # Lists are treated as a whole: any existing entry keeps the list
        "screenshots": list(game.screenshots) if is_set(game.screenshots) else list(merged.get("screenshots") or []),
        "videos": list(game.videos) if is_set(game.videos) else list(merged.get("videos") or []),
    }
    for field in SCALAR_FIELDS:
        if field == "title":
            continue
        update[field] = choose(getattr(game, field), merged.get(field))
    return update


class MetadataService:
    """Runs the enabled providers for a game and merges what they return"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        # Injected transport is handed to every adapter (tests use httpx.MockTransport)
        self.transport = transport

    async def _fetch_details(self, provider: ProviderConfig, title: str, release_year: Optional[int],
                             api_id: Optional[str], api_provider: Optional[str]) -> Optional[ProviderRecord]:
        adapter = get_adapter(provider.type, transport=self.transport)
        if adapter is None:
            logger.warning("Unknown metadata provider type: %s", provider.type)
            return None

        if api_provider == provider.type and api_id:
            return await adapter.details(api_id, provider)

        results = await adapter.search(title, provider)
        best = pick_best_search_match(results, title, release_year)
        if not best or not best.get("api_id"):
            logger.info("Provider %s has no match for '%s'", provider.type, title)
            return None
        return await adapter.details(best["api_id"], provider)

    async def fetch_merged_metadata(self, providers: List[ProviderConfig], title: str,
                                    release_year: Optional[int] = None, api_id: Optional[str] = None,
                                    api_provider: Optional[str] = None) -> Tuple[Optional[Dict[str, Any]], Dict[str, ProviderRecord]]:
        """Return (merged record or None, raw details keyed by provider type).

        Providers must already be filtered to the enabled ones and sorted
        by priority. A failing provider is logged and skipped.
        """
        by_provider: Dict[str, ProviderRecord] = {}
        ordered: List[ProviderRecord] = []

        for provider in providers:
            try:
                details = await self._fetch_details(provider, title, release_year, api_id, api_provider)
            except Exception as e:
                logger.warning("Provider %s metadata failed: %s", provider.type, e)
                continue

            if details:
                by_provider[provider.type] = details
                ordered.append(details)

        if not ordered:
            return None, by_provider
        return merge_provider_data(ordered), by_provider

    async def search_games(self, providers: List[ProviderConfig], query: str) -> SearchResponse:
        """Results of the first provider (by priority) that finds anything"""
        for provider in providers:
            adapter = get_adapter(provider.type, transport=self.transport)
            if adapter is None:
                continue
            try:
                results = await adapter.search(query, provider)
            except Exception as e:
                logger.warning("Provider %s search failed: %s", provider.type, e)
                continue
            if results:
                return SearchResponse(
                    results=[SearchResult(**result) for result in results],
                    provider=provider.type,
                )
        return SearchResponse(results=[], provider=None)

    async def test_provider(self, provider: ProviderConfig) -> ProviderTestResponse:
        adapter = get_adapter(provider.type, transport=self.transport)
        if adapter is None:
            return ProviderTestResponse(ok=False, detail=f"Unknown provider type: {provider.type}")
        return await adapter.test(provider)

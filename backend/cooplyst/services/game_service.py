"""
Game management service
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
import pydantic
from sqlalchemy import func
from sqlalchemy.orm import Session

from cooplyst.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from cooplyst.core.utils import is_set
from cooplyst.models.game import Game, METADATA_FIELDS
from cooplyst.models.player import Player
from cooplyst.models.rating import Rating
from cooplyst.models.run import Run
from cooplyst.models.user import User
from cooplyst.models.vote import Vote
from cooplyst.schemas.game_schemas import (
    GameCreate, GameDetail, GameMetadataUpdate, GameResponse, PlayerInfo,
    RatingInfo, RunDetail, VoterInfo,
)
from cooplyst.schemas.provider_schemas import ProviderConfig, ProviderTestResponse, SearchResponse
from cooplyst.services.admin_service import load_settings
from cooplyst.services.lifecycle_service import LifecycleService
from cooplyst.services.metadata_service import MetadataService, build_update_from_merged

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


def player_info(player: Player) -> PlayerInfo:
    return PlayerInfo(user_id=player.user_id, username=player.user.username, added_at=player.added_at)


class GameService:
    """Game proposals, views and metadata"""

    def __init__(self, db: Session, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.db = db
        self.lifecycle = LifecycleService(db)
        self.metadata_service = MetadataService(transport=transport)

    def _get_game(self, game_id: str) -> Game:
        game = self.db.query(Game).filter(Game.id == game_id).first()
        if not game:
            raise NotFoundError("Game not found")
        return game

    @staticmethod
    def _require_admin(actor: User) -> None:
        if not actor.is_admin:
            raise PermissionDeniedError()

    def _title_taken(self, title: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(Game.id).filter(func.lower(func.trim(Game.title)) == func.lower(func.trim(title)))
        if exclude_id:
            query = query.filter(Game.id != exclude_id)
        return query.first() is not None

    # ------------------------------------------------------------------- views

    async def enrich(self, game: Game, actor: User) -> GameResponse:
        """Game row plus vote counts, the actor's vote, players and median rating"""
        return GameResponse(**self._enriched_fields(game, actor))

    def _enriched_fields(self, game: Game, actor: User) -> Dict[str, Any]:
        visibility = load_settings(self.db).vote_visibility

        votes = self.db.query(Vote).filter(Vote.game_id == game.id).order_by(Vote.voted_at).all()
        own_vote = next((v.vote for v in votes if v.user_id == actor.id), None)

        data = {column: getattr(game, column) for column in METADATA_FIELDS}
        data.update(
            id=game.id,
            status=game.status,
            status_changed_at=game.status_changed_at,
            proposed_by=game.proposed_by,
            proposed_at=game.proposed_at,
            api_id=game.api_id,
            api_provider=game.api_provider,
            screenshots=game.screenshots or [],
            videos=game.videos or [],
            provider_payload=game.provider_payload or {},
            votes_yes=sum(1 for v in votes if v.vote == 1),
            votes_no=sum(1 for v in votes if v.vote == 0),
            user_vote=own_vote,
            players=[player_info(p) for p in self.lifecycle.get_players(game.id)],
            median_rating=self.lifecycle.median_rating(game.id),
        )
        if visibility == "public":
            data["voters"] = [
                VoterInfo(user_id=v.user_id, username=v.user.username, vote=v.vote, voted_at=v.voted_at)
                for v in votes
            ]
        return data

    async def list_games(self, actor: User, status: Optional[str] = None) -> List[GameResponse]:
        """All games, newest proposal first, optionally filtered by status"""
        query = self.db.query(Game)
        if status:
            query = query.filter(Game.status == status)
        games = query.order_by(Game.proposed_at.desc(), Game.title).all()
        return [await self.enrich(game, actor) for game in games]

    async def get_game_detail(self, game_id: str, actor: User) -> GameDetail:
        """Enriched game with its runs and their ratings"""
        game = self._get_game(game_id)
        data = self._enriched_fields(game, actor)

        runs = []
        for run in self.db.query(Run).filter(Run.game_id == game.id).order_by(Run.run_number).all():
            ratings = (
                self.db.query(Rating)
                .filter(Rating.run_id == run.id)
                .order_by(Rating.rated_at)
                .all()
            )
            average = round(sum(r.score for r in ratings) / len(ratings), 1) if ratings else None
            runs.append(RunDetail(
                id=run.id,
                game_id=run.game_id,
                run_number=run.run_number,
                name=run.name,
                started_at=run.started_at,
                completed_at=run.completed_at,
                ratings=[
                    RatingInfo(user_id=r.user_id, username=r.user.username, score=r.score,
                               comment=r.comment, rated_at=r.rated_at)
                    for r in ratings
                ],
                average_rating=average,
            ))

        return GameDetail(
            **data,
            runs=runs,
            proposed_by_username=game.proposer.username if game.proposer else "Unknown",
        )

    # ---------------------------------------------------------------- changes

    async def propose_game(self, game_data: GameCreate, actor: User) -> Game:
        """Create a proposed game, then try to fill its metadata from providers"""
        title = (game_data.title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if self._title_taken(title):
            raise ConflictError("Game already exists")

        api_id = str(game_data.api_id) if game_data.api_id else None
        api_provider = str(game_data.api_provider) if game_data.api_provider else None
        if api_id and api_provider:
            duplicate = self.db.query(Game.id).filter(
                Game.api_id == api_id, Game.api_provider == api_provider
            ).first()
            if duplicate:
                raise ConflictError("Game already exists")

        values = game_data.model_dump(exclude={"title", "api_id", "api_provider"})
        values = {key: (value if is_set(value) else None) for key, value in values.items()}
        game = Game(
            **values,
            title=title,
            api_id=api_id,
            api_provider=api_provider,
            status="proposed",
            proposed_by=actor.id,
        )
        game.screenshots = values.get("screenshots") or []
        game.videos = values.get("videos") or []
        self.db.add(game)
        self.db.commit()
        self.db.refresh(game)
        logger.info("Game '%s' proposed by %s", game.title, actor.username)

        try:
            await self.refresh_metadata(game)
        except Exception as e:
            self.db.rollback()
            logger.warning("Initial metadata refresh failed for '%s': %s", game.title, e)

        self.db.refresh(game)
        return game

    async def refresh_metadata(self, game: Game) -> bool:
        """Fill the game's empty fields from the enabled providers.

        Returns False when no provider contributed anything.
        """
        providers = load_settings(self.db).enabled_providers()
        if not providers:
            return False

        merged, by_provider = await self.metadata_service.fetch_merged_metadata(
            providers,
            title=game.title,
            release_year=game.release_year,
            api_id=game.api_id,
            api_provider=game.api_provider,
        )
        update = build_update_from_merged(game, merged)
        if not update:
            logger.info("No provider returned metadata for '%s'", game.title)
            return False

        for column, value in update.items():
            setattr(game, column, value)
        game.provider_payload = by_provider
        self.db.commit()
        logger.info("Metadata for '%s' refreshed from %s", game.title, ", ".join(by_provider))
        return True

    async def refresh_game_metadata(self, game_id: str, actor: User) -> Game:
        self._require_admin(actor)
        game = self._get_game(game_id)
        if not await self.refresh_metadata(game):
            raise ValidationError("No metadata available from providers")
        self.db.refresh(game)
        return game

    async def update_metadata(self, game_id: str, actor: User, patch: GameMetadataUpdate) -> Game:
        """Admin edit of metadata fields and the stored provider payload"""
        self._require_admin(actor)
        game = self._get_game(game_id)
        changes: Dict[str, Any] = patch.model_dump(exclude_unset=True)

        if "title" in changes:
            title = (changes["title"] or "").strip()
            if not title:
                raise ValidationError("Title is required")
            if self._title_taken(title, exclude_id=game.id):
                raise ConflictError("Another game with this title already exists")
            changes["title"] = title

        for key in ("screenshots", "videos"):
            if key in changes:
                changes[key] = changes[key] or []

        for column, value in changes.items():
            if column in METADATA_FIELDS or column == "provider_payload":
                setattr(game, column, value)
        self.db.commit()
        self.db.refresh(game)
        return game

    async def delete_game(self, game_id: str, actor: User) -> None:
        """Remove a game with its votes, players, runs and ratings"""
        self._require_admin(actor)
        game = self._get_game(game_id)
        self.db.delete(game)
        self.db.commit()
        logger.info("Game '%s' deleted by %s", game.title, actor.username)

    # ---------------------------------------------------------------- providers

    async def search_providers(self, query: Optional[str]) -> SearchResponse:
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            raise ValidationError(f"Query must be at least {MIN_SEARCH_LENGTH} characters")
        providers = load_settings(self.db).enabled_providers()
        if not providers:
            return SearchResponse()
        return await self.metadata_service.search_games(providers, query)

    async def test_provider(self, actor: User, config: Dict[str, Any]) -> ProviderTestResponse:
        self._require_admin(actor)
        if not config.get("type"):
            raise ValidationError("Provider type required")
        try:
            provider = ProviderConfig(**config)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid provider configuration: {e.errors()[0]['msg']}")
        return await self.metadata_service.test_provider(provider)

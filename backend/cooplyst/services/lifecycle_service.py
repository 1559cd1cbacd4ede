"""
Game lifecycle: votes, status transitions, runs and ratings
"""

import logging
import math
from typing import Any, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from cooplyst.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from cooplyst.core.utils import utcnow
from cooplyst.models.game import Game, GAME_STATUSES, VOTING_STATUSES
from cooplyst.models.player import Player
from cooplyst.models.rating import Rating
from cooplyst.models.run import Run
from cooplyst.models.user import User
from cooplyst.models.vote import Vote
from cooplyst.services.admin_service import load_settings

logger = logging.getLogger(__name__)

MAX_RUN_NAME_LENGTH = 80


def median(values: List[float]) -> Optional[float]:
    """Median of a list of numbers, None when empty"""
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


class LifecycleService:
    """Owns Game.status and everything that moves it.

    Every operation checks all its preconditions before touching the
    session and commits exactly once, so a rejected call leaves no trace.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------ lookups

    def _get_game(self, game_id: str) -> Game:
        game = self.db.query(Game).filter(Game.id == game_id).first()
        if not game:
            raise NotFoundError("Game not found")
        return game

    def _get_run(self, game_id: str, run_id: str) -> Run:
        run = self.db.query(Run).filter(Run.id == run_id, Run.game_id == game_id).first()
        if not run:
            raise NotFoundError("Run not found")
        return run

    @staticmethod
    def _require_admin(actor: User) -> None:
        if not actor.is_admin:
            raise PermissionDeniedError()

    def yes_vote_count(self, game_id: str) -> int:
        return self.db.query(Vote).filter(Vote.game_id == game_id, Vote.vote == 1).count()

    def median_rating(self, game_id: str) -> Optional[float]:
        """Median over every rating of every run of the game"""
        scores = [
            score for (score,) in self.db.query(Rating.score)
            .join(Run, Run.id == Rating.run_id)
            .filter(Run.game_id == game_id)
            .all()
        ]
        return median(scores)

    # ------------------------------------------------------------ state helpers

    def _set_status(self, game: Game, status: str) -> None:
        if game.status != status:
            logger.info("Game %s status %s -> %s", game.id, game.status, status)
        game.status = status
        game.status_changed_at = utcnow()

    def _populate_players(self, game: Game) -> int:
        """Add every yes-voter as a player; existing players are left alone"""
        self.db.flush()
        yes_voters = [
            user_id for (user_id,) in self.db.query(Vote.user_id)
            .filter(Vote.game_id == game.id, Vote.vote == 1)
            .all()
        ]
        existing = {
            user_id for (user_id,) in self.db.query(Player.user_id)
            .filter(Player.game_id == game.id)
            .all()
        }
        added = 0
        for user_id in yes_voters:
            if user_id in existing:
                continue
            self.db.add(Player(game_id=game.id, user_id=user_id))
            existing.add(user_id)
            added += 1
        if added:
            logger.info("Added %d yes-voter(s) as players of game %s", added, game.id)
        return added

    def _next_run_number(self, game: Game) -> int:
        highest = self.db.query(func.max(Run.run_number)).filter(Run.game_id == game.id).scalar() or 0
        return max(highest, game.last_run_number or 0) + 1

    def _create_run(self, game: Game) -> Run:
        number = self._next_run_number(game)
        run = Run(game_id=game.id, run_number=number, name=f"Run #{number}")
        game.last_run_number = number
        self.db.add(run)
        return run

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # --------------------------------------------------------------- operations

    async def cast_vote(self, game_id: str, actor: User, vote: Any) -> Game:
        """Record the actor's vote and advance the game when needed.

        Any first vote moves a proposed game to voting. Reaching the
        yes-vote threshold promotes the game to backlog and turns the
        yes-voters into players.
        """
        game = self._get_game(game_id)
        if game.status not in VOTING_STATUSES:
            raise ValidationError("Voting is closed for this game")
        if isinstance(vote, bool) or not isinstance(vote, int) or vote not in (0, 1):
            raise ValidationError("Vote must be 0 (no) or 1 (yes)")

        threshold = load_settings(self.db).vote_threshold

        existing = self.db.query(Vote).filter(Vote.game_id == game.id, Vote.user_id == actor.id).first()
        if existing:
            existing.vote = vote
            existing.voted_at = utcnow()
        else:
            self.db.add(Vote(game_id=game.id, user_id=actor.id, vote=vote, voted_at=utcnow()))

        if game.status == "proposed":
            self._set_status(game, "voting")

        self.db.flush()
        yes_votes = self.yes_vote_count(game.id)
        if yes_votes >= threshold and game.status in VOTING_STATUSES:
            logger.info("Game %s reached %d yes vote(s) (threshold %d)", game.id, yes_votes, threshold)
            self._set_status(game, "backlog")
            self._populate_players(game)

        self._commit()
        self.db.refresh(game)
        return game

    async def set_status(self, game_id: str, actor: User, status: str) -> Game:
        """Admin override to any status, with the side effects of the target state"""
        self._require_admin(actor)
        game = self._get_game(game_id)
        if status not in GAME_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(GAME_STATUSES)}")

        previous = game.status
        self._set_status(game, status)

        if status in ("backlog", "playing") and previous in VOTING_STATUSES:
            self._populate_players(game)

        if status == "playing":
            has_runs = self.db.query(Run).filter(Run.game_id == game.id).count() > 0
            if not has_runs:
                self._create_run(game)

        self._commit()
        self.db.refresh(game)
        return game

    async def reset_votes(self, game_id: str, actor: User) -> Game:
        """Drop every vote; a game still in voting goes back to proposed"""
        self._require_admin(actor)
        game = self._get_game(game_id)

        deleted = self.db.query(Vote).filter(Vote.game_id == game.id).delete(synchronize_session="fetch")
        logger.info("Reset %d vote(s) on game %s", deleted, game.id)

        if game.status == "voting":
            self._set_status(game, "proposed")

        self._commit()
        self.db.refresh(game)
        return game

    async def add_player(self, game_id: str, actor: User, user_id: str) -> List[Player]:
        self._require_admin(actor)
        game = self._get_game(game_id)
        if not user_id:
            raise ValidationError("user_id is required")
        if not self.db.query(User).filter(User.id == user_id).first():
            raise NotFoundError("User not found")

        exists = self.db.query(Player).filter(Player.game_id == game.id, Player.user_id == user_id).first()
        if not exists:
            self.db.add(Player(game_id=game.id, user_id=user_id))
            self._commit()
        return self.get_players(game.id)

    async def remove_player(self, game_id: str, actor: User, user_id: str) -> List[Player]:
        self._require_admin(actor)
        game = self._get_game(game_id)
        self.db.query(Player).filter(Player.game_id == game.id, Player.user_id == user_id).delete()
        self._commit()
        return self.get_players(game.id)

    def get_players(self, game_id: str) -> List[Player]:
        return (
            self.db.query(Player)
            .filter(Player.game_id == game_id)
            .order_by(Player.added_at, Player.user_id)
            .all()
        )

    async def start_run(self, game_id: str, actor: User) -> Run:
        """Create the next run and make sure the game is playing"""
        self._require_admin(actor)
        game = self._get_game(game_id)

        run = self._create_run(game)
        if game.status != "playing":
            self._set_status(game, "playing")

        self._commit()
        self.db.refresh(run)
        return run

    async def rename_run(self, game_id: str, run_id: str, actor: User, name: Optional[str]) -> Run:
        self._require_admin(actor)
        run = self._get_run(game_id, run_id)
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Run name is required")

        run.name = name.strip()[:MAX_RUN_NAME_LENGTH]
        self._commit()
        self.db.refresh(run)
        return run

    async def complete_run(self, game_id: str, run_id: str, actor: User) -> Run:
        """Mark a run finished; the game completes once no run is left open"""
        self._require_admin(actor)
        run = self._get_run(game_id, run_id)

        if run.completed_at is None:
            run.completed_at = utcnow()
        self.db.flush()

        open_runs = self.db.query(Run).filter(Run.game_id == game_id, Run.completed_at.is_(None)).count()
        if open_runs == 0:
            self._set_status(run.game, "completed")

        self._commit()
        self.db.refresh(run)
        return run

    async def delete_run(self, game_id: str, run_id: str, actor: User) -> None:
        """Remove a run with its ratings; a playing game without runs returns to backlog"""
        self._require_admin(actor)
        run = self._get_run(game_id, run_id)
        game = run.game

        self.db.delete(run)
        self.db.flush()

        remaining = self.db.query(Run).filter(Run.game_id == game_id).count()
        if remaining == 0 and game.status == "playing":
            self._set_status(game, "backlog")

        self._commit()

    async def submit_rating(self, game_id: str, run_id: str, actor: User, score: Any, comment: Optional[str] = None) -> Rating:
        """Create or replace the actor's rating of a run (players only)"""
        run = self._get_run(game_id, run_id)

        is_player = self.db.query(Player).filter(Player.game_id == game_id, Player.user_id == actor.id).first()
        if not is_player:
            raise PermissionDeniedError("Only players of this game can rate it")

        numeric_score = self._parse_score(score)
        comment = comment.strip() if isinstance(comment, str) and comment.strip() else None

        rating = self.db.query(Rating).filter(Rating.run_id == run.id, Rating.user_id == actor.id).first()
        if rating:
            rating.score = numeric_score
            rating.comment = comment
            rating.rated_at = utcnow()
        else:
            rating = Rating(run_id=run.id, user_id=actor.id, score=numeric_score, comment=comment, rated_at=utcnow())
            self.db.add(rating)

        self._commit()
        self.db.refresh(rating)
        return rating

    @staticmethod
    def _parse_score(score: Any) -> float:
        error = ValidationError("Score must be a number between 1 and 10")
        if isinstance(score, bool) or score is None:
            raise error
        try:
            value = float(score)
        except (TypeError, ValueError):
            raise error
        if math.isnan(value) or value < 1 or value > 10:
            raise error
        return value

    async def delete_rating(self, game_id: str, run_id: str, actor: User, user_id: str) -> None:
        self._require_admin(actor)
        run = self._get_run(game_id, run_id)
        self.db.query(Rating).filter(Rating.run_id == run.id, Rating.user_id == user_id).delete()
        self._commit()

"""
Tests for voting, auto-promotion and player population
"""
import asyncio

import pytest

from cooplyst.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from cooplyst.models.player import Player
from cooplyst.models.vote import Vote
from cooplyst.services.lifecycle_service import LifecycleService


def player_ids(db, game):
    return {p.user_id for p in db.query(Player).filter(Player.game_id == game.id).all()}


class TestCastVote:
    """Tests for the vote state transitions"""

    @pytest.mark.parametrize("value", [0, 1])
    def test_first_vote_of_any_value_starts_voting(self, db, users, make_game, value):
        game = make_game()
        service = LifecycleService(db)

        game = asyncio.run(service.cast_vote(game.id, users[0], value))

        assert game.status == "voting"
        assert game.status_changed_at is not None

    def test_revote_replaces_previous_vote(self, db, users, make_game):
        game = make_game()
        service = LifecycleService(db)

        asyncio.run(service.cast_vote(game.id, users[0], 1))
        asyncio.run(service.cast_vote(game.id, users[0], 0))

        votes = db.query(Vote).filter(Vote.game_id == game.id).all()
        assert len(votes) == 1
        assert votes[0].vote == 0

    def test_threshold_promotes_and_populates_players(self, db, users, make_game):
        """Two yes votes stay in voting, the third promotes to backlog"""
        game = make_game()
        service = LifecycleService(db)

        asyncio.run(service.cast_vote(game.id, users[0], 1))
        game = asyncio.run(service.cast_vote(game.id, users[1], 1))
        assert game.status == "voting"
        assert player_ids(db, game) == set()

        game = asyncio.run(service.cast_vote(game.id, users[2], 1))
        assert game.status == "backlog"
        assert player_ids(db, game) == {u.id for u in users}

    def test_no_voters_are_not_players(self, db, admin, users, make_game):
        game = make_game()
        service = LifecycleService(db)

        asyncio.run(service.cast_vote(game.id, admin, 0))
        for user in users:
            asyncio.run(service.cast_vote(game.id, user, 1))

        assert player_ids(db, game) == {u.id for u in users}

    def test_count_above_threshold_still_promotes(self, db, users, make_game, set_setting):
        """A threshold already exceeded promotes on the next vote, even a no vote"""
        game = make_game()
        service = LifecycleService(db)
        asyncio.run(service.cast_vote(game.id, users[0], 1))
        asyncio.run(service.cast_vote(game.id, users[1], 1))
        set_setting("vote_threshold", "1")

        game = asyncio.run(service.cast_vote(game.id, users[2], 0))

        assert game.status == "backlog"
        assert player_ids(db, game) == {users[0].id, users[1].id}

    def test_lower_threshold_setting_is_used(self, db, users, make_game, set_setting):
        set_setting("vote_threshold", "1")
        game = make_game()

        game = asyncio.run(LifecycleService(db).cast_vote(game.id, users[0], 1))

        assert game.status == "backlog"
        assert player_ids(db, game) == {users[0].id}

    def test_invalid_stored_threshold_falls_back_to_default(self, db, users, make_game, set_setting):
        set_setting("vote_threshold", "lots")
        game = make_game()
        service = LifecycleService(db)

        asyncio.run(service.cast_vote(game.id, users[0], 1))
        game = asyncio.run(service.cast_vote(game.id, users[1], 1))

        assert game.status == "voting"

    @pytest.mark.parametrize("status", ["backlog", "playing", "completed"])
    def test_voting_closed_after_voting_states(self, db, users, make_game, status):
        game = make_game(status=status)

        with pytest.raises(ValidationError, match="Voting is closed"):
            asyncio.run(LifecycleService(db).cast_vote(game.id, users[0], 1))

        assert db.query(Vote).count() == 0

    @pytest.mark.parametrize("value", [2, -1, True, "1", 1.0])
    def test_invalid_vote_value_is_rejected(self, db, users, make_game, value):
        game = make_game()

        with pytest.raises(ValidationError):
            asyncio.run(LifecycleService(db).cast_vote(game.id, users[0], value))

        db.refresh(game)
        assert game.status == "proposed"
        assert db.query(Vote).count() == 0

    def test_unknown_game(self, db, users):
        with pytest.raises(NotFoundError):
            asyncio.run(LifecycleService(db).cast_vote("missing", users[0], 1))


class TestPlayerPopulation:
    """Tests for idempotent player population"""

    def test_forced_backlog_keeps_existing_players(self, db, admin, users, make_game):
        game = make_game()
        service = LifecycleService(db)
        asyncio.run(service.cast_vote(game.id, users[0], 1))
        asyncio.run(service.add_player(game.id, admin, users[0].id))

        asyncio.run(service.set_status(game.id, admin, "backlog"))

        players = db.query(Player).filter(Player.game_id == game.id).all()
        assert [p.user_id for p in players] == [users[0].id]

    def test_repeated_population_adds_nothing(self, db, admin, users, make_game):
        game = make_game()
        service = LifecycleService(db)
        for user in users:
            asyncio.run(service.cast_vote(game.id, user, 1))

        asyncio.run(service.set_status(game.id, admin, "voting"))
        asyncio.run(service.set_status(game.id, admin, "backlog"))

        assert db.query(Player).filter(Player.game_id == game.id).count() == 3


class TestResetVotes:
    """Tests for the admin vote reset"""

    def test_reset_returns_voting_game_to_proposed(self, db, admin, users, make_game):
        game = make_game()
        service = LifecycleService(db)
        asyncio.run(service.cast_vote(game.id, users[0], 1))

        game = asyncio.run(service.reset_votes(game.id, admin))

        assert game.status == "proposed"
        assert db.query(Vote).filter(Vote.game_id == game.id).count() == 0

    def test_reset_leaves_players_and_later_status(self, db, admin, users, make_game):
        game = make_game()
        service = LifecycleService(db)
        for user in users:
            asyncio.run(service.cast_vote(game.id, user, 1))

        game = asyncio.run(service.reset_votes(game.id, admin))

        assert game.status == "backlog"
        assert player_ids(db, game) == {u.id for u in users}

    def test_reset_requires_admin(self, db, users, make_game):
        game = make_game()
        with pytest.raises(PermissionDeniedError):
            asyncio.run(LifecycleService(db).reset_votes(game.id, users[0]))

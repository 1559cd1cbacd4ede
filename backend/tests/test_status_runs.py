"""
Tests for forced transitions, runs and ratings
"""
import asyncio

import pytest

from cooplyst.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from cooplyst.models.player import Player
from cooplyst.models.rating import Rating
from cooplyst.models.run import Run
from cooplyst.services.lifecycle_service import LifecycleService, median


def runs_of(db, game):
    return db.query(Run).filter(Run.game_id == game.id).order_by(Run.run_number).all()


class TestSetStatus:
    """Tests for admin forced transitions"""

    def test_any_status_can_be_forced(self, db, admin, make_game):
        game = make_game(status="completed")

        game = asyncio.run(LifecycleService(db).set_status(game.id, admin, "proposed"))

        assert game.status == "proposed"

    def test_invalid_status_is_rejected(self, db, admin, make_game):
        game = make_game()

        with pytest.raises(ValidationError, match="Invalid status"):
            asyncio.run(LifecycleService(db).set_status(game.id, admin, "abandoned"))

        db.refresh(game)
        assert game.status == "proposed"

    def test_requires_admin(self, db, users, make_game):
        game = make_game()

        with pytest.raises(PermissionDeniedError):
            asyncio.run(LifecycleService(db).set_status(game.id, users[0], "backlog"))

    def test_playing_without_runs_creates_first_run(self, db, admin, users, make_game):
        game = make_game(status="voting")
        service = LifecycleService(db)
        asyncio.run(service.cast_vote(game.id, users[0], 1))

        game = asyncio.run(service.set_status(game.id, admin, "playing"))

        runs = runs_of(db, game)
        assert game.status == "playing"
        assert [(r.run_number, r.name) for r in runs] == [(1, "Run #1")]
        assert {p.user_id for p in db.query(Player).all()} == {users[0].id}

    def test_playing_with_runs_creates_nothing(self, db, admin, make_game):
        game = make_game(status="backlog")
        service = LifecycleService(db)
        asyncio.run(service.start_run(game.id, admin))
        asyncio.run(service.set_status(game.id, admin, "backlog"))

        asyncio.run(service.set_status(game.id, admin, "playing"))

        assert len(runs_of(db, game)) == 1

    def test_backlog_from_later_state_does_not_populate(self, db, admin, users, make_game):
        game = make_game(status="completed")

        asyncio.run(LifecycleService(db).set_status(game.id, admin, "backlog"))

        assert db.query(Player).count() == 0


class TestRuns:
    """Tests for starting, completing and deleting runs"""

    def test_start_run_moves_game_to_playing(self, db, admin, make_game):
        game = make_game(status="backlog")

        run = asyncio.run(LifecycleService(db).start_run(game.id, admin))

        db.refresh(game)
        assert game.status == "playing"
        assert run.run_number == 1
        assert run.name == "Run #1"
        assert len(runs_of(db, game)) == 1

    def test_run_numbers_increase(self, db, admin, make_game):
        game = make_game(status="backlog")
        service = LifecycleService(db)

        first = asyncio.run(service.start_run(game.id, admin))
        second = asyncio.run(service.start_run(game.id, admin))

        assert (first.run_number, second.run_number) == (1, 2)
        assert second.name == "Run #2"

    def test_run_numbers_are_not_reused_after_delete(self, db, admin, make_game):
        game = make_game(status="backlog")
        service = LifecycleService(db)
        asyncio.run(service.start_run(game.id, admin))
        second = asyncio.run(service.start_run(game.id, admin))

        asyncio.run(service.delete_run(game.id, second.id, admin))
        third = asyncio.run(service.start_run(game.id, admin))

        assert third.run_number == 3

    def test_completing_last_open_run_completes_game(self, db, admin, make_game):
        game = make_game(status="backlog")
        service = LifecycleService(db)
        first = asyncio.run(service.start_run(game.id, admin))
        second = asyncio.run(service.start_run(game.id, admin))

        asyncio.run(service.complete_run(game.id, first.id, admin))
        db.refresh(game)
        assert game.status == "playing"

        run = asyncio.run(service.complete_run(game.id, second.id, admin))
        db.refresh(game)
        assert run.completed_at is not None
        assert game.status == "completed"

    def test_completing_twice_keeps_timestamp(self, db, admin, make_game):
        game = make_game(status="backlog")
        service = LifecycleService(db)
        run = asyncio.run(service.start_run(game.id, admin))

        completed_at = asyncio.run(service.complete_run(game.id, run.id, admin)).completed_at
        again = asyncio.run(service.complete_run(game.id, run.id, admin))

        assert again.completed_at == completed_at

    def test_deleting_last_run_returns_to_backlog(self, db, admin, make_game):
        game = make_game(status="backlog")
        service = LifecycleService(db)
        run = asyncio.run(service.start_run(game.id, admin))

        asyncio.run(service.delete_run(game.id, run.id, admin))

        db.refresh(game)
        assert game.status == "backlog"
        assert runs_of(db, game) == []

    def test_deleting_run_of_completed_game_keeps_status(self, db, admin, make_game):
        game = make_game(status="backlog")
        service = LifecycleService(db)
        run = asyncio.run(service.start_run(game.id, admin))
        asyncio.run(service.complete_run(game.id, run.id, admin))

        asyncio.run(service.delete_run(game.id, run.id, admin))

        db.refresh(game)
        assert game.status == "completed"

    def test_run_of_another_game_is_not_found(self, db, admin, make_game):
        game = make_game(status="backlog")
        other = make_game(title="Portal 2", status="backlog")
        service = LifecycleService(db)
        run = asyncio.run(service.start_run(other.id, admin))

        with pytest.raises(NotFoundError):
            asyncio.run(service.complete_run(game.id, run.id, admin))

    def test_rename_run_trims_and_truncates(self, db, admin, make_game):
        game = make_game(status="backlog")
        service = LifecycleService(db)
        run = asyncio.run(service.start_run(game.id, admin))

        renamed = asyncio.run(service.rename_run(game.id, run.id, admin, "  " + "x" * 100 + "  "))

        assert renamed.name == "x" * 80

    def test_rename_run_rejects_blank_name(self, db, admin, make_game):
        game = make_game(status="backlog")
        service = LifecycleService(db)
        run = asyncio.run(service.start_run(game.id, admin))

        with pytest.raises(ValidationError):
            asyncio.run(service.rename_run(game.id, run.id, admin, "   "))


class TestRatings:
    """Tests for player ratings"""

    @pytest.fixture
    def playing_game(self, db, admin, users, make_game, set_setting):
        set_setting("vote_threshold", "2")
        game = make_game()
        service = LifecycleService(db)
        asyncio.run(service.cast_vote(game.id, users[0], 1))
        asyncio.run(service.cast_vote(game.id, users[1], 1))
        run = asyncio.run(service.start_run(game.id, admin))
        return game, run

    def test_player_can_rate_and_rerate(self, db, users, playing_game):
        game, run = playing_game
        service = LifecycleService(db)

        asyncio.run(service.submit_rating(game.id, run.id, users[0], 7, "fun"))
        rating = asyncio.run(service.submit_rating(game.id, run.id, users[0], "8.5"))

        assert db.query(Rating).count() == 1
        assert rating.score == 8.5
        assert rating.comment is None

    @pytest.mark.parametrize("score", [0, 10.5, "abc", None, float("nan")])
    def test_out_of_range_score_is_rejected(self, db, users, playing_game, score):
        game, run = playing_game

        with pytest.raises(ValidationError, match="between 1 and 10"):
            asyncio.run(LifecycleService(db).submit_rating(game.id, run.id, users[0], score))

        assert db.query(Rating).count() == 0

    @pytest.mark.parametrize("score", [1, 10])
    def test_bounds_are_inclusive(self, db, users, playing_game, score):
        game, run = playing_game

        rating = asyncio.run(LifecycleService(db).submit_rating(game.id, run.id, users[0], score))

        assert rating.score == score

    def test_non_player_cannot_rate(self, db, users, playing_game):
        game, run = playing_game

        with pytest.raises(PermissionDeniedError, match="Only players"):
            asyncio.run(LifecycleService(db).submit_rating(game.id, run.id, users[2], 5))

    def test_unknown_run(self, db, users, playing_game):
        game, _ = playing_game

        with pytest.raises(NotFoundError):
            asyncio.run(LifecycleService(db).submit_rating(game.id, "missing", users[0], 5))

    def test_median_over_all_runs(self, db, admin, users, playing_game):
        game, run = playing_game
        service = LifecycleService(db)
        second = asyncio.run(service.start_run(game.id, admin))

        asyncio.run(service.submit_rating(game.id, run.id, users[0], 4))
        asyncio.run(service.submit_rating(game.id, run.id, users[1], 6))
        asyncio.run(service.submit_rating(game.id, second.id, users[0], 9))

        assert service.median_rating(game.id) == 6

    def test_run_delete_removes_its_ratings(self, db, admin, users, playing_game):
        game, run = playing_game
        service = LifecycleService(db)
        asyncio.run(service.submit_rating(game.id, run.id, users[0], 4))

        asyncio.run(service.delete_run(game.id, run.id, admin))

        assert db.query(Rating).count() == 0

    def test_admin_deletes_single_rating(self, db, admin, users, playing_game):
        game, run = playing_game
        service = LifecycleService(db)
        asyncio.run(service.submit_rating(game.id, run.id, users[0], 4))
        asyncio.run(service.submit_rating(game.id, run.id, users[1], 5))

        asyncio.run(service.delete_rating(game.id, run.id, admin, users[0].id))

        assert [r.user_id for r in db.query(Rating).all()] == [users[1].id]


class TestMedian:

    def test_empty(self):
        assert median([]) is None

    def test_odd_and_even(self):
        assert median([9, 1, 5]) == 5
        assert median([8, 2, 4, 6]) == 5

"""
Voting, status, player, run and rating routes
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cooplyst.api.deps import get_current_user
from cooplyst.core.database import get_db
from cooplyst.core.exceptions import CoopLystError
from cooplyst.models.user import User
from cooplyst.schemas.game_schemas import (
    GameResponse, OkResponse, PlayerAdd, PlayersResponse, RatingCreate, RatingInfo,
    RunRename, RunResponse, StatusUpdate, VoteCreate,
)
from cooplyst.services.game_service import GameService, player_info

router = APIRouter()


@router.post("/{game_id}/vote", response_model=GameResponse)
async def cast_vote(
    game_id: str,
    vote_data: VoteCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Vote yes (1) or no (0) on a proposed or voting game"""
    game_service = GameService(db)
    try:
        game = await game_service.lifecycle.cast_vote(game_id, user, vote_data.vote)
        return await game_service.enrich(game, user)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{game_id}/status", response_model=GameResponse)
async def set_status(
    game_id: str,
    status_data: StatusUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Force a game into any status"""
    game_service = GameService(db)
    try:
        game = await game_service.lifecycle.set_status(game_id, user, status_data.status)
        return await game_service.enrich(game, user)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{game_id}/votes", response_model=GameResponse)
async def reset_votes(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    game_service = GameService(db)
    try:
        game = await game_service.lifecycle.reset_votes(game_id, user)
        return await game_service.enrich(game, user)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{game_id}/players", response_model=PlayersResponse)
async def add_player(
    game_id: str,
    player_data: PlayerAdd,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    game_service = GameService(db)
    try:
        players = await game_service.lifecycle.add_player(game_id, user, player_data.user_id)
        return PlayersResponse(players=[player_info(p) for p in players])
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{game_id}/players/{user_id}", response_model=PlayersResponse)
async def remove_player(
    game_id: str,
    user_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    game_service = GameService(db)
    try:
        players = await game_service.lifecycle.remove_player(game_id, user, user_id)
        return PlayersResponse(players=[player_info(p) for p in players])
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{game_id}/runs", response_model=RunResponse, status_code=201)
async def start_run(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Start the next run of a game"""
    game_service = GameService(db)
    try:
        run = await game_service.lifecycle.start_run(game_id, user)
        return RunResponse.model_validate(run)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{game_id}/runs/{run_id}", response_model=RunResponse)
async def rename_run(
    game_id: str,
    run_id: str,
    rename: RunRename,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    game_service = GameService(db)
    try:
        run = await game_service.lifecycle.rename_run(game_id, run_id, user, rename.name)
        return RunResponse.model_validate(run)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{game_id}/runs/{run_id}/complete", response_model=RunResponse)
async def complete_run(
    game_id: str,
    run_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark a run as finished"""
    game_service = GameService(db)
    try:
        run = await game_service.lifecycle.complete_run(game_id, run_id, user)
        return RunResponse.model_validate(run)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{game_id}/runs/{run_id}", response_model=OkResponse)
async def delete_run(
    game_id: str,
    run_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    game_service = GameService(db)
    try:
        await game_service.lifecycle.delete_run(game_id, run_id, user)
        return OkResponse()
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{game_id}/runs/{run_id}/rate", response_model=RatingInfo)
async def rate_run(
    game_id: str,
    run_id: str,
    rating_data: RatingCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rate a run; only players of the game may rate"""
    game_service = GameService(db)
    try:
        rating = await game_service.lifecycle.submit_rating(
            game_id, run_id, user, rating_data.score, rating_data.comment
        )
        return RatingInfo(
            user_id=rating.user_id,
            username=user.username,
            score=rating.score,
            comment=rating.comment,
            rated_at=rating.rated_at,
        )
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{game_id}/runs/{run_id}/ratings/{user_id}", response_model=OkResponse)
async def delete_rating(
    game_id: str,
    run_id: str,
    user_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    game_service = GameService(db)
    try:
        await game_service.lifecycle.delete_rating(game_id, run_id, user, user_id)
        return OkResponse()
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

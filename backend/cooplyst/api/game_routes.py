"""
Game proposal, listing and metadata routes
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cooplyst.api.deps import get_current_user
from cooplyst.core.database import get_db
from cooplyst.core.exceptions import CoopLystError
from cooplyst.models.user import User
from cooplyst.schemas.game_schemas import GameCreate, GameDetail, GameMetadataUpdate, GameResponse, OkResponse
from cooplyst.schemas.provider_schemas import ProviderTestResponse, SearchResponse
from cooplyst.services.game_service import GameService

router = APIRouter()


@router.get("", response_model=List[GameResponse])
async def list_games(
    status: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List games, newest proposal first"""
    game_service = GameService(db)
    return await game_service.list_games(user, status)


@router.get("/search", response_model=SearchResponse)
async def search_games(
    q: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Search the enabled metadata providers"""
    game_service = GameService(db)
    try:
        return await game_service.search_providers(q)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/search/test", response_model=ProviderTestResponse)
async def test_provider(
    config: Dict[str, Any],
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Check that a provider configuration works"""
    game_service = GameService(db)
    try:
        return await game_service.test_provider(user, config)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=GameResponse, status_code=201)
async def propose_game(
    game_data: GameCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Propose a new game"""
    game_service = GameService(db)
    try:
        game = await game_service.propose_game(game_data, user)
        return await game_service.enrich(game, user)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{game_id}", response_model=GameDetail)
async def get_game(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    game_service = GameService(db)
    try:
        return await game_service.get_game_detail(game_id, user)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{game_id}/metadata/refresh", response_model=GameResponse)
async def refresh_metadata(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Fill empty metadata fields from the providers"""
    game_service = GameService(db)
    try:
        game = await game_service.refresh_game_metadata(game_id, user)
        return await game_service.enrich(game, user)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{game_id}/metadata", response_model=GameResponse)
async def update_metadata(
    game_id: str,
    patch: GameMetadataUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    game_service = GameService(db)
    try:
        game = await game_service.update_metadata(game_id, user, patch)
        return await game_service.enrich(game, user)
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{game_id}", response_model=OkResponse)
async def delete_game(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a game with everything attached to it"""
    game_service = GameService(db)
    try:
        await game_service.delete_game(game_id, user)
        return OkResponse()
    except CoopLystError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

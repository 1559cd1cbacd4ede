"""
API routes
"""

from fastapi import APIRouter
from .game_routes import router as game_router
from .lifecycle_routes import router as lifecycle_router
from .admin_routes import router as admin_router
from .user_routes import router as user_router

# Main router
api_router = APIRouter()

# Feature routers
api_router.include_router(game_router, prefix="/games", tags=["Games"])
api_router.include_router(lifecycle_router, prefix="/games", tags=["Lifecycle"])
api_router.include_router(admin_router, prefix="/admin", tags=["Admin"])
api_router.include_router(user_router, prefix="/users", tags=["Users"])

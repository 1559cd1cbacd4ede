# Business logic services
from .admin_service import AdminService
from .game_service import GameService
from .lifecycle_service import LifecycleService
from .metadata_service import MetadataService
from .user_service import UserService

__all__ = ["AdminService", "GameService", "LifecycleService", "MetadataService", "UserService"]

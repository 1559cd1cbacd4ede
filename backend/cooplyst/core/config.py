"""
Application configuration
"""

from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Process-level settings, read from the environment or .env"""

    # Basics
    APP_NAME: str = "CoopLyst"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    # Database
    DATABASE_URL: str = "sqlite:///./cooplyst.db"

    # Game workflow
    DEFAULT_VOTE_THRESHOLD: int = 3

    # Metadata providers
    PROVIDER_TIMEOUT: int = 15  # seconds per request
    RAWG_BASE_URL: str = "https://api.rawg.io/api"
    IGDB_BASE_URL: str = "https://api.igdb.com/v4"
    TWITCH_TOKEN_URL: str = "https://id.twitch.tv/oauth2/token"

    class Config:
        env_file = ".env"
        case_sensitive = True

# Global settings instance
settings = Settings()

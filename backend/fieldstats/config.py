"""
backend/fieldstats/config.py

Purpose:
    Central settings loading for the statistics API.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "fieldstats"
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # League priority cache (match list ranking)
    LEAGUE_PRIORITY_CACHE_TTL_SECONDS: int = 300  # 5 minutes

    # Match list paging
    MATCHES_DEFAULT_LIMIT: int = 20
    MATCHES_MAX_LIMIT: int = 100
    MATCHES_CACHE_CONTROL: str = "public, max-age=60"
    FEATURED_LEAGUES_LIMIT: int = 10

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()

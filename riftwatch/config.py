# config.py – Chargement des paramètres via pydantic-settings

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Riot API
    RIOT_API_KEY: Optional[str] = None  # absent → ConfigurationError au premier appel
    DEFAULT_REGION: str = "na1"         # plateforme (summoner/league/spectator)

    # Database
    DB_URL: str = "sqlite:///data/riftwatch.db"

    # Pipeline
    MAX_CONCURRENT_REQUESTS: int = 5    # budget stable face au quota Riot
    MAX_RETRIES: int = 3                # réseau + 5xx
    MAX_RATE_LIMIT_RETRIES: int = 3     # 429
    RETRY_BASE_DELAY: float = 2.0       # secondes, backoff linéaire
    DEFAULT_RETRY_AFTER: int = 2        # si le 429 n'a pas de Retry-After
    REQUEST_TIMEOUT: float = 10.0
    RATE_LIMIT_WARN_RATIO: float = 0.9

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()

"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Durable store
    DATA_DIR: str = "docs"

    # HTTP
    USER_AGENT: str = "Mozilla/5.0 (compatible; LidomBot/1.0)"
    ACCEPT_LANGUAGE: str = "es-DO,es;q=0.9,en;q=0.8"
    REQUEST_TIMEOUT: float = 30.0
    MAX_RETRIES: int = 3
    RETRY_DELAY: float = 1.0

    # Sources
    SOURCE_HOME_URL: str = "https://pelotainvernal.com/liga/dominicana-lidom"
    GAME_DETAIL_URL_TEMPLATE: str = "https://pelotainvernal.com/juego/{id}"
    LIDOM_STATS_URL: str = "https://estadisticas.lidom.com/Lider"
    PLAYER_DETAIL_URL_TEMPLATE: str = "https://estadisticas.lidom.com/Miembro/Detalle?idMiembro={id}"
    VIEWMODEL_MARKER: str = "new ViewModel("

    # Batch runner
    CONCURRENCY: int = 4
    REQUEST_DELAY_SECONDS: float = 0.25
    SHARD_COUNT: int = 1
    SHARD_INDEX: int = 0
    BATCH_SIZE: int = 0  # 0 = no cap
    OVERWRITE: bool = False
    FORCE_IDS: Optional[str] = None
    MAX_SEASONS_PER_PLAYER: int = 0  # 0 = current page only

    # Export
    CHUNK_TARGET_BYTES: int = 5_000_000

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()

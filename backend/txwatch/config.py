"""
TxWatch Configuration Settings
"""

from pydantic_settings import BaseSettings
from typing import List, Optional
from loguru import logger
import sys

class Settings(BaseSettings):
    # Application Settings
    app_name: str = "TxWatch"
    version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    # Gateway
    gateway_base_url: str = "http://127.0.0.1:8000/api/v2"
    gateway_api_key: Optional[str] = None
    request_timeout: float = 30.0

    # Confirmation tracking
    poll_interval_seconds: float = 15.0  # ~one Cardano block
    poll_max_attempts: Optional[int] = None
    completed_retention_seconds: float = 60.0
    max_watch_age_seconds: float = 3600.0  # Cardano TTL ceiling

    # Explorer
    cardano_network: str = "preprod"

    # CORS Settings (gateway simulator)
    allowed_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"
        env_prefix = "TXWATCH_"
        case_sensitive = False

# Global settings instance
settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Point the loguru sink at stderr with the configured level"""
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.log_level).upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{function} - {message}",
    )

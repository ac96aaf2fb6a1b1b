"""
Configuration management for the bandwatch market sync system.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


class FetcherConfig(BaseModel):
    """Upstream provider failover settings."""

    max_retries: int = Field(default=3, ge=1, le=10)
    retry_delay_ms: int = Field(default=500, ge=0)
    # None defers to each provider's own timeout
    timeout_ms: Optional[int] = Field(default=None, ge=100)
    allowed_providers: Optional[List[str]] = None


class SyncConfig(BaseModel):
    """Live synchronization controller settings."""

    default_symbol: str = Field(default="BTCUSDT")
    default_period: str = Field(default="1m")
    poll_interval_seconds: float = Field(default=2.0, gt=0)
    max_candles: int = Field(default=1000, ge=1)
    resync_lookback: int = Field(default=1, ge=1)

    @field_validator('default_symbol')
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.upper().strip()


class IndicatorConfig(BaseModel):
    """Band and pattern detection parameters."""

    band_period: int = Field(default=20, ge=2)
    band_multiplier: float = Field(default=2.0, gt=0)
    doji_threshold: float = Field(default=0.001, gt=0)
    band_tolerance: float = Field(default=0.01, ge=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    file_path: str = Field(default="./logs/bandwatch.log")
    max_size: str = Field(default="10MB")
    backup_count: int = Field(default=5)


class Config(BaseModel):
    """Main configuration class."""

    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    indicators: IndicatorConfig = Field(default_factory=IndicatorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load_from_env(cls, env_file: Optional[str] = None) -> "Config":
        """Load configuration from environment variables."""
        if env_file:
            load_dotenv(env_file)
        else:
            # Try to load from .env file in current directory
            env_path = Path(".env")
            if env_path.exists():
                load_dotenv(env_path)

        providers = os.getenv("FETCH_PROVIDERS")
        timeout = os.getenv("FETCH_TIMEOUT_MS")
        fetcher = FetcherConfig(
            max_retries=int(os.getenv("FETCH_MAX_RETRIES", "3")),
            retry_delay_ms=int(os.getenv("FETCH_RETRY_DELAY_MS", "500")),
            timeout_ms=int(timeout) if timeout else None,
            allowed_providers=[p.strip() for p in providers.split(",") if p.strip()] if providers else None
        )

        sync = SyncConfig(
            default_symbol=os.getenv("SYNC_DEFAULT_SYMBOL", "BTCUSDT"),
            default_period=os.getenv("SYNC_DEFAULT_PERIOD", "1m"),
            poll_interval_seconds=float(os.getenv("SYNC_POLL_INTERVAL", "2.0")),
            max_candles=int(os.getenv("SYNC_MAX_CANDLES", "1000")),
            resync_lookback=int(os.getenv("SYNC_RESYNC_LOOKBACK", "1"))
        )

        indicators = IndicatorConfig(
            band_period=int(os.getenv("BAND_PERIOD", "20")),
            band_multiplier=float(os.getenv("BAND_MULTIPLIER", "2.0")),
            doji_threshold=float(os.getenv("DOJI_THRESHOLD", "0.001")),
            band_tolerance=float(os.getenv("BAND_TOLERANCE", "0.01"))
        )

        logging = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            file_path=os.getenv("LOG_FILE_PATH", "./logs/bandwatch.log"),
            max_size=os.getenv("LOG_MAX_SIZE", "10MB"),
            backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5"))
        )

        return cls(
            fetcher=fetcher,
            sync=sync,
            indicators=indicators,
            logging=logging
        )

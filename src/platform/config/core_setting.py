from pathlib import Path
from typing import List, Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Grid Reservation Engine'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production
    LOG_TIMEZONE: str = 'UTC'

    # Security (admin bearer tokens)
    SECRET_KEY: SecretStr = SecretStr('test_secret_key_change_in_production')
    ALGORITHM: str = 'HS256'
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = []  # add your frontend URL here

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith('['):
            return [i.strip() for i in v.split(',')]
        elif isinstance(v, list):
            return v
        return []

    # PostgreSQL
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'grid_engine'
    DATABASE_URL: Optional[str] = None  # Full override, e.g. sqlite+aiosqlite:///./grid.db

    # Connection pool (ignored by sqlite)
    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    DB_POOL_PRE_PING: bool = True

    # Upper bound on ids per IN (...) clause
    DB_ID_CHUNK_SIZE: int = 500

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f'postgresql+asyncpg://{self.POSTGRES_USER}:'
            f'{self.POSTGRES_PASSWORD.get_secret_value()}@{self.POSTGRES_SERVER}:'
            f'{self.POSTGRES_PORT}/{self.POSTGRES_DB}'
        )

    @property
    def IS_SQLITE(self) -> bool:
        return self.DATABASE_URL_ASYNC.startswith('sqlite')

    # Holds
    HOLD_TTL_MINUTES: int = 15
    HOLD_REAPER_ENABLED: bool = True
    HOLD_REAPER_INTERVAL_SECONDS: float = 30.0
    HOLD_REAPER_BATCH_SIZE: int = 200

    # Pricing (minor units)
    PRICE_PER_CELL_CENTS: int = 200
    CURRENCY: str = 'usd'

    # Content
    MAX_VIDEO_DURATION_SECONDS: int = 150
    BASE_VIDEO_DURATION_SECONDS: int = 15
    VIDEO_SECONDS_PER_EXTRA_CELL: int = 5

    # Payment collaborator
    CHECKOUT_BASE_URL: str = 'http://localhost:8000/checkout'
    PAYMENT_WEBHOOK_SECRET: SecretStr = SecretStr('test_webhook_secret')
    PROMO_CODE_FREE: Optional[SecretStr] = None  # Discount plug-in point, disabled when unset

    # State feed
    FEED_REPLAY_BUFFER_SIZE: int = 10_000
    FEED_SUBSCRIBER_BUFFER_SIZE: int = 256

    # Tracing
    SERVICE_NAME: str = 'grid-engine'
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None  # Spans stay local when unset


settings = Settings()  # type: ignore

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / '.env'),
        env_ignore_empty=True,
        extra='ignore',
    )

    DATABASE_URL: str = 'sqlite+aiosqlite:///db.sqlite3'
    DATABASE_ECHO: bool = False

    # Upper bound for a single booking or cancellation unit of work
    STORE_TIMEOUT_SECONDS: float = 10.0

    DEFAULT_PAGE_SIZE: int = 10

    LOG_LEVEL: str = 'INFO'

    @field_validator('STORE_TIMEOUT_SECONDS')
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError('STORE_TIMEOUT_SECONDS must be positive')
        return v


settings = Settings()

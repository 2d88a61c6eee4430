from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parents[1]
REPO_ROOT = PACKAGE_DIR.parent
ENV_FILES = [REPO_ROOT / ".env"]

for env_path in ENV_FILES:
    if env_path.exists():
        load_dotenv(env_path, override=False)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False, extra="allow", populate_by_name=True)

    database_url: str = Field(default="sqlite:///./records.db", alias="DATABASE_URL")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    # Model cache
    cache_namespace: str = Field(default="records", alias="CACHE_NAMESPACE")
    cache_default_ttl: int = Field(default=3600, ge=0, alias="CACHE_DEFAULT_TTL")
    cache_flush_namespace: bool = Field(default=False, alias="CACHE_FLUSH_NAMESPACE")

    # Query building
    sql_identifier_quote: str = Field(default='"', min_length=1, max_length=1, alias="SQL_IDENTIFIER_QUOTE")
    datetime_format: str = Field(default="%Y-%m-%dT%H:%M:%S%z", alias="DATETIME_FORMAT")

    # Post-save hooks
    save_hook_max_attempts: int = Field(default=3, ge=1, alias="SAVE_HOOK_MAX_ATTEMPTS")
    save_hook_retry_backoff: float = Field(default=0.5, ge=0, alias="SAVE_HOOK_RETRY_BACKOFF")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


@lru_cache
def get_settings() -> Settings:
    return Settings()

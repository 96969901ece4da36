from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    LOG_JSON: bool = True
    # Store backend selection: "memory" or "redis"
    STORE_ADAPTER: Literal["memory", "redis"] = "memory"
    REDIS_URL: AnyUrl | None = None
    REDIS_KEY_PREFIX: str = "factory_events"
    # Request guards
    MAX_REQUEST_SIZE: int = 4 * 1024 * 1024
    MAX_BATCH_SIZE: int = 10000
    # Conditional write retries per event before giving up with STORE_ERROR
    RECONCILE_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    DEFAULT_TOP_LINES_LIMIT: int = 10

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

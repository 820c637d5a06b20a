from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # Database
    DB_USER: str = Field("fanhub_admin")
    DB_PASSWORD: str = Field("FanHubPass2024")
    DB_NAME: str = Field("fanhub")
    DB_HOST: str = Field("postgres")
    DB_PORT: int = Field(5432)
    DATABASE_URL: str | None = Field(None)

    # Redis
    REDIS_HOST: str = Field("redis")
    REDIS_PORT: int = Field(6379)
    REDIS_PASSWORD: str | None = Field(None)
    PRESENCE_MIRROR_ENABLED: bool = Field(True)

    # App
    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(5000)
    DEBUG: bool = Field(False)
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost:5174",
        ]
    )

    # Calls
    CALL_RING_TIMEOUT_SECONDS: float = Field(30.0)
    HISTORY_WRITE_TIMEOUT_SECONDS: float = Field(5.0)
    HISTORY_WRITE_RETRIES: int = Field(2)
    HISTORY_RETRY_BASE_DELAY: float = Field(0.2)
    PERSIST_DECLINED_CALLS: bool = Field(True)
    PERSIST_DISCONNECTED_CALLS: bool = Field(True)

    # Metrics
    METRICS_ENABLED: bool = Field(False)
    METRICS_PORT: int = Field(8001)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_file_encoding="utf-8"
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


settings = Settings()

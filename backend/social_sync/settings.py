from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    app_name: str = "social-sync"
    environment: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "SOCIAL_SYNC_ENVIRONMENT"))
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "SOCIAL_SYNC_LOG_LEVEL"))
    database_url: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/social_sync",
        validation_alias=AliasChoices("DATABASE_URL", "SOCIAL_SYNC_DATABASE_URL"),
    )
    jwt_secret: str | None = Field(default=None, validation_alias=AliasChoices("JWT_SECRET", "SOCIAL_SYNC_JWT_SECRET"))
    jwt_algorithm: str = Field(default="HS256", validation_alias=AliasChoices("JWT_ALGORITHM", "SOCIAL_SYNC_JWT_ALGORITHM"))
    jwt_owner_claim: str = Field(default="userId", validation_alias=AliasChoices("JWT_OWNER_CLAIM", "SOCIAL_SYNC_JWT_OWNER_CLAIM"))
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        validation_alias=AliasChoices("CORS_ORIGINS", "SOCIAL_SYNC_CORS_ORIGINS"),
    )
    provider_timeout_sec: float = Field(default=10.0, validation_alias=AliasChoices("PROVIDER_TIMEOUT_SEC", "SOCIAL_SYNC_PROVIDER_TIMEOUT_SEC"))
    provider_max_retries: int = Field(default=2, validation_alias=AliasChoices("PROVIDER_MAX_RETRIES", "SOCIAL_SYNC_PROVIDER_MAX_RETRIES"))
    provider_retry_backoff_sec: float = Field(
        default=1.0,
        validation_alias=AliasChoices("PROVIDER_RETRY_BACKOFF_SEC", "SOCIAL_SYNC_PROVIDER_RETRY_BACKOFF_SEC"),
    )
    facebook_graph_version: str = Field(default="v18.0", validation_alias=AliasChoices("FACEBOOK_GRAPH_VERSION", "SOCIAL_SYNC_FACEBOOK_GRAPH_VERSION"))

    @property
    def async_database_url(self) -> str:
        if self.database_url.startswith("postgresql+"):
            return self.database_url
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

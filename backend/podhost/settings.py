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

    app_name: str = "podhost"
    environment: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "PODHOST_ENVIRONMENT"))
    database_url: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/podhost",
        validation_alias=AliasChoices("DATABASE_URL", "PODHOST_DATABASE_URL"),
    )
    base_url: str = Field(default="http://localhost:8000", validation_alias=AliasChoices("BASE_URL", "PODHOST_BASE_URL"))
    storage_dir: str = Field(default="/data/assets", validation_alias=AliasChoices("STORAGE_DIR", "PODHOST_STORAGE_DIR"))
    storage_public_url: str = Field(
        default="http://localhost:8000/audio",
        validation_alias=AliasChoices("STORAGE_PUBLIC_URL", "PODHOST_STORAGE_PUBLIC_URL"),
    )
    ip_hash_secret: str = Field(default="change-me", validation_alias=AliasChoices("IP_HASH_SECRET", "PODHOST_IP_HASH_SECRET"))
    session_ttl_hours: int = Field(default=24, validation_alias=AliasChoices("SESSION_TTL_HOURS", "PODHOST_SESSION_TTL_HOURS"))
    magic_link_ttl_minutes: int = Field(default=15, validation_alias=AliasChoices("MAGIC_LINK_TTL_MINUTES", "PODHOST_MAGIC_LINK_TTL_MINUTES"))
    resend_api_key: str | None = Field(default=None, validation_alias=AliasChoices("RESEND_API_KEY", "PODHOST_RESEND_API_KEY"))
    resend_from: str = Field(default="noreply@podhost.local", validation_alias=AliasChoices("RESEND_FROM", "PODHOST_RESEND_FROM"))
    scheduler_enabled: bool = Field(default=True, validation_alias=AliasChoices("SCHEDULER_ENABLED", "PODHOST_SCHEDULER_ENABLED"))
    publish_interval_minutes: int = Field(default=5, validation_alias=AliasChoices("PUBLISH_INTERVAL_MINUTES", "PODHOST_PUBLISH_INTERVAL_MINUTES"))
    feed_max_age_seconds: int = Field(default=300, validation_alias=AliasChoices("FEED_MAX_AGE_SECONDS", "PODHOST_FEED_MAX_AGE_SECONDS"))
    user_agent_max_length: int = Field(default=500, validation_alias=AliasChoices("USER_AGENT_MAX_LENGTH", "PODHOST_USER_AGENT_MAX_LENGTH"))
    client_ip_headers: list[str] = Field(
        default=["CF-Connecting-IP", "X-Forwarded-For"],
        validation_alias=AliasChoices("CLIENT_IP_HEADERS", "PODHOST_CLIENT_IP_HEADERS"),
    )
    country_header: str = Field(default="CF-IPCountry", validation_alias=AliasChoices("COUNTRY_HEADER", "PODHOST_COUNTRY_HEADER"))
    cors_origins: list[str] = Field(default=["*"], validation_alias=AliasChoices("CORS_ORIGINS", "PODHOST_CORS_ORIGINS"))

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

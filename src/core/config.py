"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from schemas.enrichment import MAX_TITLE_LENGTH


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Development mode - trusts the userId sent by the client instead of a bearer token
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")

    # Bearer tokens issued by the hosted auth provider (HS256, shared secret)
    auth_jwt_secret: str = Field(default="", validation_alias="AUTH_JWT_SECRET")
    auth_jwt_audience: str = Field(default="authenticated", validation_alias="AUTH_JWT_AUDIENCE")

    # Placeholder id the client sends before anyone has signed in
    anonymous_user_id: str = Field(default="anonymous-user", validation_alias="ANONYMOUS_USER_ID")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Scraping
    scrape_timeout: float = Field(default=10.0, validation_alias="SCRAPE_TIMEOUT")
    max_scraped_text_length: int = Field(
        default=6000, validation_alias="MAX_SCRAPED_TEXT_LENGTH",
    )

    # AI analysis service (OpenAI-compatible chat completions API)
    ai_base_url: str = Field(default="https://api.openai.com/v1", validation_alias="AI_BASE_URL")
    ai_api_key: str = Field(default="", validation_alias="AI_API_KEY")
    ai_model: str = Field(default="gpt-4o-mini", validation_alias="AI_MODEL")
    ai_vision_model: str = Field(default="", validation_alias="AI_VISION_MODEL")
    ai_timeout: float = Field(default=60.0, validation_alias="AI_TIMEOUT")

    # Field length limits
    # Capped at the title column width
    max_title_length: int = Field(
        default=MAX_TITLE_LENGTH, ge=1, le=MAX_TITLE_LENGTH, validation_alias="MAX_TITLE_LENGTH",
    )
    max_text_length: int = Field(default=512_000, validation_alias="MAX_TEXT_LENGTH")
    max_image_bytes: int = Field(default=10 * 1024 * 1024, validation_alias="MAX_IMAGE_BYTES")

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE trusts whatever userId the client sends, so it must only be
        used with local development databases.
        """
        if not self.dev_mode:
            return self

        if self.database_url.startswith("sqlite"):
            return self

        try:
            hostname = urlparse(self.database_url).hostname or ""
        except ValueError:
            hostname = ""

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"DEV_MODE bypasses token validation and must only be used locally.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def vision_model(self) -> str:
        """Model used for image analysis; falls back to the text model."""
        return self.ai_vision_model or self.ai_model


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Configuration management for the application."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COURSES = [
    "Web Development Fundamentals",
    "Advanced React",
    "Full-Stack JavaScript",
    "Node.js Masterclass",
    "TypeScript Essentials",
    "Next.js for Production",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (required, no default)
    database_url: str

    # JWT
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiration_minutes: int = Field(default=10080)  # 7 days
    oauth_state_expiration_minutes: int = Field(default=10)

    # OAuth providers
    google_client_id: str | None = Field(default=None)
    google_client_secret: str | None = Field(default=None)
    github_client_id: str | None = Field(default=None)
    github_client_secret: str | None = Field(default=None)
    oauth_redirect_base_url: str = Field(default="http://localhost:8000")

    # Cloudinary media host
    cloudinary_cloud_name: str | None = Field(default=None)
    cloudinary_api_key: str | None = Field(default=None)
    cloudinary_api_secret: str | None = Field(default=None)
    media_upload_timeout_seconds: float = Field(default=30.0)
    media_upload_attempts: int = Field(default=1, ge=1)
    max_media_bytes: int = Field(default=100 * 1024 * 1024)

    # Feed
    default_page_size: int = Field(default=10, ge=1)
    course_catalog: list[str] = Field(default_factory=lambda: list(DEFAULT_COURSES))

    # API
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that production has secure settings."""
        if not self.database_url:
            raise ValueError("DATABASE_URL must be set")
        if self.environment == "production":
            if self.jwt_secret == "change-me-in-production":  # noqa: S105
                raise ValueError("JWT_SECRET must be changed in production")
            if not self.cloudinary_configured:
                raise ValueError("CLOUDINARY_* credentials are required in production")
        return self

    @property
    def cloudinary_configured(self) -> bool:
        """Check whether all media host credentials are present."""
        return bool(
            self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

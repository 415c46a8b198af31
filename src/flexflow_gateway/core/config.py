"""Configuration management for FlexFlow Gateway."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Server configuration
    HOST: str = Field(default="127.0.0.1", description="Server host")
    PORT: int = Field(default=5000, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Logging format: json or text")

    # Security settings
    CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="CORS allowed origins (the dashboard frontend)"
    )

    # Rate limiting configuration
    ENABLE_RATE_LIMITING: bool = Field(default=True, description="Enable rate limiting")
    RATE_LIMIT_ALGORITHM: str = Field(
        default="fixed_window",
        pattern="^(fixed_window|sliding_log)$",
        description="Window algorithm"
    )
    RATE_LIMIT_HEADER_STYLE: str = Field(
        default="draft-8",
        pattern="^(draft-8|draft-6|off)$",
        description="Quota header style for all tiers"
    )
    RATE_LIMIT_TRUST_FORWARDED_FOR: bool = Field(
        default=False,
        description="Take the client address from X-Forwarded-For (only behind a trusted proxy)"
    )
    RATE_LIMIT_SWEEP_INTERVAL: int = Field(
        default=1000, ge=0, description="Evict stale counters every N updates (0 disables)"
    )
    RATE_LIMIT_EXEMPT_PATHS: list[str] = Field(
        default_factory=lambda: ["/health"], description="Paths never rate limited"
    )

    RATE_LIMIT_GLOBAL_LIMIT: int = Field(default=300, ge=1, description="Global tier requests per window")
    RATE_LIMIT_GLOBAL_WINDOW: float = Field(default=60, gt=0, description="Global tier window in seconds")
    RATE_LIMIT_GLOBAL_MESSAGE: str = Field(default="Too many requests, please try again later.")

    RATE_LIMIT_AUTH_LIMIT: int = Field(default=10, ge=1, description="Auth tier requests per window")
    RATE_LIMIT_AUTH_WINDOW: float = Field(default=60, gt=0, description="Auth tier window in seconds")
    RATE_LIMIT_AUTH_MESSAGE: str = Field(default="Too many requests on auth endpoints. Try again later.")

    RATE_LIMIT_API_LIMIT: int = Field(default=100, ge=1, description="API tier requests per window")
    RATE_LIMIT_API_WINDOW: float = Field(default=60, gt=0, description="API tier window in seconds")
    RATE_LIMIT_API_MESSAGE: str = Field(default="Too many requests. Please try later.")

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format"""
        valid_formats = ['json', 'text']
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS allowed origins."""
        return self.CORS_ORIGINS


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings (for dependency injection)"""
    return settings

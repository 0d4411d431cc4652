"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Monitoring API
    monitoring_endpoint_url: str = Field(
        default="", description="Base URL of the monitoring API gateway (empty = unbound)"
    )
    monitoring_api_token: str = Field(default="", description="Bearer token for the monitoring API")
    request_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Per-request timeout for monitoring API calls"
    )
    max_concurrent_requests: int = Field(
        default=8, ge=1, description="Upper bound on in-flight statistics requests"
    )
    target_dimension_name: str = Field(
        default="InstanceId", description="Dimension used to filter metrics by target"
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_reload: bool = Field(default=False, description="Enable hot reload")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="CORS allowed origins (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Development
    dev_mode: bool = Field(default=True, description="Development mode")

    @field_validator("cors_origins")
    @classmethod
    def parse_cors_origins(cls, v: str) -> List[str]:
        """Parse comma-separated CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("monitoring_endpoint_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the endpoint URL so paths can be appended directly."""
        return v.strip().rstrip("/")

    @property
    def has_default_endpoint(self) -> bool:
        """Whether a default monitoring endpoint is bound."""
        return bool(self.monitoring_endpoint_url)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()

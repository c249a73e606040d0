"""
Shared configuration management for the Accounts Access Layer.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Cache store
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_engine: str = Field(default="redis")
    cache_segment: str = Field(default="accounts")
    cache_ttl_seconds: int = Field(default=14400, ge=0)

    # Backend API
    backend_api_url: str = Field(default="http://localhost:3001")
    backend_api_timeout: float = Field(default=10.0, gt=0)

    # Listings
    default_page_size: int = Field(default=20, ge=1)

    @property
    def cache_enabled(self) -> bool:
        """Caching is only active when backed by Redis."""
        return self.cache_engine.lower() == "redis"


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)

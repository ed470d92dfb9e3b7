"""
Shared configuration management for the Newsletter Gateway.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

    # Environment
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("environment", "ENVIRONMENT", "NODE_ENV"),
    )
    log_level: str = "info"

    # Upstream (Mailchimp Marketing API)
    mailchimp_api_key: Optional[str] = None
    mailchimp_server_prefix: Optional[str] = None
    mailchimp_audience_id: Optional[str] = None
    upstream_timeout_seconds: float = 10.0

    # Response cache
    cache_ttl_seconds: int = Field(default=600, ge=0)

    # Inbound rate limiting
    redis_url: str = "redis://localhost:6379/0"
    rate_limit_enabled: bool = True
    rate_limit_max_requests: int = Field(default=100, ge=1)
    rate_limit_window_seconds: int = Field(default=900, ge=1)

    # HTTP surface
    frontend_url: str = "*"
    expose_error_details: bool = False

    @property
    def mailchimp_configured(self) -> bool:
        """True when both credentials needed for upstream calls are present."""
        return bool(self.mailchimp_api_key and self.mailchimp_server_prefix)

    @property
    def audience_configured(self) -> bool:
        return bool(self.mailchimp_audience_id)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int = 3000
    host: str = "0.0.0.0"


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)

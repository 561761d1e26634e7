"""
Centralized configuration management for the Dynamic CRUD Client.

This module provides a unified configuration system with support for:
- Environment variables
- Per-endpoint cache durations
- Runtime configuration
- Validation using Pydantic
"""

import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import EnvironmentVariable, LogLevel


class ApiConfig(BaseModel):
    """HTTP endpoint configuration."""

    base_url: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.API_BASE_URL.value, "http://localhost:3000"
        ),
        validate_default=True,
        description="Fixed origin all table and auth calls are relative to",
    )
    timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv(EnvironmentVariable.API_TIMEOUT.value, "30.0")),
        description="Per-request transport timeout in seconds",
    )
    login_endpoint: str = Field(default="/auth/login", description="Login endpoint")
    refresh_endpoint: str = Field(default="/auth/refresh", description="Token refresh endpoint")
    logout_endpoint: str = Field(default="/auth/logout", description="Logout endpoint")
    skip_auth_header: str = Field(
        default="X-Skip-Auth", description="Marker header sent instead of the bearer token"
    )

    @field_validator("base_url")
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the origin so paths can be appended directly."""
        return v.rstrip("/")


class AuthConfig(BaseModel):
    """Token lifecycle configuration."""

    refresh_threshold_seconds: int = Field(
        default=300, description="Refresh proactively when fewer seconds remain on the token"
    )
    username_claims: List[str] = Field(
        default_factory=lambda: ["username", "preferred_username"],
        description="JWT claims checked, in order, for the caller's username",
    )


class CacheConfig(BaseModel):
    """Response cache configuration."""

    default_ttl_seconds: int = Field(
        default_factory=lambda: int(os.getenv(EnvironmentVariable.CACHE_TTL.value, "300")),
        description="Default time-to-live for cached GET responses",
    )
    backend: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.CACHE_BACKEND.value, "memory"),
        validate_default=True,
        description="Cache backend: 'memory' or 'file'",
    )
    file_path: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.CACHE_FILE.value, "./.crud_client_cache.json"
        ),
        description="Location of the JSON file used by the file backend",
    )
    endpoint_durations: Dict[str, int] = Field(
        default_factory=dict, description="Per-endpoint TTL overrides keyed by path prefix"
    )

    @field_validator("backend")
    def validate_backend(cls, v: str) -> str:
        """Validate backend name is supported."""
        if v.lower() not in {"memory", "file"}:
            raise ValueError(f"Invalid cache backend: {v}. Must be 'memory' or 'file'")
        return v.lower()


class SchemaConfig(BaseModel):
    """Schema inference configuration."""

    longtext_threshold: int = Field(
        default=255, description="Strings longer than this are inferred as longtext"
    )
    sample_limit: int = Field(default=1, description="Rows fetched for sample-row inference")


class RelationshipConfig(BaseModel):
    """Relationship resolver configuration."""

    related_page_limit: int = Field(
        default=100, description="Maximum rows loaded for a referenced table"
    )
    field_table_map: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra field -> table mappings consulted before the built-in dictionary",
    )


class CrudConfig(BaseModel):
    """CRUD executor configuration."""

    identity_field: str = Field(
        default="XAuthUserId",
        description="Field carrying the caller identity, exempt from foreign-key checks",
    )
    default_page_limit: int = Field(default=10, description="Default page size for list calls")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        validate_default=True,
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class AppConfig(BaseModel):
    """Main client configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )

    # Sub-configurations
    api: ApiConfig = Field(default_factory=ApiConfig, description="API configuration")
    auth: AuthConfig = Field(default_factory=AuthConfig, description="Auth configuration")
    cache: CacheConfig = Field(default_factory=CacheConfig, description="Cache configuration")
    schema_inference: SchemaConfig = Field(
        default_factory=SchemaConfig, description="Schema inference configuration"
    )
    relationships: RelationshipConfig = Field(
        default_factory=RelationshipConfig, description="Relationship configuration"
    )
    crud: CrudConfig = Field(default_factory=CrudConfig, description="CRUD configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    # Custom configuration
    custom: Dict[str, Any] = Field(default_factory=dict, description="Custom configuration values")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()

    @property
    def is_development(self) -> bool:
        """Whether request ids are shown in formatted error messages."""
        return self.environment == "development"

    def get_custom(self, key: str, default: Any = None) -> Any:
        """Get a custom configuration value."""
        return self.custom.get(key, default)

    def set_custom(self, key: str, value: Any) -> None:
        """Set a custom configuration value."""
        self.custom[key] = value


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None

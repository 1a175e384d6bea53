"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        HELPDESK_DB_HOST: Database host (default: localhost)
        HELPDESK_DB_PORT: Database port (default: 5432)
        HELPDESK_DB_DATABASE: Database name (default: helpdesk)
        HELPDESK_DB_USERNAME: Database user (default: helpdesk)
        HELPDESK_DB_PASSWORD: Database password (required in production)
        HELPDESK_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        HELPDESK_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="HELPDESK_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="helpdesk", description="Database name")
    username: str = Field(default="helpdesk", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class SecuritySettings(BaseSettings):
    """Settings for the tenant-isolation security context.

    The two setting names must match the ones the row-level security
    policies read with ``current_setting()``.

    Environment variables:
        HELPDESK_SECURITY_TENANT_SETTING_NAME: (default: app.tenant_id)
        HELPDESK_SECURITY_ADMIN_SETTING_NAME: (default: app.is_admin)
        HELPDESK_SECURITY_REQUEST_TIMEOUT_SECONDS: Upper bound for one bound
            unit of work, unset for no limit (default: 30)
    """

    model_config = SettingsConfigDict(
        env_prefix="HELPDESK_SECURITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tenant_setting_name: str = Field(
        default="app.tenant_id",
        description="Session setting carrying the tenant scope",
        pattern=r"^[a-z_][a-z0-9_]*\.[a-z_][a-z0-9_]*$",
    )
    admin_setting_name: str = Field(
        default="app.is_admin",
        description="Session setting carrying the global admin flag",
        pattern=r"^[a-z_][a-z0-9_]*\.[a-z_][a-z0-9_]*$",
    )
    request_timeout_seconds: float | None = Field(
        default=30.0,
        description="Timeout for a bound unit of work",
        gt=0,
    )

    @model_validator(mode="after")
    def validate_distinct_names(self) -> "SecuritySettings":
        """Tenant and admin settings must not share a name."""
        if self.tenant_setting_name == self.admin_setting_name:
            raise ValueError(
                "tenant_setting_name and admin_setting_name must differ, "
                f"both are '{self.tenant_setting_name}'"
            )
        return self


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Helpdesk API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()

    @property
    def security(self) -> SecuritySettings:
        """Get security context settings."""
        return get_security_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_security_settings() -> SecuritySettings:
    """Get cached security context settings."""
    return SecuritySettings()

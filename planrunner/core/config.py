"""
Configuration Settings.

This module defines the runtime configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class ValidatorConfig(BaseModel):
    """Plan validator configuration."""

    url_consumer_tool: str = Field(
        default="fetch_web_content",
        alias="PLANRUNNER_URL_CONSUMER_TOOL",
        description="Tool that must consume the output of every URL-list producer",
    )
    content_generation_tool: str = Field(
        default="generate_content",
        alias="PLANRUNNER_CONTENT_GENERATION_TOOL",
        description="Reserved virtual tool name that is always accepted by the validator",
    )

    model_config = {"populate_by_name": True}


class TelemetryConfig(BaseModel):
    """Tool call record store configuration."""

    retention_hours: float = Field(
        default=24,
        alias="PLANRUNNER_RECORD_RETENTION_HOURS",
        description="Default age after which a retention sweep purges records",
    )
    capacity: int = Field(
        default=1000,
        alias="PLANRUNNER_RECORD_CAPACITY",
        description="Maximum number of records kept in memory (0 disables the bound)",
    )
    recent_activity_limit: int = Field(
        default=10,
        alias="PLANRUNNER_RECENT_ACTIVITY_LIMIT",
        description="Number of most recent records reported by statistics",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Runtime settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="PLANRUNNER_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="PLANRUNNER_LOG_FORMAT",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for the log file when file logging is enabled",
        alias="PLANRUNNER_LOG_FILE_DIR",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Write DEBUG-level logs to <log_file_dir>/planrunner.log",
        alias="PLANRUNNER_ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Validator Configuration
    # =====================================================================
    url_consumer_tool: str = Field(
        default="fetch_web_content",
        description="Tool that must consume the output of every URL-list producer",
        alias="PLANRUNNER_URL_CONSUMER_TOOL",
    )
    content_generation_tool: str = Field(
        default="generate_content",
        description="Reserved virtual tool name that is always accepted by the validator",
        alias="PLANRUNNER_CONTENT_GENERATION_TOOL",
    )

    # =====================================================================
    # Telemetry Configuration
    # =====================================================================
    record_retention_hours: float = Field(
        default=24,
        description="Default age after which a retention sweep purges tool call records",
        alias="PLANRUNNER_RECORD_RETENTION_HOURS",
    )
    record_capacity: int = Field(
        default=1000,
        description="Maximum number of tool call records kept in memory (0 disables the bound)",
        alias="PLANRUNNER_RECORD_CAPACITY",
    )
    recent_activity_limit: int = Field(
        default=10,
        description="Number of most recent records reported by execution statistics",
        alias="PLANRUNNER_RECENT_ACTIVITY_LIMIT",
    )

    # =====================================================================
    # Queue Configuration
    # =====================================================================
    queue_max_size: int = Field(
        default=0,
        description="Maximum number of queued orchestration sessions (0 means unbounded)",
        alias="PLANRUNNER_QUEUE_MAX_SIZE",
    )

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def validator(self) -> ValidatorConfig:
        """Get plan validator configuration."""
        return ValidatorConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def telemetry(self) -> TelemetryConfig:
        """Get tool call telemetry configuration."""
        return TelemetryConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()

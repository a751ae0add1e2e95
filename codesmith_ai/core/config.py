"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class LogfireConfig(BaseModel):
    """Logfire monitoring configuration."""

    enabled: bool = Field(default=False, alias="LOGFIRE_ENABLED", description="Enable Logfire monitoring")
    token: Optional[str] = Field(default=None, alias="LOGFIRE_TOKEN", description="Logfire write token")
    service_name: str = Field(
        default="codesmith-ai", alias="LOGFIRE_SERVICE_NAME", description="Service name reported to Logfire"
    )
    environment: str = Field(
        default="development", alias="LOGFIRE_ENVIRONMENT", description="Deployment environment label"
    )

    model_config = {"populate_by_name": True}


class ModelSettings(BaseModel):
    """Language model configuration used by the decision provider."""

    model: str = Field(
        default="openai:gpt-4o",
        alias="CODESMITH_AI_MODEL",
        description="pydantic-ai model identifier (provider:model)",
    )
    decision_retries: int = Field(
        default=1,
        alias="CODESMITH_AI_DECISION_RETRIES",
        description="Output validation retries granted to the model per decision",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="CODESMITH_AI_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="CODESMITH_AI_LOG_FORMAT",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for the log file",
        alias="CODESMITH_AI_LOG_FILE_DIR",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Write logs to a file in addition to the console",
        alias="CODESMITH_AI_ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Agent Loop
    # =====================================================================
    max_iterations: int = Field(
        default=15,
        gt=0,
        description="Hard cap on reasoning cycles per turn",
        alias="CODESMITH_AI_MAX_ITERATIONS",
    )
    workspace_root: str = Field(
        default=".",
        description="Root directory the builtin workspace tools operate in",
        alias="CODESMITH_AI_WORKSPACE_ROOT",
    )
    write_permission: str = Field(
        default="prompt",
        description="Mode for the filesystem.write permission (allow, deny, prompt, prompt-session)",
        alias="CODESMITH_AI_WRITE_PERMISSION",
    )

    # =====================================================================
    # Model / Monitoring (flat env vars, grouped below)
    # =====================================================================
    llm_model: str = Field(default="openai:gpt-4o", alias="CODESMITH_AI_MODEL")
    decision_retries: int = Field(default=1, ge=0, alias="CODESMITH_AI_DECISION_RETRIES")
    logfire_enabled: bool = Field(default=False, alias="LOGFIRE_ENABLED")
    logfire_token: Optional[str] = Field(default=None, alias="LOGFIRE_TOKEN")
    logfire_service_name: str = Field(default="codesmith-ai", alias="LOGFIRE_SERVICE_NAME")
    logfire_environment: str = Field(default="development", alias="LOGFIRE_ENVIRONMENT")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def llm(self) -> ModelSettings:
        """Get language model configuration from environment variables."""
        return ModelSettings.model_validate(self.model_dump(by_alias=True))

    @property
    def logfire(self) -> LogfireConfig:
        """Get Logfire configuration from environment variables."""
        return LogfireConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()

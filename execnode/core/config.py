"""
Configuration Settings.

This module defines the node configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", alias="EXECNODE_LOG_LEVEL", description="Root console log level")
    format: str = Field(
        default="detailed", alias="EXECNODE_LOG_FORMAT", description="Log format (simple, detailed or json)"
    )
    file_dir: str = Field(default="logs", alias="EXECNODE_LOG_FILE_DIR", description="Directory for the log file")
    enable_file: bool = Field(
        default=False, alias="EXECNODE_ENABLE_FILE_LOGGING", description="Also write logs to <file_dir>/execnode.log"
    )

    model_config = {"populate_by_name": True}


class ExecutionConfig(BaseModel):
    """Command execution and exec approval policy configuration."""

    policy_dir: Path = Field(alias="EXECNODE_POLICY_DIR", description="Directory holding exec-policy.json")
    policy_enabled: bool = Field(
        default=True, alias="EXECNODE_EXEC_POLICY_ENABLED", description="Gate system.run with the exec policy"
    )
    default_shell: Optional[str] = Field(
        default=None, alias="EXECNODE_DEFAULT_SHELL", description="Shell used when a request names none"
    )
    run_timeout_ms: int = Field(
        default=30000, alias="EXECNODE_RUN_TIMEOUT_MS", description="system.run timeout when the caller sends none"
    )
    output_drain_timeout_ms: int = Field(
        default=500,
        alias="EXECNODE_OUTPUT_DRAIN_TIMEOUT_MS",
        description="Grace window for collecting buffered output after the process exited",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Node settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
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
        alias="EXECNODE_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log format (simple, detailed, json)",
        alias="EXECNODE_LOG_FORMAT",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for the log file when file logging is enabled",
        alias="EXECNODE_LOG_FILE_DIR",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Write logs to a file in addition to the console",
        alias="EXECNODE_ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Execution Configuration
    # =====================================================================
    policy_dir: Path = Field(
        default_factory=lambda: Path.home() / ".execnode",
        description="Directory holding the exec approval policy document",
        alias="EXECNODE_POLICY_DIR",
    )
    exec_policy_enabled: bool = Field(
        default=True,
        description="Gate system.run with the exec approval policy",
        alias="EXECNODE_EXEC_POLICY_ENABLED",
    )
    default_shell: Optional[str] = Field(
        default=None,
        description="Shell used when a request names none (platform default when unset)",
        alias="EXECNODE_DEFAULT_SHELL",
    )
    run_timeout_ms: int = Field(
        default=30000,
        description="Timeout applied to system.run when the caller sends none",
        alias="EXECNODE_RUN_TIMEOUT_MS",
    )
    output_drain_timeout_ms: int = Field(
        default=500,
        ge=0,
        description="Grace window for collecting buffered output after the process exited",
        alias="EXECNODE_OUTPUT_DRAIN_TIMEOUT_MS",
    )

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration from environment variables."""
        return LoggingConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def execution(self) -> ExecutionConfig:
        """Get execution configuration from environment variables."""
        return ExecutionConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()

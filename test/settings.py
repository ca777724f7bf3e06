"""
Test Configuration Settings.

This module defines the test environment configuration using Pydantic's BaseSettings.
Pydantic automatically loads configuration from the test/.env file via env_file configuration.

Environment variables use the ``EXECNODE_`` prefix and double underscore (__) as delimiters
for nested properties. For example: EXECNODE_TEST__RUN_PROCESS_TESTS maps to
test_settings.test.run_process_tests
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TestExecutionConfig(BaseModel):
    """Test execution configuration."""

    run_process_tests: bool = Field(
        default=True,
        description="Enable tests that spawn real shell processes",
    )
    process_timeout_slack_ms: int = Field(
        default=3000,
        description="Extra wall time allowed on top of a run's own deadline before a timing test fails",
    )

    model_config = ConfigDict(strict=False)


# =====================================================================
# Main Test Settings Class
# =====================================================================


class TestSettings(BaseSettings):
    """
    Test environment settings model.

    All properties are automatically bound from environment variables and .env file
    in the test directory.

    Examples:
    - EXECNODE_TEST__RUN_PROCESS_TESTS=false → test_settings.test.run_process_tests
    - EXECNODE_TEST__PROCESS_TIMEOUT_SLACK_MS=5000 → test_settings.test.process_timeout_slack_ms
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent / ".env"),
        env_file_encoding="utf-8",
        env_prefix="EXECNODE_",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # =====================================================================
    # Test Execution Configuration
    # =====================================================================
    test: TestExecutionConfig = Field(
        default_factory=TestExecutionConfig,
        description="Test execution configuration",
    )


_test_settings_instance: Optional[TestSettings] = None


def get_test_settings() -> TestSettings:
    """
    Get the test settings instance.

    Returns:
        TestSettings: The initialized test settings instance.
    """
    global _test_settings_instance

    if _test_settings_instance is None:
        _test_settings_instance = TestSettings()
    return _test_settings_instance


# Create singleton instance
test_settings = get_test_settings()

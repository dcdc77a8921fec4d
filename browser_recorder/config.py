"""Configuration management for the browser recorder."""

from enum import Enum
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    """Log output formats."""
    CONSOLE = "console"
    JSON = "json"


class Settings(BaseSettings):
    """Recorder settings loaded from environment variables (``RECORDER_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="RECORDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    log_level: str = Field("INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_format: LogFormat = Field(LogFormat.CONSOLE, description="Console or JSON log output")

    # Capture
    debounce_ms: int = Field(300, ge=0, description="Debounce window for continuous interactions")
    max_events: int = Field(1000, gt=0, description="Maximum events captured per recording")
    capture_screenshots: bool = Field(False, description="Ask the host to capture screenshots")
    capture_console: bool = Field(False, description="Ask the host to capture console output")
    capture_network: bool = Field(False, description="Ask the host to capture network traffic")
    capture_performance: bool = Field(False, description="Ask the host to capture performance marks")

    # Selector synthesis
    selector_timeout_ms: int = Field(5000, description="Timeout hint for selector lookups")
    selector_retries: int = Field(3, description="Retry hint for selector lookups")
    low_reliability_threshold: float = Field(
        0.5,
        ge=0.0,
        le=1.0,
        description="Selectors scoring below this are flagged on the recorded event"
    )

    # Code generation defaults
    default_framework: str = Field("playwright", description="Default target framework")
    default_language: str = Field("typescript", description="Default target language")
    include_comments: bool = Field(True, description="Emit comments in generated code")
    include_assertions: bool = Field(True, description="Emit group-level assertions")
    include_setup: bool = Field(True, description="Emit setup/teardown scaffolding")
    page_object_model: bool = Field(False, description="Emit page object files")
    headless: bool = Field(True, description="Run generated tests headless")
    viewport_width: int = Field(1280, description="Viewport width for generated tests")
    viewport_height: int = Field(720, description="Viewport height for generated tests")
    action_timeout_ms: int = Field(30000, description="Default timeout in generated tests")
    base_url: Optional[str] = Field(None, description="Base URL for generated tests")


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()

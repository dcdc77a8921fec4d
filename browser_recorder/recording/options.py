"""Recording options accepted at the capture boundary."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..config import Settings
from ..selector.models import DEFAULT_PRIORITY, SelectorConfig, SelectorStrategy
from .models import EventType


class SelectorMode(str, Enum):
    """Which selector family the host prefers."""

    AUTO = "auto"
    CSS = "css"
    XPATH = "xpath"
    TEXT = "text"
    DATA_TESTID = "data-testid"
    CUSTOM = "custom"


# Priority order implied by a non-auto mode
MODE_PRIORITY: dict[SelectorMode, tuple[SelectorStrategy, ...]] = {
    SelectorMode.CSS: (SelectorStrategy.ID, SelectorStrategy.CSS),
    SelectorMode.XPATH: (SelectorStrategy.XPATH,),
    SelectorMode.TEXT: (SelectorStrategy.TEXT, SelectorStrategy.ARIA, SelectorStrategy.CSS),
    SelectorMode.DATA_TESTID: (SelectorStrategy.TESTID, SelectorStrategy.CSS),
}


class SelectorOptions(BaseModel):
    """Selector synthesis options for a recording."""

    mode: SelectorMode = Field(SelectorMode.AUTO, description="Preferred selector family")
    priority: list[SelectorStrategy] = Field(
        default_factory=lambda: list(DEFAULT_PRIORITY),
        description="Strategy priority order (used for auto and custom modes)",
    )
    fallback: bool = Field(True, description="Degrade to a structural path when nothing is unique")
    optimize: bool = Field(True, description="Collapse structural paths to the shortest unique chain")
    include_position: bool = Field(False, description="Append nth-child to break ties")
    timeout_ms: int = Field(5000, ge=0, description="Timeout hint for selector lookups")
    retries: int = Field(3, ge=0, description="Retry hint for selector lookups")

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: list[SelectorStrategy]) -> list[SelectorStrategy]:
        """Priority must be non-empty and free of duplicates."""
        if not v:
            raise ValueError("priority must contain at least one strategy")
        if len(set(v)) != len(v):
            raise ValueError("priority must not repeat strategies")
        return v

    def to_selector_config(self) -> SelectorConfig:
        """Build the engine configuration these options describe."""
        priority = MODE_PRIORITY.get(self.mode, tuple(self.priority))
        return SelectorConfig(
            priority=priority,
            fallback=self.fallback,
            optimize=self.optimize,
            include_position=self.include_position,
        )


class RecordingOptions(BaseModel):
    """Options for one recording.

    Example:
        options = RecordingOptions(
            ignored_events=[EventType.KEYUP],
            debounce_ms=250,
            selector_options=SelectorOptions(mode="data-testid"),
        )
    """

    ignored_events: list[EventType] = Field(default_factory=list, description="Event types to drop")
    debounce_ms: int = Field(300, ge=0, description="Debounce window for continuous interactions")
    max_events: int = Field(1000, gt=0, description="Maximum events to capture")
    capture_screenshots: bool = Field(False, description="Ask the host to capture screenshots")
    capture_console: bool = Field(False, description="Ask the host to capture console output")
    capture_network: bool = Field(False, description="Ask the host to capture network traffic")
    capture_performance: bool = Field(False, description="Ask the host to capture performance marks")
    low_reliability_threshold: float = Field(
        0.5, ge=0.0, le=1.0, description="Flag events whose selector scores below this"
    )
    selector_options: SelectorOptions = Field(default_factory=SelectorOptions)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "RecordingOptions":
        """Seed options from recorder settings."""
        settings = settings or Settings()
        values = {
            "debounce_ms": settings.debounce_ms,
            "max_events": settings.max_events,
            "capture_screenshots": settings.capture_screenshots,
            "capture_console": settings.capture_console,
            "capture_network": settings.capture_network,
            "capture_performance": settings.capture_performance,
            "low_reliability_threshold": settings.low_reliability_threshold,
            "selector_options": SelectorOptions(
                timeout_ms=settings.selector_timeout_ms,
                retries=settings.selector_retries,
            ),
        }
        values.update(overrides)
        return cls(**values)

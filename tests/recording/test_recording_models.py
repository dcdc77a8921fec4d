"""Tests for recording models and options."""

import pytest
from pydantic import ValidationError

from browser_recorder.config import Settings
from browser_recorder.recording import (
    EventType,
    Interaction,
    RecordingOptions,
    SelectorMode,
    SelectorOptions,
)
from browser_recorder.selector import SelectorStrategy


class TestRecordedEvent:
    """Tests for RecordedEvent."""

    def test_value_prefers_value_field(self, make_event):
        """Test the principal value of an input."""
        event = make_event("input", data={"value": "abc", "key": "c"})

        assert event.value == "abc"

    def test_value_falls_back_to_payload(self, make_event):
        """Test events without a principal value compare by payload."""
        event = make_event("scroll", data={"y": 10, "x": 0})

        assert event.value == '{"x": 0, "y": 10}'

    def test_url_of_navigation(self, make_event):
        """Test navigations report their destination."""
        event = make_event("navigation", data={"url": "https://app.example.com/next"})

        assert event.url == "https://app.example.com/next"

    def test_url_of_other_events(self, make_event):
        """Test other events report their page URL."""
        assert make_event("click").url == "https://app.example.com/login"

    def test_target_key(self, make_event, make_target):
        """Test the selector identifies the target when present."""
        with_selector = make_event("click", make_target("a", selector="#home"))
        without = make_event("click", make_target("a"))

        assert with_selector.target_key == "#home"
        assert without.target_key == make_target("a").fingerprint()

    def test_to_dict(self, make_event, make_target):
        """Test serialization."""
        event = make_event("click", make_target("a", text="Home", selector="#home", id="home"))

        data = event.to_dict()

        assert data["type"] == "click"
        assert data["target"]["selector"] == "#home"
        assert data["context"]["url"] == "https://app.example.com/login"


class TestInteraction:
    """Tests for Interaction."""

    def test_string_type_converted(self):
        """Test string types become EventType members."""
        assert Interaction(type="CLICK").type == EventType.CLICK

    def test_unknown_type_rejected(self):
        """Test unknown event types are rejected."""
        with pytest.raises(ValueError):
            Interaction(type="hover")


class TestSelectorOptions:
    """Tests for SelectorOptions."""

    def test_defaults(self):
        """Test default options."""
        options = SelectorOptions()

        assert options.mode == SelectorMode.AUTO
        assert options.priority[0] == SelectorStrategy.TESTID
        assert options.fallback is True

    def test_empty_priority_rejected(self):
        """Test an empty priority list is invalid."""
        with pytest.raises(ValidationError):
            SelectorOptions(priority=[])

    def test_duplicate_priority_rejected(self):
        """Test repeated strategies are invalid."""
        with pytest.raises(ValidationError):
            SelectorOptions(priority=["id", "id"])

    @pytest.mark.parametrize("mode,expected", [
        ("css", (SelectorStrategy.ID, SelectorStrategy.CSS)),
        ("xpath", (SelectorStrategy.XPATH,)),
        ("data-testid", (SelectorStrategy.TESTID, SelectorStrategy.CSS)),
    ])
    def test_mode_priority(self, mode, expected):
        """Test modes imply a priority order."""
        config = SelectorOptions(mode=mode).to_selector_config()

        assert config.priority == expected

    def test_custom_priority(self):
        """Test custom mode uses the given priority."""
        config = SelectorOptions(mode="custom", priority=["aria", "text"]).to_selector_config()

        assert config.priority == (SelectorStrategy.ARIA, SelectorStrategy.TEXT)


class TestRecordingOptions:
    """Tests for RecordingOptions."""

    def test_defaults(self):
        """Test default recording options."""
        options = RecordingOptions()

        assert options.debounce_ms == 300
        assert options.max_events == 1000
        assert options.low_reliability_threshold == 0.5
        assert options.ignored_events == []

    def test_invalid_values(self):
        """Test bounds are enforced."""
        with pytest.raises(ValidationError):
            RecordingOptions(max_events=0)
        with pytest.raises(ValidationError):
            RecordingOptions(low_reliability_threshold=1.5)

    def test_from_settings(self):
        """Test options seeded from settings with overrides."""
        settings = Settings(debounce_ms=150, max_events=50, selector_retries=1)

        options = RecordingOptions.from_settings(settings, max_events=10)

        assert options.debounce_ms == 150
        assert options.max_events == 10
        assert options.selector_options.retries == 1

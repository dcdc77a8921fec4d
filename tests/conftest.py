"""Shared fixtures for browser recorder tests."""

import itertools

import pytest

from browser_recorder.recording.grouper import ActionGrouper
from browser_recorder.recording.models import EventType, PageContext, RecordedEvent
from browser_recorder.recording.processor import EventProcessor
from browser_recorder.selector.models import PathSegment, TargetDescriptor


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "smoke: mark test as smoke test (fast, critical path - included in CI)"
    )


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("RECORDER_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("RECORDER_LOG_FORMAT", "json")
    monkeypatch.setenv("RECORDER_DEBOUNCE_MS", "250")
    monkeypatch.setenv("RECORDER_DEFAULT_FRAMEWORK", "cypress")
    monkeypatch.setenv("RECORDER_DEFAULT_LANGUAGE", "javascript")
    monkeypatch.setenv("RECORDER_BASE_URL", "https://app.example.com")


# =============================================================================
# Element snapshots
# =============================================================================


LOGIN_FORM_PATH = (
    PathSegment("html"),
    PathSegment("body", index=2),
    PathSegment("form", {"id": "login"}, index=1),
)


@pytest.fixture
def make_target():
    """Factory for element snapshots.

    Extra keyword arguments become element attributes (``data_testid``
    becomes ``data-testid``).
    """
    def _make(tag_name="button", text="", path=LOGIN_FORM_PATH, selector="", index=1, sibling_count=1, **attributes):
        return TargetDescriptor(
            tag_name=tag_name,
            text_content=text,
            attributes={k.replace("_", "-"): v for k, v in attributes.items()},
            path=tuple(path),
            index=index,
            sibling_count=sibling_count,
            selector=selector,
        )

    return _make


@pytest.fixture
def make_event():
    """Factory for recorded events with increasing sequence numbers."""
    counter = itertools.count(1)

    def _make(event_type, target=None, data=None, timestamp=None, url="https://app.example.com/login", metadata=None):
        sequence = next(counter)
        return RecordedEvent(
            id=f"evt_{sequence}",
            sequence=sequence,
            timestamp=timestamp if timestamp is not None else sequence * 100,
            type=EventType(event_type),
            target=target or TargetDescriptor.document(),
            data=dict(data or {}),
            context=PageContext(url=url, title="Login"),
            metadata=dict(metadata or {"annotations": []}),
        )

    return _make


# =============================================================================
# Recordings
# =============================================================================


@pytest.fixture
def login_events(make_event, make_target):
    """Navigate, fill credentials and submit a login form."""
    email = make_target("input", selector="#email", id="email", type="email", name="email")
    password = make_target("input", selector="#password", id="password", type="password")
    form = make_target("form", selector="#login", path=LOGIN_FORM_PATH[:2], id="login")
    return [
        make_event("navigation", data={"url": "https://app.example.com/login"}, timestamp=0),
        make_event("input", email, {"value": "user@example.com"}, timestamp=1000),
        make_event("input", password, {"value": "hunter2"}, timestamp=1500),
        make_event("submit", form, timestamp=2000),
    ]


@pytest.fixture
def login_groups(login_events):
    """Processed and grouped login recording."""
    processed = EventProcessor().process(login_events)
    return ActionGrouper().group(processed.events)

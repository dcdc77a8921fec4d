"""Interaction capture and normalization.

Captures page interactions as canonical events, normalizes them and groups
them into semantic user actions.

Example:
    from browser_recorder.recording import EventRecorder, EventProcessor, ActionGrouper

    recorder = EventRecorder()
    recorder.start()
    recorder.handle_interaction(interaction)
    events = recorder.stop()

    processed = EventProcessor().process(events)
    groups = ActionGrouper().group(processed.events)
"""

from .grouper import ActionGrouper, event_category, flatten
from .models import (
    CONTINUOUS_EVENT_TYPES,
    EventGroup,
    EventType,
    GroupActionType,
    Interaction,
    PageContext,
    ProcessingResult,
    RecordedEvent,
    Viewport,
)
from .options import RecordingOptions, SelectorMode, SelectorOptions
from .processor import EventProcessor
from .recorder import EventRecorder, RecorderState
from .rrweb_adapter import RRWebAdapter, RRWebEvent, RRWebEventType

__all__ = [
    # Models
    "EventType",
    "CONTINUOUS_EVENT_TYPES",
    "Interaction",
    "PageContext",
    "Viewport",
    "RecordedEvent",
    "ProcessingResult",
    "GroupActionType",
    "EventGroup",
    # Options
    "RecordingOptions",
    "SelectorOptions",
    "SelectorMode",
    # Pipeline
    "EventRecorder",
    "RecorderState",
    "EventProcessor",
    "ActionGrouper",
    "event_category",
    "flatten",
    # rrweb
    "RRWebAdapter",
    "RRWebEvent",
    "RRWebEventType",
]

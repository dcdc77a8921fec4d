"""Data models for captured browser interactions."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse

from ..selector.models import BoundingRect, PathSegment, TargetDescriptor


class EventType(str, Enum):
    """Closed set of recorded event types."""

    NAVIGATION = "navigation"
    CLICK = "click"
    DBLCLICK = "dblclick"
    INPUT = "input"
    CHANGE = "change"
    KEYDOWN = "keydown"
    KEYUP = "keyup"
    KEYPRESS = "keypress"
    SUBMIT = "submit"
    SCROLL = "scroll"
    WAIT = "wait"
    ASSERTION = "assertion"
    FOCUS = "focus"
    BLUR = "blur"
    SELECT = "select"
    CONTEXTMENU = "contextmenu"
    WHEEL = "wheel"
    CUSTOM = "custom"


# Event types that fire continuously and are debounced at capture time
CONTINUOUS_EVENT_TYPES = frozenset({EventType.INPUT, EventType.SCROLL, EventType.WHEEL})

KEYBOARD_EVENT_TYPES = frozenset({EventType.KEYDOWN, EventType.KEYUP, EventType.KEYPRESS})


@dataclass(frozen=True)
class Viewport:
    """Viewport dimensions."""

    width: int = 1280
    height: int = 720
    device_pixel_ratio: float = 1.0


@dataclass(frozen=True)
class PageContext:
    """Page the event happened on."""

    url: str = ""
    title: str = ""
    viewport: Viewport = field(default_factory=Viewport)
    user_agent: str = ""

    @property
    def host(self) -> str:
        return urlparse(self.url).netloc


@dataclass(frozen=True)
class RecordedEvent:
    """A captured, canonical interaction.

    Attributes:
        id: Unique event id
        sequence: Monotonically increasing capture order
        timestamp: Milliseconds since epoch (or recording start)
        type: Closed event type
        target: Element snapshot with synthesized selector
        data: Type-specific payload (url, value, key, ...)
        context: Page URL, viewport and user agent
        metadata: Selector reliability, annotations and processor tags
    """

    id: str
    sequence: int
    timestamp: int
    type: EventType
    target: TargetDescriptor = field(default_factory=TargetDescriptor.document)
    data: dict[str, Any] = field(default_factory=dict)
    context: PageContext = field(default_factory=PageContext)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def target_key(self) -> str:
        """Identity of the target used for debounce and dedupe."""
        return self.target.selector or self.target.fingerprint()

    @property
    def value(self) -> Any:
        """The event's principal value, used for duplicate detection."""
        for key in ("value", "url", "key", "expected"):
            if key in self.data:
                return self.data[key]
        return json.dumps(self.data, sort_keys=True, default=str)

    @property
    def url(self) -> str:
        """Destination URL for navigations, page URL otherwise."""
        if self.type == EventType.NAVIGATION and self.data.get("url"):
            return self.data["url"]
        return self.context.url

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "sequence": self.sequence,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "target": {
                "tag_name": self.target.tag_name,
                "text_content": self.target.text_content,
                "attributes": dict(self.target.attributes),
                "selector": self.target.selector,
                "alternative_selectors": list(self.target.alternative_selectors),
            },
            "data": dict(self.data),
            "context": {
                "url": self.context.url,
                "title": self.context.title,
                "user_agent": self.context.user_agent,
            },
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class Interaction:
    """Inbound notification from the observed page surface."""

    type: EventType | str
    target: Optional[TargetDescriptor] = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[int] = None
    context: PageContext = field(default_factory=PageContext)

    def __post_init__(self):
        """Convert string types to EventType."""
        if isinstance(self.type, str) and not isinstance(self.type, EventType):
            object.__setattr__(self, "type", EventType(self.type.lower()))


@dataclass(frozen=True)
class ProcessingResult:
    """Output of one processor run.

    Attributes:
        original_count: Events received
        processed_count: Events kept
        optimizations: Optimization kinds that changed the list, in pass order
        removed: Events removed per optimization kind
        events: The processed events
    """

    original_count: int
    processed_count: int
    optimizations: tuple[str, ...] = ()
    removed: dict[str, int] = field(default_factory=dict)
    events: tuple[RecordedEvent, ...] = ()


class GroupActionType(str, Enum):
    """Semantic action synthesized for an event group."""

    NAVIGATION = "navigation"
    FORM_INTERACTION = "form_interaction"
    CLICK_SEQUENCE = "click_sequence"
    KEYBOARD = "keyboard"
    SCROLL = "scroll"
    ASSERTION = "assertion"
    WAIT = "wait"
    CUSTOM = "custom"


@dataclass(frozen=True)
class EventGroup:
    """A contiguous run of processed events forming one user action."""

    id: str
    action_type: GroupActionType
    name: str
    description: str = ""
    events: tuple[RecordedEvent, ...] = ()
    scope: Optional[str] = None

    @property
    def urls(self) -> list[str]:
        """Distinct page URLs touched by this group, in order."""
        seen: list[str] = []
        for event in self.events:
            url = event.url
            if url and url not in seen:
                seen.append(url)
        return seen

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "action_type": self.action_type.value,
            "name": self.name,
            "description": self.description,
            "scope": self.scope,
            "events": [e.to_dict() for e in self.events],
        }

"""rrweb adapter - turns rrweb DOM recordings into recorder interactions.

rrweb captures the DOM rather than pixels, so every interaction can be
mapped back to an element snapshot with its full ancestor path. Those
snapshots go through the regular selector engine and recorder pipeline.
"""

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

import structlog

from ..exceptions import NotRecordingError
from .models import (
    EventType,
    Interaction,
    PageContext,
    PathSegment,
    RecordedEvent,
    TargetDescriptor,
    Viewport,
)

logger = structlog.get_logger()


class RRWebEventType(IntEnum):
    """rrweb event types."""

    DOM_CONTENT_LOADED = 0
    LOAD = 1
    FULL_SNAPSHOT = 2
    INCREMENTAL_SNAPSHOT = 3
    META = 4
    CUSTOM = 5
    PLUGIN = 6


class RRWebIncrementalSource(IntEnum):
    """rrweb incremental snapshot sources."""

    MUTATION = 0
    MOUSE_MOVE = 1
    MOUSE_INTERACTION = 2
    SCROLL = 3
    VIEWPORT_RESIZE = 4
    INPUT = 5


class MouseInteractionType(IntEnum):
    """Mouse interaction types in rrweb."""

    MOUSE_UP = 0
    MOUSE_DOWN = 1
    CLICK = 2
    CONTEXT_MENU = 3
    DBL_CLICK = 4
    FOCUS = 5
    BLUR = 6


MOUSE_EVENT_TYPES = {
    MouseInteractionType.CLICK: EventType.CLICK,
    MouseInteractionType.DBL_CLICK: EventType.DBLCLICK,
    MouseInteractionType.CONTEXT_MENU: EventType.CONTEXTMENU,
    MouseInteractionType.FOCUS: EventType.FOCUS,
    MouseInteractionType.BLUR: EventType.BLUR,
}

# rrweb serialized node types
ELEMENT_NODE = 2
TEXT_NODE = 3


@dataclass
class RRWebEvent:
    """A single rrweb event."""

    type: RRWebEventType
    timestamp: int
    data: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "RRWebEvent":
        """Create RRWebEvent from dictionary."""
        event_type = data.get("type", 0)
        # Handle unknown event types gracefully
        try:
            event_type = RRWebEventType(event_type)
        except ValueError:
            event_type = RRWebEventType.CUSTOM

        return cls(
            type=event_type,
            timestamp=data.get("timestamp", 0),
            data=data.get("data", {}),
        )


@dataclass
class NodeInfo:
    """Element snapshot data for one rrweb node id."""

    tag_name: str
    attributes: dict
    path: tuple[PathSegment, ...]
    index: int = 1
    sibling_count: int = 1
    text: str = ""

    def to_target(self) -> TargetDescriptor:
        return TargetDescriptor(
            tag_name=self.tag_name,
            text_content=self.text,
            attributes=dict(self.attributes),
            path=self.path,
            index=self.index,
            sibling_count=self.sibling_count,
        )

    def segment(self) -> PathSegment:
        return PathSegment(
            tag_name=self.tag_name,
            attributes=dict(self.attributes),
            index=self.index,
            sibling_count=self.sibling_count,
        )


class RRWebAdapter:
    """Converts rrweb events into ``Interaction`` notifications.

    Example:
        adapter = RRWebAdapter()
        recorder.start()
        adapter.replay(events_json, recorder)
        events = recorder.stop()
    """

    def __init__(self, min_scroll_distance: int = 100):
        """Initialize adapter with configuration.

        Args:
            min_scroll_distance: Minimum scroll distance to record as an interaction
        """
        self.min_scroll_distance = min_scroll_distance
        self.log = logger.bind(component="rrweb_adapter")

        self._nodes: dict[int, NodeInfo] = {}
        self._context = PageContext()
        self._last_scroll: tuple[int, int] = (0, 0)

    def to_interactions(self, events: list[dict] | dict | str) -> list[Interaction]:
        """Convert rrweb events to interactions.

        Args:
            events: rrweb event list, JSON string or ``{"events": [...]}`` wrapper

        Returns:
            Interactions in recording order
        """
        if isinstance(events, str):
            events = json.loads(events)
        if isinstance(events, dict) and "events" in events:
            events = events["events"]

        self._reset_state()
        interactions: list[Interaction] = []

        for event_data in events:
            event = RRWebEvent.from_dict(event_data)
            interaction = self._process_event(event)
            if interaction is not None:
                interactions.append(interaction)

        self.log.info(
            "rrweb recording converted",
            event_count=len(events),
            interaction_count=len(interactions),
        )
        return interactions

    def replay(self, events: list[dict] | dict | str, recorder) -> list[RecordedEvent]:
        """Push converted interactions into an active recorder.

        Raises:
            NotRecordingError: If the recorder is not recording
        """
        if recorder.state.value != "recording":
            raise NotRecordingError("Recorder must be recording to replay rrweb events", state=recorder.state.value)

        recorded = []
        for interaction in self.to_interactions(events):
            event = recorder.handle_interaction(interaction)
            if event is not None:
                recorded.append(event)
        return recorded

    def _reset_state(self) -> None:
        self._nodes = {}
        self._context = PageContext()
        self._last_scroll = (0, 0)

    def _process_event(self, event: RRWebEvent) -> Optional[Interaction]:
        if event.type == RRWebEventType.META:
            return self._process_meta(event)

        if event.type == RRWebEventType.FULL_SNAPSHOT:
            self._nodes = {}
            self._index_node(event.data.get("node", {}), ())
            return None

        if event.type == RRWebEventType.INCREMENTAL_SNAPSHOT:
            return self._process_incremental(event)

        return None

    def _process_meta(self, event: RRWebEvent) -> Optional[Interaction]:
        data = event.data
        href = data.get("href", "")
        self._context = PageContext(
            url=href,
            viewport=Viewport(
                width=data.get("width", 0) or 1280,
                height=data.get("height", 0) or 720,
            ),
        )
        if not href:
            return None
        return Interaction(
            type=EventType.NAVIGATION,
            data={"url": href},
            timestamp=event.timestamp,
            context=self._context,
        )

    def _index_node(self, node: dict, path: tuple[PathSegment, ...], index: int = 1, sibling_count: int = 1) -> None:
        """Recursively record element snapshots with their ancestor path."""
        node_id = node.get("id")
        tag_name = (node.get("tagName") or "").lower()
        children = node.get("childNodes", [])

        child_path = path
        if node_id is not None and tag_name:
            info = NodeInfo(
                tag_name=tag_name,
                attributes={k: str(v) for k, v in node.get("attributes", {}).items()},
                path=path,
                index=index,
                sibling_count=sibling_count,
                text=self._text_of(children),
            )
            self._nodes[node_id] = info
            child_path = path + (info.segment(),)

        elements = [c for c in children if c.get("tagName")]
        tag_counts: dict[str, int] = {}
        for child in elements:
            tag = child["tagName"].lower()
            tag_counts[tag] = tag_counts.get(tag, 0) + 1

        position = 0
        for child in children:
            if child.get("tagName"):
                position += 1
                self._index_node(child, child_path, position, tag_counts[child["tagName"].lower()])
            elif child.get("childNodes"):
                self._index_node(child, child_path)

    @staticmethod
    def _text_of(children: list[dict]) -> str:
        parts = []
        for child in children:
            if child.get("type") == TEXT_NODE:
                parts.append(child.get("textContent", ""))
            elif child.get("tagName"):
                parts.append(RRWebAdapter._text_of(child.get("childNodes", [])))
        return " ".join(" ".join(parts).split())

    def _process_incremental(self, event: RRWebEvent) -> Optional[Interaction]:
        source = event.data.get("source")

        if source == RRWebIncrementalSource.MUTATION:
            self._process_mutation(event)
            return None
        if source == RRWebIncrementalSource.MOUSE_INTERACTION:
            return self._process_mouse_interaction(event)
        if source == RRWebIncrementalSource.INPUT:
            return self._process_input(event)
        if source == RRWebIncrementalSource.SCROLL:
            return self._process_scroll(event)
        return None

    def _process_mutation(self, event: RRWebEvent) -> None:
        """Index nodes added after the full snapshot."""
        for add in event.data.get("adds", []):
            node = add.get("node", {})
            parent = self._nodes.get(add.get("parentId"))
            path = parent.path + (parent.segment(),) if parent else ()
            if node:
                self._index_node(node, path)

        for removal in event.data.get("removes", []):
            self._nodes.pop(removal.get("id"), None)

    def _target(self, node_id: Optional[int]) -> TargetDescriptor:
        info = self._nodes.get(node_id)
        if info is None:
            # Unknown node: address it by its rrweb id
            return TargetDescriptor(tag_name="*", attributes={"data-rrweb-id": str(node_id)})
        return info.to_target()

    def _process_mouse_interaction(self, event: RRWebEvent) -> Optional[Interaction]:
        data = event.data
        node_id = data.get("id")
        try:
            event_type = MOUSE_EVENT_TYPES.get(MouseInteractionType(data.get("type")))
        except ValueError:
            return None
        if node_id is None or event_type is None:
            return None

        payload = {"x": data.get("x", 0), "y": data.get("y", 0)}
        if event_type in (EventType.CLICK, EventType.DBLCLICK, EventType.CONTEXTMENU):
            payload["button"] = 2 if event_type == EventType.CONTEXTMENU else 0

        return Interaction(
            type=event_type,
            target=self._target(node_id),
            data=payload,
            timestamp=event.timestamp,
            context=self._context,
        )

    def _process_input(self, event: RRWebEvent) -> Optional[Interaction]:
        data = event.data
        node_id = data.get("id")
        if node_id is None:
            return None

        target = self._target(node_id)
        text = data.get("text", "")

        # Checkboxes and radios
        if data.get("isChecked") is not None:
            checked = bool(data["isChecked"])
            return Interaction(
                type=EventType.CHANGE,
                target=target,
                data={"value": "checked" if checked else "unchecked", "checked": checked},
                timestamp=event.timestamp,
                context=self._context,
            )

        if target.tag_name == "select":
            return Interaction(
                type=EventType.CHANGE,
                target=target,
                data={"value": text, "selected_options": [text] if text else []},
                timestamp=event.timestamp,
                context=self._context,
            )

        return Interaction(
            type=EventType.INPUT,
            target=target,
            data={"value": text},
            timestamp=event.timestamp,
            context=self._context,
        )

    def _process_scroll(self, event: RRWebEvent) -> Optional[Interaction]:
        data = event.data
        x = data.get("x", 0)
        y = data.get("y", 0)

        dx = abs(x - self._last_scroll[0])
        dy = abs(y - self._last_scroll[1])
        if dx < self.min_scroll_distance and dy < self.min_scroll_distance:
            return None
        self._last_scroll = (x, y)

        info = self._nodes.get(data.get("id"))
        is_window = info is None or info.tag_name in ("html", "body")
        return Interaction(
            type=EventType.SCROLL,
            target=None if is_window else info.to_target(),
            data={"x": x, "y": y, "element": "window" if is_window else "element"},
            timestamp=event.timestamp,
            context=self._context,
        )

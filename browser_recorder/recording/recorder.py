"""Event recorder - converts page interactions into canonical recorded events."""

import time
import uuid
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from ..exceptions import (
    AlreadyRecordingError,
    EventNotFoundError,
    NotRecordingError,
    RecorderError,
)
from ..selector.engine import MatchCounter, SelectorEngine
from .models import (
    CONTINUOUS_EVENT_TYPES,
    EventType,
    Interaction,
    RecordedEvent,
    TargetDescriptor,
)
from .options import RecordingOptions

logger = structlog.get_logger()

RecorderListener = Callable[[str, Any], None]

# Fields a user edit may change; identity and ordering are owned by the recorder
EDITABLE_FIELDS = frozenset({"data", "metadata", "target", "context", "timestamp"})


class RecorderState(str, Enum):
    """Recorder lifecycle states."""

    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"


class EventRecorder:
    """Push-based recorder with an Idle → Recording ⇄ Paused → Stopped lifecycle.

    While recording, each interaction is filtered against the ignored event
    types, capped at ``max_events``, resolved to a selector through the
    selector engine and debounced per (target, type) for continuous
    interactions.

    Example:
        recorder = EventRecorder()
        recorder.start(RecordingOptions(debounce_ms=200))
        recorder.handle_interaction(Interaction(type="click", target=button))
        events = recorder.stop()
    """

    def __init__(
        self,
        selector_engine: Optional[SelectorEngine] = None,
        matcher: Optional[MatchCounter] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """Initialize the recorder.

        Args:
            selector_engine: Engine used to resolve targets
            matcher: Optional uniqueness oracle passed to the engine
            id_factory: Produces event ids (uuid4 by default)
            clock: Returns the current time in milliseconds
        """
        self.selector_engine = selector_engine or SelectorEngine()
        self.matcher = matcher
        self._id_factory = id_factory or (lambda: f"evt_{uuid.uuid4().hex[:12]}")
        self._clock = clock or (lambda: int(time.time() * 1000))
        self.log = logger.bind(component="event_recorder")

        self._state = RecorderState.IDLE
        self._options = RecordingOptions()
        self._events: list[RecordedEvent] = []
        self._sequence = 0
        self._dropped = 0
        self._listeners: list[RecorderListener] = []
        # (target key, type) -> id of the latest event for that pair
        self._latest: dict[tuple[str, EventType], str] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def options(self) -> RecordingOptions:
        return self._options

    @property
    def is_active(self) -> bool:
        return self._state in (RecorderState.RECORDING, RecorderState.PAUSED)

    @property
    def events(self) -> list[RecordedEvent]:
        """Snapshot of captured events in sequence order."""
        return list(self._events)

    @property
    def dropped_count(self) -> int:
        """Interactions dropped because ``max_events`` was reached."""
        return self._dropped

    def start(self, options: Optional[RecordingOptions] = None) -> None:
        """Begin a new recording.

        Raises:
            AlreadyRecordingError: If a recording is active
        """
        if self._state not in (RecorderState.IDLE, RecorderState.STOPPED):
            raise AlreadyRecordingError(
                f"Cannot start recording while {self._state.value}",
                state=self._state.value,
            )

        self._options = options or RecordingOptions()
        self._events = []
        self._sequence = 0
        self._dropped = 0
        self._latest = {}
        self._set_state(RecorderState.RECORDING)

        self.log.info(
            "Recording started",
            debounce_ms=self._options.debounce_ms,
            max_events=self._options.max_events,
            ignored_events=[e.value for e in self._options.ignored_events],
        )

    def pause(self) -> None:
        """Pause capture, keeping captured events.

        Raises:
            NotRecordingError: If not recording
        """
        if self._state != RecorderState.RECORDING:
            raise NotRecordingError(f"Cannot pause while {self._state.value}", state=self._state.value)
        self._set_state(RecorderState.PAUSED)

    def resume(self) -> None:
        """Resume a paused recording.

        Raises:
            NotRecordingError: If not paused
        """
        if self._state != RecorderState.PAUSED:
            raise NotRecordingError(f"Cannot resume while {self._state.value}", state=self._state.value)
        self._set_state(RecorderState.RECORDING)

    def stop(self) -> list[RecordedEvent]:
        """Finish the recording.

        Returns:
            Every captured event, ordered by sequence

        Raises:
            NotRecordingError: If no recording is active
        """
        if not self.is_active:
            raise NotRecordingError(f"Cannot stop while {self._state.value}", state=self._state.value)

        self._set_state(RecorderState.STOPPED)
        events = sorted(self._events, key=lambda e: e.sequence)

        self.log.info(
            "Recording stopped",
            event_count=len(events),
            dropped=self._dropped,
        )
        return events

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def handle_interaction(self, interaction: Interaction) -> Optional[RecordedEvent]:
        """Convert one page interaction into a recorded event.

        Args:
            interaction: Notification from the page surface

        Returns:
            The new or updated event, or None when the interaction was ignored
        """
        if self._state != RecorderState.RECORDING:
            return None

        event_type = interaction.type
        if event_type in self._options.ignored_events:
            return None

        timestamp = interaction.timestamp if interaction.timestamp is not None else self._clock()
        target, selector_meta = self._resolve_target(interaction.target)

        if event_type in CONTINUOUS_EVENT_TYPES:
            debounced = self._debounce(event_type, target, interaction, timestamp)
            if debounced is not None:
                return debounced

        if len(self._events) >= self._options.max_events:
            self._dropped += 1
            self.log.warning(
                "Max events reached, dropping interaction",
                max_events=self._options.max_events,
                event_type=event_type.value,
                dropped=self._dropped,
            )
            return None

        self._sequence += 1
        event = RecordedEvent(
            id=self._id_factory(),
            sequence=self._sequence,
            timestamp=timestamp,
            type=event_type,
            target=target,
            data=dict(interaction.data),
            context=interaction.context,
            metadata=selector_meta,
        )
        self._events.append(event)
        if event_type in CONTINUOUS_EVENT_TYPES:
            self._latest[(event.target_key, event_type)] = event.id
        self._notify("event-added", event)
        return event

    def _debounce(
        self,
        event_type: EventType,
        target: TargetDescriptor,
        interaction: Interaction,
        timestamp: int,
    ) -> Optional[RecordedEvent]:
        """Fold a continuous interaction into the latest event of its pair.

        Other events may lie in between, so typing that interleaves
        keydown, input and keyup still collapses to one input event.
        """
        key = target.selector or target.fingerprint()
        event_id = self._latest.get((key, event_type))
        if event_id is None:
            return None

        position = self._position(event_id)
        if position is None or self._events[position].target_key != key:
            del self._latest[(key, event_type)]
            return None

        latest = self._events[position]
        if timestamp - latest.timestamp > self._options.debounce_ms:
            return None

        updated = replace(
            latest,
            timestamp=timestamp,
            data=dict(interaction.data),
            context=interaction.context,
        )
        self._events[position] = updated
        self._notify("event-updated", updated)
        return updated

    def _resolve_target(self, target: Optional[TargetDescriptor]) -> tuple[TargetDescriptor, dict]:
        """Attach synthesized selectors to the target snapshot."""
        if target is None or target.is_document:
            return target or TargetDescriptor.document(), {"annotations": []}

        config = self._options.selector_options.to_selector_config()
        result = self.selector_engine.synthesize(target, config, matcher=self.matcher)

        resolved = replace(
            target,
            selector=result.primary.value,
            alternative_selectors=tuple(c.value for c in result.alternatives),
        )
        metadata: dict[str, Any] = {
            "reliability": result.primary.reliability,
            "strategy": result.primary.strategy.value,
            "annotations": [],
        }
        if result.degraded is not None:
            metadata["selector_degraded"] = result.degraded.message
        if result.primary.reliability < self._options.low_reliability_threshold:
            metadata["annotations"].append("low-reliability-selector")
            self.log.warning(
                "Low reliability selector",
                selector=result.primary.value,
                reliability=result.primary.reliability,
                threshold=self._options.low_reliability_threshold,
            )
        return resolved, metadata

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def update_event(self, event_id: str, **changes) -> RecordedEvent:
        """Replace an event with an edited copy.

        Args:
            event_id: Id of the event to edit
            **changes: New values for editable fields

        Returns:
            The edited event

        Raises:
            EventNotFoundError: If no event has that id
            RecorderError: If a non-editable field is changed
        """
        forbidden = set(changes) - EDITABLE_FIELDS
        if forbidden:
            raise RecorderError(f"Fields cannot be edited: {sorted(forbidden)}")

        position = self._position(event_id)
        if position is None:
            raise EventNotFoundError(event_id)

        updated = replace(self._events[position], **changes)
        self._events[position] = updated
        self._notify("event-updated", updated)
        return updated

    def remove_event(self, event_id: str) -> RecordedEvent:
        """Remove an event from the recording.

        Raises:
            EventNotFoundError: If no event has that id
        """
        position = self._position(event_id)
        if position is None:
            raise EventNotFoundError(event_id)

        event = self._events.pop(position)
        self._notify("event-removed", event)
        return event

    def _position(self, event_id: str) -> Optional[int]:
        for position in range(len(self._events) - 1, -1, -1):
            if self._events[position].id == event_id:
                return position
        return None

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: RecorderListener) -> Callable[[], None]:
        """Register a listener for recorder notifications.

        Listeners receive ``(kind, payload)`` where kind is one of
        ``event-added``, ``event-updated``, ``event-removed`` or
        ``state-changed``.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: RecorderState) -> None:
        previous = self._state
        self._state = state
        self.log.debug("Recorder state changed", previous=previous.value, state=state.value)
        self._notify("state-changed", state)

    def _notify(self, kind: str, payload: Any) -> None:
        for listener in list(self._listeners):
            listener(kind, payload)

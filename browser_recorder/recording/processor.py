"""Event processor - deterministic normalization of recorded events."""

from dataclasses import replace
from typing import Iterable, Optional

import structlog

from .models import EventType, ProcessingResult, RecordedEvent

logger = structlog.get_logger()

DEDUPE = "dedupe"
COALESCE = "coalesce"
DROP_TRANSIENT = "drop_transient"

COALESCIBLE_TYPES = frozenset({EventType.INPUT, EventType.CHANGE})
TRANSIENT_TYPES = frozenset({EventType.SCROLL, EventType.WHEEL})


class EventProcessor:
    """Normalizes a raw recording in three fixed passes.

    1. dedupe: adjacent events with the same target, type and value inside
       the debounce window collapse to the first one
    2. coalesce: adjacent input/change runs on one target collapse to the
       last event, tagged with ``metadata["coalesced"] = {count, span_ms}``
    3. drop transient: adjacent scroll (or wheel) runs on one target keep
       only the last event

    ``process`` is a pure function of its input: the same list always yields
    the same result.

    Example:
        processor = EventProcessor(debounce_ms=300)
        result = processor.process(events)
        print(result.original_count, result.processed_count, result.optimizations)
    """

    def __init__(self, debounce_ms: int = 300):
        """Initialize the processor.

        Args:
            debounce_ms: Window used by the dedupe pass
        """
        self.debounce_ms = debounce_ms
        self.log = logger.bind(component="event_processor")

    def process(self, events: Iterable[RecordedEvent]) -> ProcessingResult:
        """Run every pass over the events.

        Args:
            events: Raw recorded events (any order; sorted by sequence first)

        Returns:
            ProcessingResult with the processed events
        """
        ordered = sorted(events, key=lambda e: e.sequence)
        original_count = len(ordered)

        removed: dict[str, int] = {}
        optimizations: list[str] = []
        current = ordered

        for kind, step in (
            (DEDUPE, self.dedupe),
            (COALESCE, self.coalesce),
            (DROP_TRANSIENT, self.drop_transient),
        ):
            result = step(current)
            delta = len(current) - len(result)
            if delta:
                removed[kind] = delta
                optimizations.append(kind)
            current = result

        self.log.debug(
            "Events processed",
            original_count=original_count,
            processed_count=len(current),
            optimizations=optimizations,
        )

        return ProcessingResult(
            original_count=original_count,
            processed_count=len(current),
            optimizations=tuple(optimizations),
            removed=removed,
            events=tuple(current),
        )

    def dedupe(self, events: list[RecordedEvent]) -> list[RecordedEvent]:
        """Collapse adjacent identical events inside the debounce window.

        The window is measured between neighbouring events, so a steady
        stream of repeats collapses to its first event.
        """
        kept: list[RecordedEvent] = []
        previous: Optional[RecordedEvent] = None
        for event in events:
            if not (
                previous is not None
                and previous.type == event.type
                and previous.target_key == event.target_key
                and previous.value == event.value
                and event.timestamp - previous.timestamp <= self.debounce_ms
            ):
                kept.append(event)
            previous = event
        return kept

    def coalesce(self, events: list[RecordedEvent]) -> list[RecordedEvent]:
        """Collapse input/change runs on one target into the terminal event."""
        result: list[RecordedEvent] = []
        for run in _runs(events, COALESCIBLE_TYPES, same_type=False):
            terminal = run[-1]
            if len(run) > 1:
                metadata = dict(terminal.metadata)
                metadata["coalesced"] = {
                    "count": len(run),
                    "span_ms": terminal.timestamp - run[0].timestamp,
                }
                terminal = replace(terminal, metadata=metadata)
            result.append(terminal)
        return result

    def drop_transient(self, events: list[RecordedEvent]) -> list[RecordedEvent]:
        """Keep only the last event of each scroll/wheel run on one target."""
        return [run[-1] for run in _runs(events, TRANSIENT_TYPES, same_type=True)]


def _runs(
    events: list[RecordedEvent],
    types: frozenset,
    same_type: bool,
) -> list[list[RecordedEvent]]:
    """Split events into runs of adjacent, same-target events of ``types``.

    Events outside ``types`` form single-element runs.
    """
    runs: list[list[RecordedEvent]] = []
    for event in events:
        if runs and event.type in types:
            previous = runs[-1][-1]
            if (
                previous.type in types
                and previous.target_key == event.target_key
                and (not same_type or previous.type == event.type)
            ):
                runs[-1].append(event)
                continue
        runs.append([event])
    return runs

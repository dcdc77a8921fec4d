"""Action grouper - partitions processed events into semantic user actions."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence
from urllib.parse import urlparse

import structlog

from .models import (
    KEYBOARD_EVENT_TYPES,
    EventGroup,
    EventType,
    GroupActionType,
    RecordedEvent,
)

logger = structlog.get_logger()

FORM_EVENT_TYPES = frozenset({
    EventType.INPUT,
    EventType.CHANGE,
    EventType.FOCUS,
    EventType.BLUR,
    EventType.SELECT,
})

# Form events that change a value (focus/blur alone do not)
VALUE_EVENT_TYPES = frozenset({EventType.INPUT, EventType.CHANGE, EventType.SELECT, EventType.SUBMIT})

ACTIVATION_EVENT_TYPES = frozenset({
    EventType.SUBMIT,
    EventType.CLICK,
    EventType.DBLCLICK,
    EventType.CONTEXTMENU,
})

ATTACHING_EVENT_TYPES = frozenset({EventType.ASSERTION, EventType.WAIT})

CATEGORY_ACTION_TYPES: dict[str, GroupActionType] = {
    "click": GroupActionType.CLICK_SEQUENCE,
    "keyboard": GroupActionType.KEYBOARD,
    "scroll": GroupActionType.SCROLL,
    "form": GroupActionType.FORM_INTERACTION,
    "assertion": GroupActionType.ASSERTION,
    "wait": GroupActionType.WAIT,
    "custom": GroupActionType.CUSTOM,
}


def event_category(event_type: EventType) -> str:
    """Coarse category used to pick a group's dominant action."""
    if event_type == EventType.NAVIGATION:
        return "navigation"
    if event_type in FORM_EVENT_TYPES or event_type == EventType.SUBMIT:
        return "form"
    if event_type in (EventType.CLICK, EventType.DBLCLICK, EventType.CONTEXTMENU):
        return "click"
    if event_type in KEYBOARD_EVENT_TYPES:
        return "keyboard"
    if event_type in (EventType.SCROLL, EventType.WHEEL):
        return "scroll"
    if event_type == EventType.ASSERTION:
        return "assertion"
    if event_type == EventType.WAIT:
        return "wait"
    return "custom"


@dataclass
class _OpenGroup:
    events: list[RecordedEvent] = field(default_factory=list)
    scope: Optional[str] = None
    scoped: bool = False
    navigation: bool = False
    closed: bool = False

    def add(self, event: RecordedEvent) -> None:
        if event.type == EventType.NAVIGATION and not self.events:
            self.navigation = True
        elif not self.scoped and event.type not in ATTACHING_EVENT_TYPES:
            self.scope = event.target.form_scope()
            self.scoped = True
        self.events.append(event)
        if event.type == EventType.SUBMIT:
            self.closed = True


class ActionGrouper:
    """Partitions a processed event list into ``EventGroup``s.

    Single forward pass with one event of lookahead. Rules, in order:

    - a navigation always starts a new group
    - assertion and wait events attach to the open group
    - a submit terminates its group
    - form events sharing the open group's form scope stay together
    - a submit or click on a different scope closes the open group, unless
      the very next event is a navigation it triggered
    - everything else joins when the scope matches

    Every event lands in exactly one group and groups keep the original
    order, so flattening the groups yields the input.
    """

    def __init__(self):
        """Initialize the grouper."""
        self.log = logger.bind(component="action_grouper")

    def group(self, events: Sequence[RecordedEvent]) -> list[EventGroup]:
        """Group processed events into semantic actions.

        Args:
            events: Processed events in order

        Returns:
            Groups partitioning the input
        """
        events = list(events)
        open_groups: list[_OpenGroup] = []
        current: Optional[_OpenGroup] = None

        for position, event in enumerate(events):
            next_event = events[position + 1] if position + 1 < len(events) else None
            if current is None or not self._continues(current, event, next_event):
                current = _OpenGroup()
                open_groups.append(current)
            current.add(event)

        groups = [self._build_group(index, g) for index, g in enumerate(open_groups)]

        self.log.debug(
            "Events grouped",
            event_count=len(events),
            group_count=len(groups),
            action_types=[g.action_type.value for g in groups],
        )
        return groups

    def _continues(
        self,
        current: _OpenGroup,
        event: RecordedEvent,
        next_event: Optional[RecordedEvent],
    ) -> bool:
        """Whether ``event`` belongs to the open group."""
        if event.type == EventType.NAVIGATION:
            return False
        if event.type in ATTACHING_EVENT_TYPES:
            return True
        if current.closed:
            return False

        same_scope = not current.navigation and (
            not current.scoped or current.scope == event.target.form_scope()
        )

        if event.type in FORM_EVENT_TYPES:
            return same_scope

        if event.type in ACTIVATION_EVENT_TYPES:
            if same_scope:
                return True
            # The click that triggers the next page load belongs to this action
            return next_event is not None and next_event.type == EventType.NAVIGATION

        return same_scope

    def _build_group(self, index: int, group: _OpenGroup) -> EventGroup:
        action_type = self._action_type(group)
        name, description = self._describe(action_type, group)
        return EventGroup(
            id=f"group-{index + 1}",
            action_type=action_type,
            name=name,
            description=description,
            events=tuple(group.events),
            scope=group.scope,
        )

    @staticmethod
    def _action_type(group: _OpenGroup) -> GroupActionType:
        if group.navigation:
            return GroupActionType.NAVIGATION
        types = [e.type for e in group.events]
        if any(t in VALUE_EVENT_TYPES for t in types):
            return GroupActionType.FORM_INTERACTION

        categories = [event_category(t) for t in types]
        significant = [c for c in categories if c not in ("assertion", "wait")] or categories
        counts = Counter(significant)
        # Ties go to the category seen first
        dominant = max(significant, key=lambda c: (counts[c], -significant.index(c)))
        return CATEGORY_ACTION_TYPES.get(dominant, GroupActionType.CUSTOM)

    def _describe(self, action_type: GroupActionType, group: _OpenGroup) -> tuple[str, str]:
        events = group.events
        count = len(events)
        plural = "s" if count != 1 else ""

        if action_type == GroupActionType.NAVIGATION:
            url = events[0].data.get("url") or events[0].context.url
            host = urlparse(url).netloc or url or "page"
            return f"Navigate to {host}", f"Open {url} ({count} event{plural})"

        if action_type == GroupActionType.FORM_INTERACTION:
            label = _scope_label(group.scope)
            fields = len({e.target_key for e in events if e.type in FORM_EVENT_TYPES})
            submitted = any(e.type == EventType.SUBMIT for e in events)
            name = f"Fill {label} form" if label else "Fill form"
            description = f"{fields} field{'s' if fields != 1 else ''}"
            if submitted:
                name = f"Submit {label} form" if label else "Submit form"
                description += " and submit"
            return name, f"{description} ({count} event{plural})"

        if action_type == GroupActionType.CLICK_SEQUENCE:
            clicks = [e for e in events if event_category(e.type) == "click"]
            if len(clicks) == 1:
                return f"Click {_target_label(clicks[0])}", f"{count} event{plural}"
            return f"Click sequence ({len(clicks)} clicks)", f"{count} event{plural}"

        names = {
            GroupActionType.KEYBOARD: "Keyboard input",
            GroupActionType.SCROLL: "Scroll page",
            GroupActionType.ASSERTION: "Verify page state",
            GroupActionType.WAIT: "Wait",
            GroupActionType.CUSTOM: "Custom actions",
        }
        return names[action_type], f"{count} event{plural}"


def _scope_label(scope: Optional[str]) -> str:
    """Readable name for a form scope key such as ``form#login``."""
    if not scope:
        return ""
    if "#" in scope:
        return scope.split("#", 1)[1]
    if '="' in scope:
        return scope.split('="', 1)[1].rstrip('"]')
    return ""


def _target_label(event: RecordedEvent) -> str:
    text = " ".join(event.target.text_content.split())
    if text and len(text) <= 30:
        return f"'{text}'"
    return event.target.selector or event.target.tag_name


def flatten(groups: Sequence[EventGroup]) -> list[RecordedEvent]:
    """Concatenate group events back into one list."""
    return [event for group in groups for event in group.events]

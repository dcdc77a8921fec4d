"""Base generator class for test code generation."""

import re
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence
from urllib.parse import urljoin, urlparse

import structlog

from ..exceptions import GenerationError
from ..recording.grouper import flatten
from ..recording.models import EventGroup, EventType, GroupActionType, RecordedEvent
from ..selector.engine import CSS_IDENTIFIER, escape_attribute, is_dynamic_id, normalize_text
from ..selector.models import TEST_ID_ATTRIBUTES, TargetDescriptor
from ..templates.engine import TemplateEngine
from .formatters import CodeFormatter, ImportsManager
from .formatters.imports_manager import SymbolImports
from .models import (
    FILE_EXTENSIONS,
    CodeGenerationConfig,
    FileType,
    Framework,
    GeneratedTestFile,
    Language,
    SelectorOptimization,
)

logger = structlog.get_logger()

# Every event type maps to one handler, ``emit_<name>``
EVENT_HANDLERS: dict[EventType, str] = {
    EventType.NAVIGATION: "navigation",
    EventType.CLICK: "click",
    EventType.DBLCLICK: "dblclick",
    EventType.INPUT: "input",
    EventType.CHANGE: "change",
    EventType.KEYDOWN: "keydown",
    EventType.KEYUP: "keyup",
    EventType.KEYPRESS: "keypress",
    EventType.SUBMIT: "submit",
    EventType.SCROLL: "scroll",
    EventType.WAIT: "wait",
    EventType.ASSERTION: "assertion",
    EventType.FOCUS: "focus",
    EventType.BLUR: "blur",
    EventType.SELECT: "select",
    EventType.CONTEXTMENU: "contextmenu",
    EventType.WHEEL: "wheel",
    EventType.CUSTOM: "custom",
}

# Event types that cannot be emitted without an element selector
TARGETED_EVENT_TYPES = frozenset({
    EventType.CLICK,
    EventType.DBLCLICK,
    EventType.INPUT,
    EventType.CHANGE,
    EventType.SUBMIT,
    EventType.FOCUS,
    EventType.BLUR,
    EventType.SELECT,
    EventType.CONTEXTMENU,
})

# Idle time before the next action that earns an explicit wait
SMART_WAIT_THRESHOLD_MS = 1500
MAX_SMART_WAIT_MS = 5000

CLICKABLE_TEXT_TAGS = ("a", "button")

# Recorded assertion kinds accepted under their extension names
ASSERTION_ALIASES = {
    "text-contains": "text",
    "text-equals": "text_equals",
    "value-equals": "value",
    "url-equals": "url",
    "title-equals": "title",
}


def file_names(event: RecordedEvent) -> list[str]:
    """Names of the files chosen in a file input event.

    Browsers only expose a fake path as the input value, so the recorded
    ``files`` list wins and the value's basename is the fallback.
    """
    names = []
    for item in event.data.get("files") or []:
        name = item.get("name") if isinstance(item, dict) else item
        if name:
            names.append(str(name))
    if not names and event.data.get("value"):
        names.append(re.split(r"[\\/]", str(event.data["value"]))[-1])
    return names


def assess_reliability(selector: str) -> float:
    """Estimate how stable a selector string is."""
    if not selector:
        return 0.0
    if any(f"[{attr}=" in selector for attr in TEST_ID_ATTRIBUTES):
        return 0.9
    if selector.startswith(("//", "/html", "xpath=")):
        return 0.3
    if ":nth-child" in selector or ":nth-of-type" in selector:
        return 0.4
    if re.match(r"^#[A-Za-z_][\w-]*$", selector):
        return 0.85
    if "[aria-label=" in selector:
        return 0.8
    if selector.startswith("text=") or "::-p-text(" in selector:
        return 0.7
    return 0.5


class BaseGenerator(ABC):
    """Base class for framework generators.

    Each framework/language combination supplies statement syntax through
    the ``emit_*`` handlers and ``assert_*`` helpers. The traversal from
    groups to events to statements, smart waits, group assertions and
    page objects are shared.

    A handler returning None means the framework cannot express the event;
    the event is replaced by an inert comment and a diagnostic is recorded.
    """

    # Override these in subclasses
    framework: Framework
    languages: tuple[Language, ...] = ()
    default_templates: dict[Language, str] = {}
    handle: Optional[str] = "page"
    handle_type: str = "Page"
    relative_urls: bool = True
    async_methods: bool = True

    symbol_imports: SymbolImports = {}

    def __init__(
        self,
        config: Optional[CodeGenerationConfig] = None,
        template_engine: Optional[TemplateEngine] = None,
    ):
        """Initialize generator with config.

        Args:
            config: Generation configuration
            template_engine: Engine used to render files
        """
        self.config = config or CodeGenerationConfig(framework=self.framework, language=self.languages[0])
        self.language: Language = self.config.language
        if self.language not in self.languages:
            raise ValueError(f"{type(self).__name__} does not support {self.language}")

        self.template_engine = template_engine or TemplateEngine()
        self.formatter = CodeFormatter(self.language)
        self.imports = ImportsManager(self.language, self.framework)
        self.diagnostics: list[str] = []
        self.log = logger.bind(component=f"{self.framework.value}_generator", language=self.language.value)

        self._event_code: dict[str, list[str]] = {}

    # ------------------------------------------------------------------
    # Language helpers
    # ------------------------------------------------------------------

    @property
    def is_python(self) -> bool:
        return self.language == Language.PYTHON

    @property
    def is_typescript(self) -> bool:
        return self.language == Language.TYPESCRIPT

    @property
    def extension(self) -> str:
        return FILE_EXTENSIONS[self.language].lstrip(".")

    @property
    def self_reference(self) -> str:
        return "self" if self.is_python else "this"

    def q(self, value: Any) -> str:
        """Quote a value as a string literal."""
        return self.formatter.format_string_literal(str(value))

    def comment(self, text: str) -> str:
        return self.formatter.format_comment(text)

    def sanitize_name(self, name: str) -> str:
        """Convert name to valid identifier."""
        # Remove special characters
        sanitized = re.sub(r"[^a-zA-Z0-9_]", "_", name)
        # Ensure starts with letter or underscore
        if sanitized and sanitized[0].isdigit():
            sanitized = "_" + sanitized
        return sanitized.lower()

    def to_camel_case(self, name: str) -> str:
        """Convert name to camelCase."""
        words = re.sub(r"[^a-zA-Z0-9]", " ", name).split()
        if not words:
            return "action"
        camel = words[0].lower() + "".join(w[:1].upper() + w[1:].lower() for w in words[1:])
        return f"_{camel}" if camel[0].isdigit() else camel

    def to_pascal_case(self, name: str) -> str:
        """Convert name to PascalCase."""
        words = re.sub(r"[^a-zA-Z0-9]", " ", name).split()
        pascal = "".join(w[:1].upper() + w[1:].lower() for w in words) if words else "Recorded"
        return f"_{pascal}" if pascal[0].isdigit() else pascal

    def to_snake_case(self, name: str) -> str:
        """Convert name to snake_case."""
        # Insert underscore before capitals
        s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
        s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
        # Replace non-alphanumeric with underscore
        s3 = re.sub(r"[^a-zA-Z0-9]", "_", s2)
        # Clean up multiple underscores
        snake = re.sub(r"_+", "_", s3).lower().strip("_")
        if snake and snake[0].isdigit():
            snake = f"_{snake}"
        return snake

    def escape_string(self, value: str) -> str:
        """Escape text embedded in a quoted literal of the output template."""
        if value is None:
            return ""
        escaped = value.replace("\\", "\\\\").replace("\n", " ")
        if self.is_python:
            return escaped.replace('"', '\\"')
        return escaped.replace("'", "\\'")

    def member_name(self, name: str) -> str:
        """Method/attribute name in the output language's convention."""
        return self.to_snake_case(name) or "action" if self.is_python else self.to_camel_case(name)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def generate_test_files(self, groups: Sequence[EventGroup]) -> list[GeneratedTestFile]:
        """Generate every file for a grouped recording.

        Args:
            groups: Action groups from the grouper

        Returns:
            Main test file first, then page objects, config and helpers

        Raises:
            GenerationError: If a handler fails unexpectedly
        """
        groups = list(groups)
        self.diagnostics = []
        self._event_code = {}

        body = self.generate_test_body(groups)
        files = [GeneratedTestFile(self.test_filename(), self.render_test_file(body), FileType.TEST)]

        if self.config.page_object_model:
            files.extend(self.generate_page_objects(groups))
        if self.config.include_config:
            config_file = self.generate_config_file()
            if config_file is not None:
                files.append(config_file)
        if self.config.include_helpers:
            files.extend(self.generate_helpers())

        self.log.debug(
            "Test files generated",
            group_count=len(groups),
            file_count=len(files),
            diagnostics=len(self.diagnostics),
        )
        return files

    def test_filename(self) -> str:
        return f"test.spec.{self.extension}"

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def generate_test_body(self, groups: Sequence[EventGroup]) -> str:
        """Statements for every group, in order."""
        events = flatten(groups)
        following = {
            event.id: events[position + 1] if position + 1 < len(events) else None
            for position, event in enumerate(events)
        }

        lines: list[str] = []
        for group in groups:
            if lines:
                lines.append("")
            if self.config.include_comments:
                lines.append(self.comment(group.name))
            for event in group.events:
                lines.extend(self.generate_event_code(event))
                lines.extend(self.smart_wait(event, following.get(event.id)))
            if self.config.include_assertions:
                lines.extend(self.generate_group_assertions(group))
        return "\n".join(lines)

    def generate_event_code(self, event: RecordedEvent) -> list[str]:
        """Statements for a single event.

        Raises:
            GenerationError: If the handler raises unexpectedly
        """
        if event.id in self._event_code:
            return list(self._event_code[event.id])

        try:
            selector = ""
            if not event.target.is_document:
                selector = self.optimize_selector(event.target.selector, event.target).optimized

            if event.type in TARGETED_EVENT_TYPES and not selector:
                lines = [self.comment(f"No selector for {event.type.value} event ({event.id}), skipped")]
                self._diagnose(event, "no usable selector")
                self._event_code[event.id] = lines
                return list(lines)

            handler = getattr(self, f"emit_{EVENT_HANDLERS[event.type]}")
            if event.type in (EventType.INPUT, EventType.CHANGE) and event.target.input_type == "file":
                handler = self.emit_file_upload
            statements = handler(event, selector)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(
                f"Failed to generate {event.type.value} event: {e}",
                event_id=event.id,
                sequence=event.sequence,
            ) from e

        if statements is None:
            lines = [self.comment(f"Unsupported {event.type.value} event ({event.id}) skipped")]
            self._diagnose(event, f"{event.type.value} is not supported by {self.framework.value}")
        else:
            lines = []
            if self.config.include_comments:
                description = self.describe_event(event)
                if description:
                    lines.append(self.comment(description))
                if "low-reliability-selector" in event.metadata.get("annotations", ()):
                    lines.append(self.comment("Low-reliability selector, consider adding a data-testid"))
            lines.extend(statements)

        if event.metadata.get("selector_degraded"):
            self._diagnose(event, f"degraded selector {event.target.selector}")

        self._event_code[event.id] = lines
        return list(lines)

    def _diagnose(self, event: RecordedEvent, message: str) -> None:
        diagnostic = f"Event {event.id} (#{event.sequence}): {message}"
        self.diagnostics.append(diagnostic)
        self.log.warning(
            "Generation diagnostic",
            event_id=event.id,
            sequence=event.sequence,
            event_type=event.type.value,
            message=message,
        )

    def describe_event(self, event: RecordedEvent) -> Optional[str]:
        """Comment for user-visible actions."""
        label = self.target_label(event.target)
        if event.type == EventType.CLICK:
            return f"Click {label}"
        if event.type == EventType.DBLCLICK:
            return f"Double-click {label}"
        if event.type == EventType.CONTEXTMENU:
            return f"Right-click {label}"
        if event.type in (EventType.INPUT, EventType.CHANGE):
            if "checked" in event.data:
                return f"{'Check' if event.data['checked'] else 'Uncheck'} {label}"
            if event.target.tag_name == "select":
                return f"Select option in {label}"
            if event.target.input_type == "file":
                return f"Upload files to {label}"
            return f"Fill {label}"
        if event.type == EventType.SUBMIT:
            return f"Submit {label}"
        return None

    @staticmethod
    def target_label(target: TargetDescriptor) -> str:
        text = normalize_text(target.text_content)
        if text and len(text) <= 30:
            return f"'{text}'"
        for attr in ("aria-label", "name", "placeholder", "id"):
            if target.attributes.get(attr):
                return target.attributes[attr]
        return target.selector or target.tag_name

    def smart_wait(self, event: RecordedEvent, next_event: Optional[RecordedEvent]) -> list[str]:
        """Explicit wait when the user idled before the next action."""
        if next_event is None or EventType.WAIT in (event.type, next_event.type):
            return []
        if next_event.type == EventType.NAVIGATION:
            return []

        span = (next_event.metadata.get("coalesced") or {}).get("span_ms", 0)
        idle = next_event.timestamp - span - event.timestamp
        if idle < SMART_WAIT_THRESHOLD_MS:
            return []
        return self.wait_for_timeout(min(idle, MAX_SMART_WAIT_MS)) or []

    # ------------------------------------------------------------------
    # Selectors and URLs
    # ------------------------------------------------------------------

    def optimize_selector(self, selector: str, target: TargetDescriptor) -> SelectorOptimization:
        """Pick the selector emitted for a target.

        Prefers test ids, then stable ids, then visible text on links and
        buttons where the framework has a text selector, then the recorded
        selector (or a usable alternative when the framework cannot run it).
        """
        attributes = target.attributes
        for attr in TEST_ID_ATTRIBUTES:
            if attributes.get(attr):
                return SelectorOptimization(
                    selector, f'[{attr}="{escape_attribute(attributes[attr])}"]', "testid", 0.9
                )

        element_id = attributes.get("id", "")
        if element_id and not is_dynamic_id(element_id) and CSS_IDENTIFIER.match(element_id):
            return SelectorOptimization(selector, f"#{element_id}", "id", 0.85)

        text = normalize_text(target.text_content)
        if target.tag_name in CLICKABLE_TEXT_TAGS and text and len(text) <= 50:
            text_selector = self.text_selector(target.tag_name, text)
            if text_selector:
                return SelectorOptimization(selector, text_selector, "text", 0.7)

        if selector and self.accepts_selector(selector):
            return SelectorOptimization(selector, selector, "original", assess_reliability(selector))

        for alternative in target.alternative_selectors:
            if self.accepts_selector(alternative):
                return SelectorOptimization(selector, alternative, "alternative", assess_reliability(alternative))

        return SelectorOptimization(selector, selector, "original", assess_reliability(selector))

    def text_selector(self, tag_name: str, text: str) -> Optional[str]:
        """Framework text selector, or None when the framework has none."""
        return None

    def accepts_selector(self, selector: str) -> bool:
        """Whether the framework can run the selector (CSS only by default)."""
        return not selector.startswith(("text=", "//", "/html", "xpath="))

    def resolve_url(self, url: str) -> str:
        """URL emitted for a navigation."""
        base_url = self.config.base_url
        if not base_url:
            return url
        base = base_url.rstrip("/")
        if self.relative_urls and (url == base or url.startswith(base + "/") or url.startswith(base + "?")):
            rest = url[len(base):]
            return rest if rest.startswith("/") else f"/{rest}"
        if not self.relative_urls and url.startswith("/"):
            return urljoin(base + "/", url.lstrip("/"))
        return url

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    def generate_assertions(self, events: Sequence[RecordedEvent]) -> list[str]:
        """Assertions verifying the state the events leave behind.

        Navigations assert the URL; form fields assert their final value
        (passwords excluded) or checked state.
        """
        lines: list[str] = []
        final_values: dict[str, RecordedEvent] = {}
        for event in events:
            if event.type == EventType.NAVIGATION and event.url:
                lines.extend(self.assert_url(event.url) or [])
            elif event.type in (EventType.INPUT, EventType.CHANGE) and not event.target.is_document:
                if event.target.input_type in ("password", "file"):
                    continue
                final_values[event.target_key] = event

        for event in final_values.values():
            selector = self.optimize_selector(event.target.selector, event.target).optimized
            if not selector:
                continue
            if "checked" in event.data:
                lines.extend(self.assert_checked(selector, bool(event.data["checked"])) or [])
            elif event.data.get("value") not in (None, ""):
                lines.extend(self.assert_value(selector, str(event.data["value"])) or [])
        return lines

    def generate_group_assertions(self, group: EventGroup) -> list[str]:
        """Assertions appended after a group."""
        if group.action_type == GroupActionType.NAVIGATION:
            navigations = [e for e in group.events if e.type == EventType.NAVIGATION]
            return self.generate_assertions(navigations[-1:])
        if group.action_type == GroupActionType.FORM_INTERACTION:
            # Submitted forms usually reset or navigate away
            if any(e.type == EventType.SUBMIT for e in group.events):
                return []
            return self.generate_assertions(group.events)
        return []

    def emit_assertion(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        """Explicit assertion recorded by the user."""
        kind = event.data.get("assertion_type", "visible")
        kind = ASSERTION_ALIASES.get(kind, kind)
        expected = event.data.get("expected", "")
        if kind == "url":
            return self.assert_url(str(expected))
        if kind == "title":
            return self.assert_title(str(expected))
        if not selector:
            return None
        if kind == "visible":
            return self.assert_visible(selector)
        if kind == "hidden":
            return self.assert_hidden(selector)
        if kind == "enabled":
            return self.assert_enabled(selector)
        if kind == "disabled":
            return self.assert_disabled(selector)
        if kind == "text":
            return self.assert_text(selector, str(expected))
        if kind == "text_equals":
            return self.assert_text_equals(selector, str(expected))
        if kind == "value":
            return self.assert_value(selector, str(expected))
        if kind == "checked":
            return self.assert_checked(selector, expected not in (False, "false"))
        return None

    @abstractmethod
    def assert_url(self, url: str) -> Optional[list[str]]:
        pass

    @abstractmethod
    def assert_title(self, title: str) -> Optional[list[str]]:
        pass

    @abstractmethod
    def assert_visible(self, selector: str) -> Optional[list[str]]:
        pass

    @abstractmethod
    def assert_hidden(self, selector: str) -> Optional[list[str]]:
        pass

    @abstractmethod
    def assert_enabled(self, selector: str) -> Optional[list[str]]:
        pass

    @abstractmethod
    def assert_disabled(self, selector: str) -> Optional[list[str]]:
        pass

    @abstractmethod
    def assert_text(self, selector: str, text: str) -> Optional[list[str]]:
        """Element text contains ``text``."""
        pass

    @abstractmethod
    def assert_text_equals(self, selector: str, text: str) -> Optional[list[str]]:
        """Element text is exactly ``text``."""
        pass

    @abstractmethod
    def assert_value(self, selector: str, value: str) -> Optional[list[str]]:
        pass

    @abstractmethod
    def assert_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        pass

    # ------------------------------------------------------------------
    # Event handlers (None means unsupported)
    # ------------------------------------------------------------------

    @abstractmethod
    def navigate_statements(self, url: str) -> list[str]:
        """Statements opening a URL."""
        pass

    @abstractmethod
    def wait_for_timeout(self, ms: int) -> Optional[list[str]]:
        """Statements pausing for a fixed time."""
        pass

    def emit_navigation(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self.navigate_statements(self.resolve_url(event.url))

    def emit_click(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_dblclick(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_contextmenu(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_input(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_change(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        """Checkbox, select or text change."""
        if "checked" in event.data:
            return self.set_checked(selector, bool(event.data["checked"]))
        if event.target.tag_name == "select":
            options = event.data.get("selected_options") or [event.data.get("value", "")]
            return self.select_options(selector, [str(o) for o in options])
        return self.emit_input(event, selector)

    def set_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        return None

    def emit_file_upload(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        """Input or change on a file input chooses files."""
        return self.set_input_files(selector, file_names(event))

    def set_input_files(self, selector: str, files: list[str]) -> Optional[list[str]]:
        return None

    def select_options(self, selector: str, values: list[str]) -> Optional[list[str]]:
        return None

    def emit_submit(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_keydown(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_keyup(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_keypress(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_scroll(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_wheel(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_focus(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_blur(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_select(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return None

    def emit_wait(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        """Fixed, navigation, network-idle or element wait.

        The reason is read from ``for`` or ``reason``; without one a
        duration means a fixed pause and a selector an element wait.
        """
        data = event.data
        reason = data.get("for") or data.get("reason")
        if reason == "navigation":
            return self.wait_for_navigation()
        if reason == "network":
            return self.wait_for_network_idle()
        if reason == "timeout" or (reason is None and data.get("duration") is not None):
            return self.wait_for_timeout(int(data.get("duration") or 0))
        wait_selector = data.get("selector") or data.get("condition") or selector
        if wait_selector:
            return self.wait_for_selector(wait_selector)
        return None

    def wait_for_navigation(self) -> Optional[list[str]]:
        """Wait for the page load a navigation started."""
        return self.wait_for_network_idle()

    def wait_for_network_idle(self) -> Optional[list[str]]:
        return None

    def wait_for_selector(self, selector: str) -> Optional[list[str]]:
        return None

    def emit_custom(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        """Custom events carry their code verbatim, if any."""
        code = event.data.get("code")
        if not code:
            return None
        return str(code).splitlines()

    @staticmethod
    def scroll_position(event: RecordedEvent) -> tuple[int, int]:
        return int(event.data.get("x", 0) or 0), int(event.data.get("y", 0) or 0)

    @staticmethod
    def wheel_delta(event: RecordedEvent) -> tuple[int, int]:
        return int(event.data.get("delta_x", 0) or 0), int(event.data.get("delta_y", 0) or 0)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    @abstractmethod
    def generate_setup_code(self) -> str:
        """Setup statements for the test file."""
        pass

    @abstractmethod
    def generate_teardown_code(self) -> str:
        """Teardown statements for the test file."""
        pass

    @abstractmethod
    def generate_config_file(self) -> Optional[GeneratedTestFile]:
        """Framework config file."""
        pass

    def generate_helpers(self) -> list[GeneratedTestFile]:
        """Framework helper files."""
        return []

    def template_id(self) -> str:
        return self.config.template_id or self.default_templates[self.language]

    def build_test_context(self, body: str) -> dict[str, Any]:
        """Render context for the main test file."""
        suite_name = self.config.resolved_suite_name
        test_name = self.config.test_name
        if self.is_python and not body.strip():
            body = "pass"
        context: dict[str, Any] = {
            "suite_name": self.escape_string(suite_name),
            "test_name": self.escape_string(test_name),
            "function_name": self.to_snake_case(test_name) or "recording",
            "class_name": self._class_name(suite_name),
            "setup": self.generate_setup_code() if self.config.include_setup else "",
            "teardown": self.generate_teardown_code() if self.config.include_setup else "",
            "test_body": body,
            "typescript": self.is_typescript,
            "timeout": self.config.timeout_ms,
            "base_url": self.config.base_url or "",
            "viewport": {"width": self.config.viewport.width, "height": self.config.viewport.height},
            "headless": self.config.headless,
        }
        return context

    def _class_name(self, suite_name: str) -> str:
        name = self.to_pascal_case(suite_name)
        return name if name.endswith("Test") else f"{name}Test"

    def render_test_file(self, body: str) -> str:
        """Render the main test file through the template engine."""
        context = self.build_test_context(body)
        # Imports depend on everything the file references
        self.imports.add_used_imports(
            "\n".join([body, context["setup"], context["teardown"]]), self.symbol_imports
        )
        context["imports"] = self.imports.get_imports_code()
        return self.template_engine.render(self.template_id(), context, validate=True)

    # ------------------------------------------------------------------
    # Page objects
    # ------------------------------------------------------------------

    def generate_page_objects(self, groups: Sequence[EventGroup]) -> list[GeneratedTestFile]:
        """One page object per navigated URL, one method per action."""
        pages: dict[str, list[EventGroup]] = {}
        current_url: Optional[str] = None
        for group in groups:
            if group.action_type == GroupActionType.NAVIGATION:
                current_url = group.events[0].url
                pages.setdefault(current_url, [])
            url = current_url or group.events[0].context.url or self.config.base_url or ""
            if group.action_type != GroupActionType.NAVIGATION or len(group.events) > 1:
                pages.setdefault(url, []).append(group)

        files = []
        used_names: set[str] = set()
        for url, page_groups in pages.items():
            class_name = _unique(self.page_class_name(url), used_names)
            files.append(self.generate_page_object(class_name, url, page_groups))
        return files

    def page_class_name(self, url: str) -> str:
        parsed = urlparse(url)
        host_parts = [p for p in parsed.netloc.split(":")[0].split(".") if p and p != "www"]
        if len(host_parts) > 1:
            host_parts = host_parts[:-1]
        words = host_parts + [p for p in parsed.path.split("/") if p]
        return f"{self.to_pascal_case(' '.join(words)) if words else 'Home'}Page"

    def generate_page_object(self, class_name: str, url: str, groups: Sequence[EventGroup]) -> GeneratedTestFile:
        methods = []
        used_names = {"goto", "open", "constructor"}
        for group in groups:
            lines: list[str] = []
            for event in group.events:
                if event.type != EventType.NAVIGATION:
                    lines.extend(self.generate_event_code(event))
            if not lines:
                continue
            name = _unique(self.member_name(group.name), used_names)
            methods.append(self.page_object_method(name, self.to_member_access(lines)))

        visit_method = self.page_object_method(
            "open" if self.handle == "driver" else ("visit" if self.handle is None else "goto"),
            self.to_member_access(self.navigate_statements(self.resolve_url(url))),
        )
        code = "\n".join([visit_method, *methods])
        context = {
            "imports": self.page_object_imports(code),
            "class_name": class_name,
            "url": url,
            "handle": self.handle or "",
            "handle_type": self.handle_type,
            "typescript": self.is_typescript,
            "visit_method": visit_method,
            "methods": methods,
        }
        template_id = {
            Language.TYPESCRIPT: "page-object-ts",
            Language.JAVASCRIPT: "page-object-js",
            Language.PYTHON: "page-object-python",
        }[self.language]
        content = self.template_engine.render(template_id, context)
        return GeneratedTestFile(self.page_object_filename(class_name), content, FileType.PAGE_OBJECT)

    def page_object_filename(self, class_name: str) -> str:
        if self.is_python:
            return f"pages/{self.to_snake_case(class_name)}.py"
        return f"pages/{class_name}.page.{self.extension}"

    def page_object_imports(self, code: str) -> str:
        """Imports a page object file needs."""
        manager = ImportsManager(self.language, self.framework, include_base=False)
        manager.add_used_imports(code, self.symbol_imports)
        return manager.get_imports_code()

    def page_object_method(self, name: str, lines: list[str]) -> str:
        """A page object method wrapping statements."""
        if self.is_python:
            body = self.formatter.indent_block(lines or ["pass"])
            return "\n".join([f"def {name}(self):", *body])
        header = f"async {name}() {{" if self.async_methods else f"{name}() {{"
        return "\n".join([header, *self.formatter.indent_block(lines + self.method_epilogue()), "}"])

    def method_epilogue(self) -> list[str]:
        return []

    def to_member_access(self, lines: list[str]) -> list[str]:
        """Rewrite statements to go through the page object's handle."""
        if not self.handle:
            return list(lines)
        pattern = re.compile(rf"(?<![\w./'\"-]){re.escape(self.handle)}(?=[.)])")
        member = f"{self.self_reference}.{self.handle}"
        return [pattern.sub(member, line) for line in lines]


def _unique(name: str, used: set[str]) -> str:
    candidate = name
    counter = 2
    while candidate in used:
        candidate = f"{name}{counter}"
        counter += 1
    used.add(candidate)
    return candidate

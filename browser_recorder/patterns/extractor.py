"""Pattern extraction and re-instantiation of recorded event sequences."""

import difflib
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from urllib.parse import urljoin

import structlog

from ..exceptions import ParameterValidationError, RecorderError, TemplateNotFoundError
from ..recording.models import EventType, PageContext, RecordedEvent
from ..selector.engine import is_dynamic_id
from ..selector.models import TargetDescriptor
from .models import (
    PARAMETER_PATTERN,
    SLOT_TOKEN,
    EventPattern,
    PatternTarget,
    TemplateAnalysis,
    TemplateParameterDefinition,
    TemplateUsage,
    TestTemplate,
    escape_slots,
    unescape_slots,
)

logger = structlog.get_logger()

# Spacing between re-instantiated events
EVENT_SPACING_MS = 1000

# Template fields update_template may change
UPDATABLE_FIELDS = frozenset({"name", "description", "patterns", "parameters", "tags"})

ATTRIBUTE_VALUE_SELECTOR = re.compile(r"\[(value|id)=")
ID_SELECTOR = re.compile(r"#([A-Za-z_][\w-]*)")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _matches_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return _is_number(value) and value == value
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "selector":
        return isinstance(value, str) and bool(value.strip())
    return False


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def substitute(value: Any, parameters: dict[str, Any]) -> Any:
    """Replace ``{{param}}`` slots recursively.

    A string that is exactly one slot takes the parameter's value with its
    type; slots inside longer strings are replaced textually. Slots without
    a value become empty. Escaped literal slots lose their backslash.
    """
    if isinstance(value, str):
        whole = PARAMETER_PATTERN.fullmatch(value)
        if whole:
            return parameters.get(whole.group(1), "")

        def replace(match: re.Match) -> str:
            if match.group(1):
                return match.group(2)
            return _format_value(parameters.get(match.group(3)))

        return SLOT_TOKEN.sub(replace, value)
    if isinstance(value, dict):
        return {key: substitute(item, parameters) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute(item, parameters) for item in value]
    return value


class PatternExtractor:
    """Mines recordings for reusable patterns and replays them with new values.

    Holds an in-memory library of TestTemplates; nothing is persisted.

    Example:
        extractor = PatternExtractor()
        template = extractor.create_template("login", events)
        events = extractor.apply_template(template.id, {"selector_0": "#user"})
    """

    def __init__(self):
        self._templates: dict[str, TestTemplate] = {}
        self.log = logger.bind(component="pattern_extractor")

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_patterns(
        self,
        events: Sequence[RecordedEvent],
        auto_parameterize: bool = False,
    ) -> list[EventPattern]:
        """Convert events into patterns.

        Args:
            events: Processed events
            auto_parameterize: Mark likely-variable fields as parameters

        Returns:
            One pattern per event, in order
        """
        patterns = []
        for event in events:
            fields = self.identify_parameters(event) if auto_parameterize else []
            target_fields = [f for f in fields if f in ("selector", "text")]
            patterns.append(EventPattern(
                type=event.type,
                target=PatternTarget(
                    selector=event.target.selector,
                    text_content=event.target.text_content,
                    tag_name=event.target.tag_name,
                    parameterized=target_fields,
                ),
                data=dict(event.data),
                parameterized=fields,
            ))
        return patterns

    @staticmethod
    def identify_parameters(event: RecordedEvent) -> list[str]:
        """Fields of an event that likely vary between runs."""
        fields = []
        selector = event.target.selector
        if selector and (
            ATTRIBUTE_VALUE_SELECTOR.search(selector)
            or re.search(r"\d", selector)
            or any(is_dynamic_id(m) for m in ID_SELECTOR.findall(selector))
        ):
            fields.append("selector")
        if re.search(r"\d", event.target.text_content or ""):
            fields.append("text")
        for key, value in event.data.items():
            if _is_number(value):
                fields.append(f"data.{key}")
        return fields

    def extract_common_patterns(
        self,
        recordings: Sequence[Sequence[RecordedEvent]],
        min_occurrences: int = 2,
    ) -> list[EventPattern]:
        """Patterns occurring at least ``min_occurrences`` times across recordings.

        Returns:
            The first-seen representative of each frequent pattern, in
            first-seen order
        """
        occurrences: dict[tuple[str, str], list[EventPattern]] = {}
        for events in recordings:
            for pattern in self.extract_patterns(events):
                occurrences.setdefault(pattern.structural_key, []).append(pattern)

        common = [group[0] for group in occurrences.values() if len(group) >= min_occurrences]
        self.log.debug(
            "Common patterns extracted",
            recordings=len(recordings),
            distinct=len(occurrences),
            common=len(common),
        )
        return common

    @staticmethod
    def optimize_patterns(patterns: Sequence[EventPattern]) -> list[EventPattern]:
        """Drop structurally-equal repeats, keeping the first of each."""
        seen: set[tuple[str, str]] = set()
        optimized = []
        for pattern in patterns:
            if pattern.structural_key in seen:
                continue
            seen.add(pattern.structural_key)
            optimized.append(pattern)
        return optimized

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def create_template(
        self,
        name: str,
        events: Sequence[RecordedEvent],
        parameters: Optional[Sequence[TemplateParameterDefinition]] = None,
        auto_parameterize: bool = True,
        optimize: bool = False,
        description: str = "",
        tags: Optional[list[str]] = None,
        template_id: Optional[str] = None,
    ) -> TestTemplate:
        """Build and register a template from a recording.

        Marked fields are rewritten into ``{{param}}`` slots whose
        definitions default to the recorded values. ``{{name}}`` text already
        in the recording stays a slot only when ``parameters`` declares it;
        otherwise it is kept as literal text.

        Args:
            name: Template name
            events: Processed events
            parameters: Extra parameter definitions for slots already present
            auto_parameterize: Mark likely-variable fields automatically
            optimize: Drop structurally-equal repeats first
            description: Template description
            tags: Tags for filtering
            template_id: Explicit id (generated when omitted)

        Returns:
            The registered template
        """
        declared_slots = frozenset(d.name for d in parameters or ())
        patterns = [
            self._escape_literals(p, declared_slots)
            for p in self.extract_patterns(events, auto_parameterize=auto_parameterize)
        ]
        if optimize:
            patterns = self.optimize_patterns(patterns)

        slotted, definitions = self._parameterize(patterns)
        declared = {d.name for d in definitions}
        for definition in parameters or ():
            if definition.name not in declared:
                definitions.append(definition)
                declared.add(definition.name)

        template = TestTemplate(
            id=template_id or f"template_{uuid.uuid4().hex[:12]}",
            name=name,
            description=description,
            patterns=slotted,
            parameters=definitions,
            tags=list(tags or []),
        )
        self.register_template(template)
        return template

    def create_from_common_patterns(
        self,
        patterns: Sequence[EventPattern],
        name: str,
        description: str = "",
    ) -> TestTemplate:
        """Register a template whose patterns are already extracted.

        The first selector and text found become the ``selector`` and
        ``text`` parameters, defaulting to their recorded values.
        """
        parameters: list[TemplateParameterDefinition] = []
        selector = next((p.target.selector for p in patterns if p.target.selector), None)
        if selector:
            parameters.append(TemplateParameterDefinition(
                name="selector",
                type="selector",
                description="Element selector",
                required=True,
                default_value=selector,
            ))
        text = next((p.target.text_content for p in patterns if p.target.text_content), None)
        if text:
            parameters.append(TemplateParameterDefinition(
                name="text",
                type="string",
                description="Text content",
                default_value=text,
            ))

        template = TestTemplate(
            id=f"template_{uuid.uuid4().hex[:12]}",
            name=name,
            description=description,
            patterns=[self._escape_literals(p, frozenset(d.name for d in parameters)) for p in patterns],
            parameters=parameters,
        )
        self.register_template(template)
        return template

    @staticmethod
    def _escape_literals(pattern: EventPattern, keep: frozenset[str]) -> EventPattern:
        target = pattern.target.model_copy(update={
            "selector": escape_slots(pattern.target.selector, keep),
            "text_content": escape_slots(pattern.target.text_content, keep),
        })
        return pattern.model_copy(update={"target": target, "data": escape_slots(pattern.data, keep)})

    def _parameterize(
        self,
        patterns: Sequence[EventPattern],
    ) -> tuple[list[EventPattern], list[TemplateParameterDefinition]]:
        slotted = []
        definitions: list[TemplateParameterDefinition] = []
        for index, pattern in enumerate(patterns):
            target = pattern.target
            data = dict(pattern.data)
            for field in pattern.parameterized:
                if field == "selector":
                    param = f"selector_{index}"
                    definitions.append(TemplateParameterDefinition(
                        name=param,
                        type="selector",
                        description=f"Selector of event {index} ({pattern.type.value})",
                        default_value=unescape_slots(target.selector),
                    ))
                    target = target.model_copy(update={"selector": f"{{{{{param}}}}}"})
                elif field == "text":
                    param = f"text_{index}"
                    definitions.append(TemplateParameterDefinition(
                        name=param,
                        description=f"Text of event {index}",
                        default_value=unescape_slots(target.text_content),
                    ))
                    target = target.model_copy(update={"text_content": f"{{{{{param}}}}}"})
                elif field.startswith("data."):
                    key = field[len("data."):]
                    param = f"{re.sub(r'[^A-Za-z0-9_]', '_', key)}_{index}"
                    definitions.append(TemplateParameterDefinition(
                        name=param,
                        type="number",
                        description=f"Value of {key} in event {index}",
                        default_value=data[key],
                    ))
                    data[key] = f"{{{{{param}}}}}"
            slotted.append(pattern.model_copy(update={"target": target, "data": data}))
        return slotted, definitions

    def register_template(self, template: TestTemplate) -> None:
        """Add or replace a template in the library."""
        self._templates[template.id] = template
        self.log.info(
            "Template registered",
            template_id=template.id,
            patterns=len(template.patterns),
            parameters=len(template.parameters),
        )

    def get_template(self, template_id: str) -> TestTemplate:
        """Get a template by id.

        Raises:
            TemplateNotFoundError: If the id is unknown
        """
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def list_templates(self, tag: Optional[str] = None) -> list[TestTemplate]:
        """Templates in registration order, optionally filtered by tag."""
        return [t for t in self._templates.values() if tag is None or tag in t.tags]

    def delete_template(self, template_id: str) -> bool:
        """Remove a template. Returns whether it existed."""
        return self._templates.pop(template_id, None) is not None

    def update_template(self, template_id: str, **changes) -> TestTemplate:
        """Merge changes into a template and revalidate it.

        Args:
            template_id: Template to update
            **changes: New values for name, description, patterns, parameters or tags

        Returns:
            The updated template, with ``updated_at`` set to now

        Raises:
            TemplateNotFoundError: If the id is unknown
            RecorderError: If a field outside UPDATABLE_FIELDS is changed
            pydantic.ValidationError: If the merged template is invalid
        """
        template = self.get_template(template_id)
        forbidden = set(changes) - UPDATABLE_FIELDS
        if forbidden:
            raise RecorderError(f"Template fields cannot be updated: {sorted(forbidden)}")

        merged = {**template.model_dump(), **changes, "updated_at": datetime.now(timezone.utc)}
        updated = TestTemplate.model_validate(merged)
        self._templates[template_id] = updated
        self.log.info("Template updated", template_id=template_id, fields=sorted(changes))
        return updated

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def find_similar_templates(
        self,
        template_id: str,
        threshold: float = 0.7,
    ) -> list[tuple[TestTemplate, float]]:
        """Templates whose pattern sequences resemble a template's.

        Similarity averages the Jaccard index of structural keys with the
        ordered sequence ratio.

        Returns:
            (template, similarity) pairs, most similar first
        """
        template = self.get_template(template_id)
        keys = [p.structural_key for p in template.patterns]

        similar = []
        for other in self._templates.values():
            if other.id == template.id:
                continue
            other_keys = [p.structural_key for p in other.patterns]
            similarity = self.similarity(keys, other_keys)
            if similarity >= threshold:
                similar.append((other, similarity))
        return sorted(similar, key=lambda pair: pair[1], reverse=True)

    @staticmethod
    def similarity(keys: Sequence[tuple[str, str]], other_keys: Sequence[tuple[str, str]]) -> float:
        union = set(keys) | set(other_keys)
        if not union:
            return 1.0
        jaccard = len(set(keys) & set(other_keys)) / len(union)
        ratio = difflib.SequenceMatcher(None, list(keys), list(other_keys)).ratio()
        return round(0.5 * jaccard + 0.5 * ratio, 4)

    def analyze_template(self, template_id: str) -> TemplateAnalysis:
        """Complexity and size summary of a template."""
        template = self.get_template(template_id)
        event_count = len(template.patterns)
        parameter_count = len(template.parameters)

        if event_count < 5 and parameter_count < 3:
            complexity = "simple"
        elif event_count < 15 and parameter_count < 8:
            complexity = "medium"
        else:
            complexity = "complex"

        return TemplateAnalysis(
            complexity=complexity,
            parameter_count=parameter_count,
            event_count=event_count,
            unique_event_types=list(dict.fromkeys(p.type.value for p in template.patterns)),
            estimated_duration_ms=event_count * EVENT_SPACING_MS,
            parameterized_fields=sum(len(p.parameterized) for p in template.patterns),
        )

    # ------------------------------------------------------------------
    # Re-instantiation
    # ------------------------------------------------------------------

    def validate_parameters(self, template: TestTemplate, parameters: dict[str, Any]) -> None:
        """Check supplied parameters against a template's definitions.

        Raises:
            ParameterValidationError: With every problem found
        """
        errors: list[str] = []
        missing: list[str] = []
        invalid: list[str] = []

        for definition in template.parameters:
            if definition.required and definition.name not in parameters:
                missing.append(definition.name)
                errors.append(f"Required parameter missing: {definition.name}")

        for name, value in parameters.items():
            definition = template.get_parameter(name)
            if definition is None:
                invalid.append(name)
                errors.append(f"Unknown parameter: {name}")
            elif not _matches_type(value, definition.type):
                invalid.append(name)
                errors.append(f"Invalid type for parameter {name}. Expected {definition.type}")

        if errors:
            raise ParameterValidationError(errors, missing_parameters=missing, invalid_parameters=invalid)

    def apply_template(
        self,
        template_id: str,
        parameters: dict[str, Any],
        base_url: Optional[str] = None,
        start_timestamp: int = 0,
    ) -> list[RecordedEvent]:
        """Re-instantiate a template into events.

        Args:
            template_id: Template to apply
            parameters: Parameter values by name
            base_url: Base for relative navigation URLs and page context
            start_timestamp: Timestamp of the first event

        Returns:
            Events spaced EVENT_SPACING_MS apart with deterministic ids

        Raises:
            TemplateNotFoundError: If the id is unknown
            ParameterValidationError: If parameters are missing, unknown or mistyped
        """
        template = self.get_template(template_id)
        self.validate_parameters(template, parameters)

        values = {
            d.name: d.default_value for d in template.parameters if d.default_value is not None
        }
        values.update(parameters)

        events = []
        url = base_url or ""
        for index, pattern in enumerate(template.patterns):
            data = substitute(pattern.data, values)
            if pattern.type == EventType.NAVIGATION and isinstance(data.get("url"), str):
                if base_url:
                    data["url"] = urljoin(base_url, data["url"])
                url = data["url"]

            selector = _format_value(substitute(pattern.target.selector, values))
            if selector:
                target = TargetDescriptor(
                    tag_name=pattern.target.tag_name or "*",
                    text_content=_format_value(substitute(pattern.target.text_content, values)),
                    selector=selector,
                )
            else:
                target = TargetDescriptor.document()

            events.append(RecordedEvent(
                id=f"{template.id}_evt_{index}",
                sequence=index,
                timestamp=start_timestamp + index * EVENT_SPACING_MS,
                type=pattern.type,
                target=target,
                data=data,
                context=PageContext(url=url),
                metadata={"template_id": template.id, "annotations": []},
            ))

        self._templates[template.id] = template.model_copy(update={
            "usage": TemplateUsage(uses=template.usage.uses + 1, last_used=datetime.now(timezone.utc)),
        })
        self.log.info(
            "Template applied",
            template_id=template.id,
            events=len(events),
            parameters=sorted(parameters),
        )
        return events

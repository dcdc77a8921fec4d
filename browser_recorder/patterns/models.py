"""Data models for reusable event patterns."""

import re
from datetime import datetime, timezone
from typing import Any, ClassVar, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..recording.models import EventType

ParameterType = Literal["string", "number", "boolean", "selector"]

# {{name}} slot inside a pattern selector, text or data value. A slot
# preceded by a backslash is literal recorded text.
PARAMETER_PATTERN = re.compile(r"(?<!\\)\{\{\s*([A-Za-z_]\w*)\s*\}\}")

# A slot or an escaped literal, for substitution in one pass
SLOT_TOKEN = re.compile(r"(\\?)(\{\{\s*([A-Za-z_]\w*)\s*\}\})")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def find_parameters(value: Any) -> list[str]:
    """Parameter names referenced anywhere inside a value."""
    names: list[str] = []
    if isinstance(value, str):
        names.extend(PARAMETER_PATTERN.findall(value))
    elif isinstance(value, dict):
        for item in value.values():
            names.extend(find_parameters(item))
    elif isinstance(value, (list, tuple)):
        for item in value:
            names.extend(find_parameters(item))
    return names


def escape_slots(value: Any, keep: frozenset[str] = frozenset()) -> Any:
    """Mark ``{{name}}`` text in recorded values as literal.

    Slots whose name is in ``keep`` stay substitutable.
    """
    if isinstance(value, str):
        return PARAMETER_PATTERN.sub(
            lambda m: m.group(0) if m.group(1) in keep else "\\" + m.group(0),
            value,
        )
    if isinstance(value, dict):
        return {key: escape_slots(item, keep) for key, item in value.items()}
    if isinstance(value, list):
        return [escape_slots(item, keep) for item in value]
    return value


def unescape_slots(text: str) -> str:
    """Recorded text with escaped literal slots restored."""
    return SLOT_TOKEN.sub(lambda m: m.group(2) if m.group(1) else m.group(0), text)


class PatternTarget(BaseModel):
    """Element a pattern acts on."""

    selector: str = Field("", description="Selector, possibly with {{param}} slots")
    text_content: str = Field("", description="Text content, possibly with {{param}} slots")
    tag_name: str = Field("", description="Tag name of the recorded element")
    parameterized: list[str] = Field(default_factory=list, description="Target fields marked as parameters")


class EventPattern(BaseModel):
    """One event with selected fields marked as substitutable parameters.

    ``parameterized`` lists the marked fields: ``selector``, ``text`` and
    ``data.<key>`` for numeric data values.
    """

    type: EventType
    target: PatternTarget = Field(default_factory=PatternTarget)
    data: dict[str, Any] = Field(default_factory=dict)
    optional: bool = False
    parameterized: list[str] = Field(default_factory=list)

    @property
    def structural_key(self) -> tuple[str, str]:
        """Patterns are structurally equal when type and selector match."""
        return self.type.value, self.target.selector

    def referenced_parameters(self) -> list[str]:
        names = find_parameters(self.target.selector) + find_parameters(self.target.text_content)
        names += find_parameters(self.data)
        return list(dict.fromkeys(names))


class TemplateParameterDefinition(BaseModel):
    """A parameter a test template accepts."""

    name: str = Field(..., description="Parameter name used in {{name}} slots")
    type: ParameterType = Field("string", description="Expected value type")
    description: str = Field("", description="What the parameter controls")
    required: bool = Field(False, description="Whether a value must be supplied")
    default_value: Any = Field(None, description="Value used when the parameter is omitted")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Names must be identifiers so they can appear in slots."""
        if not re.fullmatch(r"[A-Za-z_]\w*", v):
            raise ValueError(f"Invalid parameter name: {v!r}")
        return v


class TemplateUsage(BaseModel):
    """Usage statistics of a test template."""

    uses: int = 0
    last_used: Optional[datetime] = None


class TestTemplate(BaseModel):
    """A reusable, parameterized sequence of event patterns."""

    __test__: ClassVar[bool] = False

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    patterns: list[EventPattern] = Field(..., min_length=1)
    parameters: list[TemplateParameterDefinition] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    usage: TemplateUsage = Field(default_factory=TemplateUsage)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def validate_parameters(self) -> "TestTemplate":
        """Parameter names are unique and every slot is declared."""
        names = [p.name for p in self.parameters]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate parameter names: {duplicates}")

        undeclared = []
        for pattern in self.patterns:
            for name in pattern.referenced_parameters():
                if name not in names and name not in undeclared:
                    undeclared.append(name)
        if undeclared:
            raise ValueError(f"Undeclared parameters: {undeclared}")
        return self

    def get_parameter(self, name: str) -> Optional[TemplateParameterDefinition]:
        return next((p for p in self.parameters if p.name == name), None)


class TemplateAnalysis(BaseModel):
    """Summary of a test template."""

    complexity: Literal["simple", "medium", "complex"]
    parameter_count: int
    event_count: int
    unique_event_types: list[str]
    estimated_duration_ms: int
    parameterized_fields: int

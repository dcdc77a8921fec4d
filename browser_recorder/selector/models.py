"""Data models for selector synthesis."""

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..exceptions import SelectorSynthesisDegraded

FORM_TAGS = ("form",)


@dataclass(frozen=True)
class BoundingRect:
    """Element geometry at capture time."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass(frozen=True)
class PathSegment:
    """One ancestor step between the document root and the target.

    Attributes:
        tag_name: Lower-case tag name
        attributes: Attribute map of the ancestor
        index: 1-based position among the parent's element children
        sibling_count: Number of same-tag siblings, including this element
    """

    tag_name: str
    attributes: dict[str, str] = field(default_factory=dict)
    index: int = 1
    sibling_count: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> "PathSegment":
        """Create PathSegment from dictionary."""
        return cls(
            tag_name=data.get("tag_name", data.get("tagName", "")).lower(),
            attributes=dict(data.get("attributes", {})),
            index=data.get("index", 1),
            sibling_count=data.get("sibling_count", 1),
        )

    def is_form(self) -> bool:
        return self.tag_name in FORM_TAGS or self.attributes.get("role") == "form"


def scope_key(tag_name: str, attributes: dict[str, str], index: int) -> str:
    """Stable identifier for a form-like element."""
    if attributes.get("id"):
        return f"{tag_name}#{attributes['id']}"
    if attributes.get("name"):
        return f'{tag_name}[name="{attributes["name"]}"]'
    if attributes.get("action"):
        return f'{tag_name}[action="{attributes["action"]}"]'
    return f"{tag_name}:nth-child({index})"


@dataclass(frozen=True)
class TargetDescriptor:
    """Immutable snapshot of one interacted-with element.

    ``selector`` and ``alternative_selectors`` are filled by the recorder
    from the selector engine; everything else is captured from the page.
    """

    tag_name: str
    text_content: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    bounding_rect: BoundingRect = field(default_factory=BoundingRect)
    path: tuple[PathSegment, ...] = ()
    index: int = 1
    sibling_count: int = 1
    selector: str = ""
    alternative_selectors: tuple[str, ...] = ()

    @classmethod
    def document(cls) -> "TargetDescriptor":
        """Target used for page-level events such as navigation."""
        return cls(tag_name="document")

    @classmethod
    def from_dict(cls, data: dict) -> "TargetDescriptor":
        """Create TargetDescriptor from dictionary."""
        rect = data.get("bounding_rect") or {}
        return cls(
            tag_name=data.get("tag_name", data.get("tagName", "")).lower(),
            text_content=data.get("text_content", data.get("textContent", "")) or "",
            attributes=dict(data.get("attributes", {})),
            bounding_rect=BoundingRect(**rect) if isinstance(rect, dict) else rect,
            path=tuple(
                PathSegment.from_dict(s) if isinstance(s, dict) else s
                for s in data.get("path", [])
            ),
            index=data.get("index", 1),
            sibling_count=data.get("sibling_count", 1),
            selector=data.get("selector", ""),
            alternative_selectors=tuple(data.get("alternative_selectors", ())),
        )

    @property
    def is_document(self) -> bool:
        return self.tag_name in ("document", "window", "")

    @property
    def input_type(self) -> str:
        """Effective input type, mirroring the DOM ``type`` property."""
        if self.tag_name == "select":
            return "select-multiple" if "multiple" in self.attributes else "select-one"
        if self.tag_name == "textarea":
            return "textarea"
        if self.tag_name == "input":
            return self.attributes.get("type", "text").lower()
        return ""

    def fingerprint(self) -> str:
        """Content hash identifying this element snapshot."""
        payload = json.dumps(
            {
                "tag": self.tag_name,
                "text": self.text_content,
                "attributes": self.attributes,
                "path": [
                    [s.tag_name, s.attributes, s.index, s.sibling_count]
                    for s in self.path
                ],
                "index": self.index,
                "siblings": self.sibling_count,
            },
            sort_keys=True,
        )
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]

    def form_scope(self) -> Optional[str]:
        """Key of the nearest enclosing form-like element, or None."""
        if self.tag_name in FORM_TAGS or self.attributes.get("role") == "form":
            return scope_key(self.tag_name, self.attributes, self.index)
        for segment in reversed(self.path):
            if segment.is_form():
                return scope_key(segment.tag_name, segment.attributes, segment.index)
        return None


class SelectorStrategy(str, Enum):
    """Ways of addressing an element."""

    TESTID = "testid"
    ID = "id"
    ARIA = "aria"
    TEXT = "text"
    CSS = "css"
    XPATH = "xpath"


# Fixed reliability weight per strategy
STRATEGY_WEIGHTS: dict[SelectorStrategy, float] = {
    SelectorStrategy.TESTID: 0.95,
    SelectorStrategy.ID: 0.9,
    SelectorStrategy.ARIA: 0.8,
    SelectorStrategy.TEXT: 0.7,
    SelectorStrategy.CSS: 0.5,
    SelectorStrategy.XPATH: 0.3,
}

# Multiplier applied when a position disambiguator was needed
POSITION_PENALTY = 0.8

DEFAULT_PRIORITY: tuple[SelectorStrategy, ...] = (
    SelectorStrategy.TESTID,
    SelectorStrategy.ID,
    SelectorStrategy.ARIA,
    SelectorStrategy.TEXT,
    SelectorStrategy.CSS,
)

TEST_ID_ATTRIBUTES = ("data-testid", "data-test", "data-cy", "data-qa")


@dataclass(frozen=True)
class SelectorConfig:
    """Strategy configuration for one synthesis call.

    Attributes:
        priority: Strategies to evaluate, in order
        fallback: Degrade to a positional structural path when nothing is unique
        optimize: Collapse structural paths to the shortest unique ancestor chain
        include_position: Append an nth-child disambiguator to break ties
    """

    priority: tuple[SelectorStrategy, ...] = DEFAULT_PRIORITY
    fallback: bool = True
    optimize: bool = False
    include_position: bool = False

    def __post_init__(self):
        """Convert string strategies to enums."""
        object.__setattr__(
            self,
            "priority",
            tuple(SelectorStrategy(p) if isinstance(p, str) else p for p in self.priority),
        )


@dataclass(frozen=True)
class SelectorCandidate:
    """One generated selector with its reliability score."""

    strategy: SelectorStrategy
    value: str
    reliability: float
    positional: bool = False

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "value": self.value,
            "reliability": self.reliability,
            "positional": self.positional,
        }


@dataclass(frozen=True)
class SelectorResult:
    """Primary selector plus alternatives sorted by descending reliability."""

    primary: SelectorCandidate
    alternatives: tuple[SelectorCandidate, ...] = ()
    degraded: Optional[SelectorSynthesisDegraded] = None

    @property
    def is_empty(self) -> bool:
        return not self.primary.value

    @property
    def candidates(self) -> tuple[SelectorCandidate, ...]:
        """Primary followed by alternatives."""
        return (self.primary, *self.alternatives)

    def to_dict(self) -> dict:
        return {
            "primary": self.primary.to_dict(),
            "alternatives": [c.to_dict() for c in self.alternatives],
            "degraded": self.degraded.message if self.degraded else None,
        }


@dataclass
class SelectorStats:
    """Running statistics over synthesized selectors."""

    total_generated: int = 0
    unique_selectors: int = 0
    average_length: float = 0.0
    reliability_score: float = 0.0
    degraded_count: int = 0
    strategy_breakdown: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_generated": self.total_generated,
            "unique_selectors": self.unique_selectors,
            "average_length": self.average_length,
            "reliability_score": self.reliability_score,
            "degraded_count": self.degraded_count,
            "strategy_breakdown": dict(self.strategy_breakdown),
        }

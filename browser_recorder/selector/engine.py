"""Selector Engine - ranked selector synthesis for element snapshots."""

import re
from collections import Counter
from typing import Callable, Optional

import structlog

from ..exceptions import SelectorSynthesisDegraded
from .models import (
    POSITION_PENALTY,
    STRATEGY_WEIGHTS,
    TEST_ID_ATTRIBUTES,
    PathSegment,
    SelectorCandidate,
    SelectorConfig,
    SelectorResult,
    SelectorStats,
    SelectorStrategy,
    TargetDescriptor,
)

logger = structlog.get_logger()

# Counts how many elements on the page match a selector
MatchCounter = Callable[[str], int]

HighlightListener = Callable[[Optional[str]], None]

MAX_TEXT_LENGTH = 50

# Strategies whose value is a CSS selector and can take :nth-child
POSITIONAL_STRATEGIES = frozenset({
    SelectorStrategy.TESTID,
    SelectorStrategy.ID,
    SelectorStrategy.ARIA,
    SelectorStrategy.CSS,
})

TEXTLESS_TAGS = frozenset({"input", "textarea", "select", "html", "body", "document", "window"})

DYNAMIC_ID_PATTERNS = [
    re.compile(r"^\d+$"),
    re.compile(r"^:r[0-9a-z]*:$"),
    re.compile(r"^(ember|react|vue|ng|mui|radix|headlessui)[-_:]", re.IGNORECASE),
    re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-"),
    re.compile(r"[0-9a-f]{10,}", re.IGNORECASE),
    re.compile(r"\d{4,}"),
]

UTILITY_CLASS_PATTERN = re.compile(r"^(p|m|w|h|flex|grid|text|bg|border|px|py|mx|my|mt|mb|pt|pb)-")
HASHED_CLASS_PATTERN = re.compile(r"(^_|\d)")
CSS_IDENTIFIER = re.compile(r"^[A-Za-z_][\w-]*$")


def is_dynamic_id(value: str) -> bool:
    """Return True for ids that look auto-generated and will not survive a reload."""
    return any(pattern.search(value) for pattern in DYNAMIC_ID_PATTERNS)


def escape_attribute(value: str) -> str:
    """Escape a value for a double-quoted attribute selector."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def xpath_literal(value: str) -> str:
    """Quote a value as an XPath string literal.

    XPath 1.0 has no escapes, so values holding both quote kinds are
    spliced with ``concat()``.
    """
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    pieces = []
    for i, part in enumerate(value.split('"')):
        if i:
            pieces.append("'\"'")
        if part:
            pieces.append(f'"{part}"')
    return f"concat({', '.join(pieces)})"


def normalize_text(text: str) -> str:
    return " ".join((text or "").split())


class SelectorEngine:
    """Turns element snapshots into ranked selector candidates.

    Each strategy in the configured priority order produces at most one
    candidate. A candidate is accepted when its value is non-empty and, if a
    match counter is supplied, addresses exactly one element. The primary is
    the accepted candidate with the highest reliability; priority order
    breaks ties.

    Results computed without a match counter are cached per element
    fingerprint and configuration until explicitly invalidated.

    Example:
        engine = SelectorEngine()
        result = engine.synthesize(target, SelectorConfig(optimize=True))
        print(result.primary.value, result.primary.reliability)
    """

    def __init__(self, default_config: Optional[SelectorConfig] = None):
        """Initialize the selector engine.

        Args:
            default_config: Config used when synthesize() gets none
        """
        self.default_config = default_config or SelectorConfig()
        self.log = logger.bind(component="selector_engine")

        self._cache: dict[tuple[str, SelectorConfig], SelectorResult] = {}
        self._highlighted: Optional[str] = None
        self._highlight_listeners: list[HighlightListener] = []

        self._generated = 0
        self._seen: set[str] = set()
        self._total_length = 0
        self._total_reliability = 0.0
        self._degraded = 0
        self._strategies: Counter = Counter()

        self._builders: dict[SelectorStrategy, Callable[[TargetDescriptor, SelectorConfig, Optional[MatchCounter]], str]] = {
            SelectorStrategy.TESTID: self._build_testid,
            SelectorStrategy.ID: self._build_id,
            SelectorStrategy.ARIA: self._build_aria,
            SelectorStrategy.TEXT: self._build_text,
            SelectorStrategy.CSS: self._build_css,
            SelectorStrategy.XPATH: self._build_xpath,
        }

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def synthesize(
        self,
        target: TargetDescriptor,
        config: Optional[SelectorConfig] = None,
        matcher: Optional[MatchCounter] = None,
    ) -> SelectorResult:
        """Generate ranked selectors for an element snapshot.

        Never raises for unaddressable elements: the result carries an empty
        or positional primary plus a ``SelectorSynthesisDegraded`` diagnostic.

        Args:
            target: Element snapshot
            config: Strategy configuration (engine default if omitted)
            matcher: Optional uniqueness oracle returning the match count

        Returns:
            SelectorResult with primary and sorted alternatives
        """
        config = config or self.default_config
        cache_key = (target.fingerprint(), config)

        if matcher is None and cache_key in self._cache:
            return self._cache[cache_key]

        result = self._synthesize(target, config, matcher)
        self._record(result)

        if matcher is None:
            self._cache[cache_key] = result

        return result

    def _synthesize(
        self,
        target: TargetDescriptor,
        config: SelectorConfig,
        matcher: Optional[MatchCounter],
    ) -> SelectorResult:
        if not target.tag_name:
            return self._empty_result("Target has no tag name")

        accepted: list[tuple[int, SelectorCandidate]] = []
        for order, strategy in enumerate(config.priority):
            value = self._builders[strategy](target, config, matcher)
            if not value:
                continue
            candidate = self._evaluate(strategy, value, target, config, matcher)
            if candidate is not None:
                accepted.append((order, candidate))

        if accepted:
            accepted.sort(key=lambda item: (-item[1].reliability, item[0]))
            ranked = [candidate for _, candidate in accepted]
            return SelectorResult(primary=ranked[0], alternatives=tuple(ranked[1:]))

        if config.fallback:
            fallback = self._build_positional_path(target)
            if fallback:
                reliability = round(STRATEGY_WEIGHTS[SelectorStrategy.CSS] * POSITION_PENALTY, 4)
                message = f"No unique attribute or text selector for <{target.tag_name}>; using structural path"
                self.log.warning(
                    "Selector synthesis degraded",
                    tag=target.tag_name,
                    selector=fallback,
                    reliability=reliability,
                )
                return SelectorResult(
                    primary=SelectorCandidate(
                        strategy=SelectorStrategy.CSS,
                        value=fallback,
                        reliability=reliability,
                        positional=True,
                    ),
                    degraded=SelectorSynthesisDegraded(message, reliability),
                )

        return self._empty_result(f"No selector strategy produced a candidate for <{target.tag_name}>")

    def _empty_result(self, message: str) -> SelectorResult:
        self.log.warning("Selector synthesis produced no candidate", reason=message)
        return SelectorResult(
            primary=SelectorCandidate(strategy=SelectorStrategy.CSS, value="", reliability=0.0),
            degraded=SelectorSynthesisDegraded(message, 0.0),
        )

    def _evaluate(
        self,
        strategy: SelectorStrategy,
        value: str,
        target: TargetDescriptor,
        config: SelectorConfig,
        matcher: Optional[MatchCounter],
    ) -> Optional[SelectorCandidate]:
        """Accept, disambiguate or reject one candidate."""
        weight = STRATEGY_WEIGHTS[strategy]
        penalized = round(weight * POSITION_PENALTY, 4)

        if matcher is None:
            # Uniqueness is not checkable; only structural ties are visible
            if (
                config.include_position
                and strategy == SelectorStrategy.CSS
                and target.sibling_count > 1
            ):
                return SelectorCandidate(strategy, self._with_position(value, target), penalized, positional=True)
            return SelectorCandidate(strategy, value, weight)

        count = matcher(value)
        if count == 1:
            return SelectorCandidate(strategy, value, weight)

        if count > 1 and config.include_position and strategy in POSITIONAL_STRATEGIES:
            positioned = self._with_position(value, target)
            if matcher(positioned) == 1:
                return SelectorCandidate(strategy, positioned, penalized, positional=True)

        return None

    @staticmethod
    def _with_position(value: str, target: TargetDescriptor) -> str:
        return f"{value}:nth-child({target.index})"

    # ------------------------------------------------------------------
    # Strategy builders
    # ------------------------------------------------------------------

    def _build_testid(self, target, config, matcher) -> str:
        for attribute in TEST_ID_ATTRIBUTES:
            value = target.attributes.get(attribute)
            if value:
                return f'[{attribute}="{escape_attribute(value)}"]'
        return ""

    def _build_id(self, target, config, matcher) -> str:
        element_id = target.attributes.get("id", "")
        if not element_id or is_dynamic_id(element_id):
            return ""
        if CSS_IDENTIFIER.match(element_id):
            return f"#{element_id}"
        return f'[id="{escape_attribute(element_id)}"]'

    def _build_aria(self, target, config, matcher) -> str:
        label = normalize_text(target.attributes.get("aria-label", ""))
        if not label:
            return ""
        return f'{target.tag_name}[aria-label="{escape_attribute(label)}"]'

    def _build_text(self, target, config, matcher) -> str:
        if target.tag_name in TEXTLESS_TAGS:
            return ""
        text = normalize_text(target.text_content)
        if not text or len(text) > MAX_TEXT_LENGTH:
            return ""
        return f'text="{escape_attribute(text)}"'

    def _build_css(self, target, config, matcher) -> str:
        nodes = self._nodes(target)
        segments = [self._css_segment(tag, attributes) for tag, attributes, _, _ in nodes]

        if not config.optimize:
            return " > ".join(segments)

        if matcher is not None:
            for length in range(1, len(segments) + 1):
                chain = " > ".join(segments[-length:])
                if matcher(chain) == 1:
                    return chain
            return " > ".join(segments)

        # Without a match counter, anchor at the nearest ancestor with a stable id
        for start in range(len(nodes) - 1, -1, -1):
            element_id = nodes[start][1].get("id", "")
            if element_id and not is_dynamic_id(element_id):
                return " > ".join(segments[start:])
        return " > ".join(segments)

    def _build_xpath(self, target, config, matcher) -> str:
        element_id = target.attributes.get("id", "")
        if element_id and not is_dynamic_id(element_id):
            return f"//*[@id={xpath_literal(element_id)}]"

        text = normalize_text(target.text_content)
        if text and target.tag_name not in TEXTLESS_TAGS and len(text) <= MAX_TEXT_LENGTH:
            return f"//{target.tag_name}[normalize-space()={xpath_literal(text)}]"

        steps = []
        for tag, _, index, sibling_count in self._nodes(target):
            if sibling_count > 1:
                steps.append(f"*[{index}][self::{tag}]")
            else:
                steps.append(tag)
        return "/" + "/".join(steps) if steps else ""

    def _build_positional_path(self, target: TargetDescriptor) -> str:
        segments = []
        for tag, _, index, _ in self._nodes(target):
            if tag in ("html", "body"):
                segments.append(tag)
            else:
                segments.append(f"{tag}:nth-child({index})")
        return " > ".join(segments)

    @staticmethod
    def _nodes(target: TargetDescriptor) -> list[tuple[str, dict, int, int]]:
        """Ancestor chain plus the element, root first."""
        nodes = [
            (segment.tag_name, segment.attributes, segment.index, segment.sibling_count)
            for segment in target.path
            if isinstance(segment, PathSegment) and segment.tag_name
        ]
        nodes.append((target.tag_name, target.attributes, target.index, target.sibling_count))
        return nodes

    @staticmethod
    def _css_segment(tag: str, attributes: dict) -> str:
        element_id = attributes.get("id", "")
        if element_id and not is_dynamic_id(element_id) and CSS_IDENTIFIER.match(element_id):
            return f"{tag}#{element_id}"

        classes = (attributes.get("class") or "").split()
        significant = [
            c for c in classes
            if CSS_IDENTIFIER.match(c)
            and not UTILITY_CLASS_PATTERN.match(c)
            and not HASHED_CLASS_PATTERN.search(c)
        ]
        if significant:
            return f"{tag}.{significant[0]}"
        return tag

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def invalidate(self, key: TargetDescriptor | str) -> int:
        """Drop cached results for one element.

        Args:
            key: Target snapshot or its fingerprint

        Returns:
            Number of cache entries removed
        """
        fingerprint = key.fingerprint() if isinstance(key, TargetDescriptor) else key
        stale = [k for k in self._cache if k[0] == fingerprint]
        for k in stale:
            del self._cache[k]
        return len(stale)

    def clear_cache(self) -> None:
        """Drop every cached result."""
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # Highlight side channel
    # ------------------------------------------------------------------

    def highlight(self, selector: Optional[str]) -> None:
        """Ask the host to outline the element addressed by ``selector``.

        Observational only: synthesis never reads the highlight state.
        """
        self._highlighted = selector
        for listener in list(self._highlight_listeners):
            listener(selector)

    def clear_highlight(self) -> None:
        self.highlight(None)

    @property
    def highlighted(self) -> Optional[str]:
        return self._highlighted

    def on_highlight(self, listener: HighlightListener) -> Callable[[], None]:
        """Register a highlight listener; returns an unsubscribe callable."""
        self._highlight_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._highlight_listeners:
                self._highlight_listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def _record(self, result: SelectorResult) -> None:
        self._generated += 1
        if result.degraded is not None:
            self._degraded += 1
        if result.is_empty:
            return
        self._seen.add(result.primary.value)
        self._total_length += len(result.primary.value)
        self._total_reliability += result.primary.reliability
        self._strategies[result.primary.strategy.value] += 1

    def stats(self) -> SelectorStats:
        """Summary of every selector this engine has synthesized."""
        addressed = sum(self._strategies.values())
        return SelectorStats(
            total_generated=self._generated,
            unique_selectors=len(self._seen),
            average_length=round(self._total_length / addressed, 2) if addressed else 0.0,
            reliability_score=round(self._total_reliability / addressed, 4) if addressed else 0.0,
            degraded_count=self._degraded,
            strategy_breakdown=dict(self._strategies),
        )

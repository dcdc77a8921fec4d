"""Selector synthesis.

Turns one element snapshot into a ranked set of selector candidates with
reliability scores.

Example:
    from browser_recorder.selector import SelectorEngine, SelectorConfig

    engine = SelectorEngine()
    result = engine.synthesize(target, SelectorConfig(include_position=True))
"""

from .engine import SelectorEngine, is_dynamic_id
from .models import (
    DEFAULT_PRIORITY,
    BoundingRect,
    PathSegment,
    TargetDescriptor,
    STRATEGY_WEIGHTS,
    SelectorCandidate,
    SelectorConfig,
    SelectorResult,
    SelectorStats,
    SelectorStrategy,
)

__all__ = [
    "TargetDescriptor",
    "PathSegment",
    "BoundingRect",
    "SelectorEngine",
    "SelectorConfig",
    "SelectorCandidate",
    "SelectorResult",
    "SelectorStats",
    "SelectorStrategy",
    "STRATEGY_WEIGHTS",
    "DEFAULT_PRIORITY",
    "is_dynamic_id",
]

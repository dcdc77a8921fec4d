"""Reusable event patterns mined from recordings."""

from .extractor import PatternExtractor, substitute
from .models import (
    EventPattern,
    PatternTarget,
    TemplateAnalysis,
    TemplateParameterDefinition,
    TemplateUsage,
    TestTemplate,
)

__all__ = [
    "PatternExtractor",
    "substitute",
    "EventPattern",
    "PatternTarget",
    "TemplateParameterDefinition",
    "TemplateUsage",
    "TestTemplate",
    "TemplateAnalysis",
]

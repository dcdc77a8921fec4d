"""Code templates.

A small logic-aware template language used to render generated test files,
page objects, config files and helpers.

Example:
    from browser_recorder.templates import TemplateEngine

    engine = TemplateEngine()
    engine.render_string("Hello {{#if age >= 18}}adult{{else}}minor{{/if}}", {"age": 20})
"""

from .builtin import BUILTIN_TEMPLATES
from .engine import TemplateEngine, evaluate_condition, parse, resolve_path
from .models import (
    GENERIC_FRAMEWORK,
    CodeTemplate,
    TemplateCategory,
    TemplatePlaceholder,
)

__all__ = [
    "TemplateEngine",
    "CodeTemplate",
    "TemplatePlaceholder",
    "TemplateCategory",
    "GENERIC_FRAMEWORK",
    "BUILTIN_TEMPLATES",
    "parse",
    "evaluate_condition",
    "resolve_path",
]

"""Template engine - renders code templates with conditionals, loops and includes.

Supported syntax:

- ``{{path.to.value}}`` variable substitution
- ``{{#if cond}} ... {{else}} ... {{/if}}`` where ``cond`` is a bare path
  (truthiness, ``!`` negates) or a comparison using ``=== !== == != >= <= > <``
- ``{{#each items as item}} ... {{/each}}`` exposing ``item``,
  ``item_index``, ``item_first`` and ``item_last``
- ``{{>include other-template-id}}``

A block tag alone on its line consumes the whole line. A variable or include
alone on its line indents every following line of a multi-line value to the
tag's column.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from ..exceptions import (
    TemplateError,
    TemplateNotFoundError,
    TemplateSyntaxError,
    TemplateValidationError,
)
from .builtin import BUILTIN_TEMPLATES
from .models import CodeTemplate, TemplateCategory, TemplatePlaceholder

logger = structlog.get_logger()

TAG_PATTERN = re.compile(r"\{\{(.*?)\}\}")
STANDALONE_TAG_PATTERN = re.compile(r"^([ \t]*)\{\{((?:(?!\{\{|\}\}).)*)\}\}[ \t]*(\r?\n)?$")
EACH_PATTERN = re.compile(r"^#each\s+(\S+)(?:\s+as\s+([A-Za-z_]\w*))?$")
INCLUDE_PATTERN = re.compile(r"^>\s*(?:include\s+)?(\S+)$")
CONDITION_PATTERN = re.compile(r"^(.+?)\s*(===|!==|==|!=|>=|<=|>|<)\s*(.+)$")
NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")

MAX_INCLUDE_DEPTH = 10

_MISSING = object()


# ----------------------------------------------------------------------
# Parse tree
# ----------------------------------------------------------------------


@dataclass
class TextNode:
    text: str


@dataclass
class VarNode:
    path: str
    indent: Optional[str] = None


@dataclass
class IncludeNode:
    template_id: str
    indent: Optional[str] = None


@dataclass
class IfNode:
    condition: str
    body: list = field(default_factory=list)
    else_body: list = field(default_factory=list)


@dataclass
class EachNode:
    path: str
    alias: str
    body: list = field(default_factory=list)


@dataclass
class _Token:
    kind: str  # "text" or "tag"
    value: str
    indent: Optional[str] = None


def _is_block_tag(content: str) -> bool:
    return content.startswith(("#", "/")) or content == "else"


def tokenize(source: str) -> list[_Token]:
    """Split template source into text and tag tokens, line aware."""
    tokens: list[_Token] = []
    for line in source.splitlines(keepends=True):
        standalone = STANDALONE_TAG_PATTERN.match(line)
        if standalone:
            indent, content, newline = standalone.group(1), standalone.group(2).strip(), standalone.group(3) or ""
            if _is_block_tag(content):
                tokens.append(_Token("tag", content))
                continue
            tokens.append(_Token("text", indent))
            tokens.append(_Token("tag", content, indent=indent))
            tokens.append(_Token("text", newline))
            continue

        position = 0
        for match in TAG_PATTERN.finditer(line):
            if match.start() > position:
                tokens.append(_Token("text", line[position:match.start()]))
            tokens.append(_Token("tag", match.group(1).strip()))
            position = match.end()
        if position < len(line):
            tokens.append(_Token("text", line[position:]))
    return tokens


def parse(source: str) -> list:
    """Parse template source into a node tree.

    Raises:
        TemplateSyntaxError: On unbalanced or malformed tags
    """
    nodes, position, terminator = _parse_nodes(tokenize(source), 0)
    if terminator is not None:
        raise TemplateSyntaxError(f"Unexpected {{{{{terminator}}}}} without an open block")
    return nodes


def _parse_nodes(tokens: list[_Token], position: int) -> tuple[list, int, Optional[str]]:
    """Parse until a closing/else tag or the end of input.

    Returns:
        (nodes, next position, terminating tag or None at end of input)
    """
    nodes: list = []
    while position < len(tokens):
        token = tokens[position]
        position += 1

        if token.kind == "text":
            if token.value:
                nodes.append(TextNode(token.value))
            continue

        content = token.value
        if content in ("else", "/if", "/each"):
            return nodes, position, content

        if content.startswith("#if"):
            condition = content[3:].strip()
            if not condition:
                raise TemplateSyntaxError("{{#if}} requires a condition")
            node = IfNode(condition)
            node.body, position, terminator = _parse_nodes(tokens, position)
            if terminator == "else":
                node.else_body, position, terminator = _parse_nodes(tokens, position)
            if terminator != "/if":
                raise TemplateSyntaxError(f"Unclosed {{{{#if {condition}}}}}")
            nodes.append(node)

        elif content.startswith("#each"):
            match = EACH_PATTERN.match(content)
            if not match:
                raise TemplateSyntaxError(f"Malformed each tag: {{{{{content}}}}}")
            node = EachNode(match.group(1), match.group(2) or "item")
            node.body, position, terminator = _parse_nodes(tokens, position)
            if terminator != "/each":
                raise TemplateSyntaxError(f"Unclosed {{{{#each {node.path}}}}}")
            nodes.append(node)

        elif content.startswith(">"):
            match = INCLUDE_PATTERN.match(content)
            if not match:
                raise TemplateSyntaxError(f"Malformed include tag: {{{{{content}}}}}")
            nodes.append(IncludeNode(match.group(1), indent=token.indent))

        elif content.startswith(("#", "/")):
            raise TemplateSyntaxError(f"Unknown block tag: {{{{{content}}}}}")

        elif not content:
            raise TemplateSyntaxError("Empty tag")

        else:
            nodes.append(VarNode(content, indent=token.indent))

    return nodes, position, None


# ----------------------------------------------------------------------
# Value helpers
# ----------------------------------------------------------------------


def resolve_path(path: str, context: Mapping[str, Any]) -> Any:
    """Resolve a dotted path such as ``user.address.city``.

    Returns ``None`` when any segment is missing.
    """
    value: Any = context
    for part in path.split("."):
        if isinstance(value, Mapping):
            value = value.get(part, _MISSING)
        elif isinstance(value, (list, tuple)) and part.isdigit():
            index = int(part)
            value = value[index] if index < len(value) else _MISSING
        elif value is None or isinstance(value, (str, int, float, list, tuple)):
            return None
        else:
            value = getattr(value, part, _MISSING)
        if value is _MISSING:
            return None
    return value


def stringify(value: Any) -> str:
    """Render a context value as template output."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return "\n".join(stringify(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and NUMBER_PATTERN.match(value.strip()):
        return float(value.strip())
    return None


def _strict_equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


def _loose_equal(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    left_number, right_number = _to_number(left), _to_number(right)
    if left_number is not None and right_number is not None:
        return left_number == right_number
    return stringify(left) == stringify(right)


def _compare(left: Any, operator: str, right: Any) -> bool:
    if operator == "===":
        return _strict_equal(left, right)
    if operator == "!==":
        return not _strict_equal(left, right)
    if operator == "==":
        return _loose_equal(left, right)
    if operator == "!=":
        return not _loose_equal(left, right)

    if left is None or right is None:
        return False
    left_number, right_number = _to_number(left), _to_number(right)
    if left_number is not None and right_number is not None:
        left, right = left_number, right_number
    else:
        left, right = stringify(left), stringify(right)

    if operator == ">=":
        return left >= right
    if operator == "<=":
        return left <= right
    if operator == ">":
        return left > right
    return left < right


def _operand(token: str, context: Mapping[str, Any]) -> Any:
    token = token.strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "'\"":
        return token[1:-1]
    if token == "true":
        return True
    if token == "false":
        return False
    if token in ("null", "undefined"):
        return None
    if NUMBER_PATTERN.match(token):
        return float(token) if "." in token else int(token)
    return resolve_path(token, context)


def evaluate_condition(condition: str, context: Mapping[str, Any]) -> bool:
    """Evaluate an ``{{#if}}`` condition against a context."""
    match = CONDITION_PATTERN.match(condition)
    if match:
        left, operator, right = match.groups()
        return _compare(_operand(left, context), operator, _operand(right, context))

    condition = condition.strip()
    if condition.startswith("!"):
        return not evaluate_condition(condition[1:], context)
    return bool(_operand(condition, context))


def _indent_value(text: str, indent: Optional[str]) -> str:
    if not indent or "\n" not in text:
        return text
    first, *rest = text.split("\n")
    return "\n".join([first] + [indent + line if line.strip() else line for line in rest])


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------


class TemplateEngine:
    """Catalog of code templates plus a renderer.

    Built-in templates are seeded at construction. User templates registered
    later shadow built-ins with the same id.

    Example:
        engine = TemplateEngine()
        code = engine.render("playwright-ts-basic", {
            "imports": "import { test, expect } from '@playwright/test';",
            "suite_name": "Checkout",
            "test_name": "completes checkout",
            "test_body": "await page.goto('/cart');",
        })
    """

    def __init__(self, builtin_templates: Optional[list[CodeTemplate]] = None):
        """Initialize the engine.

        Args:
            builtin_templates: Built-in catalog (the packaged catalog by default)
        """
        self.log = logger.bind(component="template_engine")
        self._builtin: dict[str, CodeTemplate] = {}
        self._user: dict[str, CodeTemplate] = {}
        self._parsed: dict[str, list] = {}

        for template in BUILTIN_TEMPLATES if builtin_templates is None else builtin_templates:
            self._builtin[template.id] = template

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def register_template(self, template: CodeTemplate) -> None:
        """Add or replace a user template.

        Raises:
            TemplateSyntaxError: If the template source does not parse
        """
        nodes = parse(template.template)
        self._user[template.id] = template
        self._parsed[template.id] = nodes
        self.log.debug(
            "Template registered",
            template_id=template.id,
            framework=template.framework,
            language=template.language,
            overrides_builtin=template.id in self._builtin,
        )

    def unregister_template(self, template_id: str) -> bool:
        """Remove a user template.

        Built-in templates cannot be removed; removing a user template that
        shadows a built-in makes the built-in visible again.

        Returns:
            True if a user template was removed
        """
        if template_id not in self._user:
            return False
        del self._user[template_id]
        self.invalidate(template_id)
        return True

    def has_template(self, template_id: str) -> bool:
        return template_id in self._user or template_id in self._builtin

    def get_template(self, template_id: str) -> CodeTemplate:
        """Look up a template, user catalog first.

        Raises:
            TemplateNotFoundError: If neither catalog has the id
        """
        template = self._user.get(template_id) or self._builtin.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def list_templates(
        self,
        category: Optional[Union[TemplateCategory, str]] = None,
        framework: Optional[str] = None,
        language: Optional[str] = None,
    ) -> list[CodeTemplate]:
        """List visible templates, optionally filtered."""
        merged = dict(self._builtin)
        merged.update(self._user)
        category = TemplateCategory(category) if category else None
        return [
            t for t in merged.values()
            if (category is None or t.category == category) and t.matches(framework, language)
        ]

    def get_templates_for_framework(self, framework: str, language: Optional[str] = None) -> list[CodeTemplate]:
        """Templates usable with a framework (including generic ones)."""
        return self.list_templates(framework=framework, language=language)

    def invalidate(self, template_id: Optional[str] = None) -> None:
        """Drop parsed trees for one template, or all of them."""
        if template_id is None:
            self._parsed.clear()
        else:
            self._parsed.pop(template_id, None)

    # ------------------------------------------------------------------
    # Interchange
    # ------------------------------------------------------------------

    def export_template(self, template_id: str) -> str:
        """Serialize a template to JSON."""
        return self.get_template(template_id).model_dump_json(indent=2)

    def import_template(self, data: str) -> CodeTemplate:
        """Register a template from its JSON form.

        Raises:
            TemplateValidationError: If the JSON is not a valid template
        """
        try:
            template = CodeTemplate.model_validate_json(data)
        except ValidationError as e:
            errors = [f"{'.'.join(str(p) for p in err['loc']) or 'template'}: {err['msg']}" for err in e.errors()]
            raise TemplateValidationError(errors) from e
        self.register_template(template)
        return template

    def clone_template(self, template_id: str, new_id: Optional[str] = None, **changes) -> CodeTemplate:
        """Copy a template under a new id and register the copy.

        Args:
            template_id: Template to copy
            new_id: Id for the copy (``<id>-copy`` by default)
            **changes: Field overrides for the copy
        """
        source = self.get_template(template_id)
        data = source.model_dump()
        data.update(changes)
        data["id"] = new_id or f"{template_id}-copy"
        if "name" not in changes:
            data["name"] = f"{source.name} (Copy)"
        clone = CodeTemplate(**data)
        self.register_template(clone)
        return clone

    def create_template_from_code(
        self,
        code: str,
        template_id: str,
        name: str,
        framework: str,
        language: str,
        category: Union[TemplateCategory, str] = TemplateCategory.TEST,
        description: str = "",
    ) -> CodeTemplate:
        """Build a template from existing code, declaring its variables.

        Every variable tag in ``code`` becomes a required string placeholder.
        The template is returned, not registered.
        """
        keys = _collect_variables(parse(code), bound=set())
        placeholders = [
            TemplatePlaceholder(
                key=key,
                name=key.replace("_", " ").replace(".", " ").title(),
                required=True,
            )
            for key in keys
        ]
        return CodeTemplate(
            id=template_id,
            name=name,
            description=description,
            framework=framework,
            language=language,
            category=category,
            template=code,
            placeholders=placeholders,
        )

    # ------------------------------------------------------------------
    # Validation and rendering
    # ------------------------------------------------------------------

    def validate_context(
        self,
        template: Union[CodeTemplate, str],
        context: Mapping[str, Any],
    ) -> list[str]:
        """Check a context against every placeholder of a template.

        Returns:
            Every violation found (empty when valid)
        """
        if isinstance(template, str):
            template = self.get_template(template)
        context = self._with_defaults(template, context)

        errors: list[str] = []
        for placeholder in template.placeholders:
            value = resolve_path(placeholder.key, context)
            if value is None:
                if placeholder.required:
                    errors.append(f"Missing required placeholder: {placeholder.key}")
                continue

            if not _matches_type(value, placeholder.type):
                errors.append(f"Placeholder '{placeholder.key}' must be of type {placeholder.type}")
                continue

            if placeholder.validation and not re.search(placeholder.validation, stringify(value)):
                errors.append(f"Placeholder '{placeholder.key}' does not match pattern {placeholder.validation}")

            if placeholder.options and value not in placeholder.options:
                allowed = ", ".join(stringify(o) for o in placeholder.options)
                errors.append(f"Placeholder '{placeholder.key}' must be one of: {allowed}")
        return errors

    def render(self, template_id: str, context: Mapping[str, Any], validate: bool = False) -> str:
        """Render a template.

        Args:
            template_id: Template to render
            context: Values available to the template
            validate: Check the context against the placeholders first

        Returns:
            Rendered text

        Raises:
            TemplateNotFoundError: If the id (or an included id) is unknown
            TemplateValidationError: If ``validate`` is set and the context is invalid
        """
        template = self.get_template(template_id)
        if validate:
            errors = self.validate_context(template, context)
            if errors:
                raise TemplateValidationError(errors, template_id=template_id)

        output = self._render_template(template, context, depth=0)
        self.log.debug("Template rendered", template_id=template_id, length=len(output))
        return output

    def render_string(self, source: str, context: Mapping[str, Any]) -> str:
        """Render ad-hoc template source that is not in the catalog."""
        return self._render_nodes(parse(source), dict(context), depth=0)

    def _render_template(self, template: CodeTemplate, context: Mapping[str, Any], depth: int) -> str:
        if depth > MAX_INCLUDE_DEPTH:
            raise TemplateError(f"Include depth exceeded {MAX_INCLUDE_DEPTH} rendering '{template.id}'")
        return self._render_nodes(self._nodes_for(template), self._with_defaults(template, context), depth)

    def _nodes_for(self, template: CodeTemplate) -> list:
        nodes = self._parsed.get(template.id)
        if nodes is None:
            nodes = parse(template.template)
            self._parsed[template.id] = nodes
        return nodes

    @staticmethod
    def _with_defaults(template: CodeTemplate, context: Mapping[str, Any]) -> dict[str, Any]:
        merged = dict(context)
        for placeholder in template.placeholders:
            if placeholder.default_value is not None and resolve_path(placeholder.key, merged) is None:
                if "." not in placeholder.key:
                    merged[placeholder.key] = placeholder.default_value
        return merged

    def _render_nodes(self, nodes: list, context: dict[str, Any], depth: int) -> str:
        parts: list[str] = []
        for node in nodes:
            if isinstance(node, TextNode):
                parts.append(node.text)
            elif isinstance(node, VarNode):
                parts.append(_indent_value(stringify(resolve_path(node.path, context)), node.indent))
            elif isinstance(node, IfNode):
                branch = node.body if evaluate_condition(node.condition, context) else node.else_body
                parts.append(self._render_nodes(branch, context, depth))
            elif isinstance(node, EachNode):
                parts.append(self._render_each(node, context, depth))
            elif isinstance(node, IncludeNode):
                included = self._render_template(self.get_template(node.template_id), context, depth + 1)
                parts.append(_indent_value(included, node.indent))
        return "".join(parts)

    def _render_each(self, node: EachNode, context: dict[str, Any], depth: int) -> str:
        items = resolve_path(node.path, context)
        if not isinstance(items, (list, tuple)):
            return ""

        parts = []
        last = len(items) - 1
        for index, item in enumerate(items):
            scope = dict(context)
            scope[node.alias] = item
            scope[f"{node.alias}_index"] = index
            scope[f"{node.alias}_first"] = index == 0
            scope[f"{node.alias}_last"] = index == last
            parts.append(self._render_nodes(node.body, scope, depth))
        return "".join(parts)


def _matches_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, (list, tuple))
    if expected == "object":
        return isinstance(value, dict)
    return True


def _collect_variables(nodes: list, bound: set[str]) -> list[str]:
    """Variable paths used by a node tree, excluding loop-bound names."""
    keys: list[str] = []

    def add(path: str) -> None:
        if path.split(".")[0] not in bound and path not in keys:
            keys.append(path)

    for node in nodes:
        if isinstance(node, VarNode):
            add(node.path)
        elif isinstance(node, IfNode):
            for key in _collect_variables(node.body, bound) + _collect_variables(node.else_body, bound):
                add(key)
        elif isinstance(node, EachNode):
            add(node.path)
            alias = node.alias
            inner = bound | {alias, f"{alias}_index", f"{alias}_first", f"{alias}_last"}
            for key in _collect_variables(node.body, inner):
                add(key)
    return keys

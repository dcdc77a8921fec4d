"""Import and dependency tracking for generated test files."""

import re
from dataclasses import dataclass, field
from typing import Optional

from ..models import FRAMEWORK_DEPENDENCIES, Framework, Language


@dataclass
class ImportSpec:
    """One module imported by a generated file."""

    module: str
    items: list[str] = field(default_factory=list)
    alias: Optional[str] = None
    default: Optional[str] = None  # default export binding, JS/TS only
    is_type_import: bool = False  # TypeScript ``import type``

    def merge(self, other: "ImportSpec") -> None:
        self.items += [item for item in other.items if item not in self.items]
        self.alias = self.alias or other.alias
        self.default = self.default or other.default


# Regex over generated code -> add_import() keyword arguments
SymbolImports = dict[str, dict]

# Imports every test file of a framework starts with. A ``None`` language
# key applies to any language without its own entry.
_BASE_IMPORTS: dict[Framework, dict[Optional[Language], list[dict]]] = {
    Framework.PLAYWRIGHT: {
        Language.PYTHON: [{"module": "playwright.sync_api", "items": ["Page", "expect"]}],
        None: [{"module": "@playwright/test", "items": ["test", "expect"]}],
    },
    Framework.SELENIUM: {
        None: [
            {"module": "unittest"},
            {"module": "selenium", "items": ["webdriver"]},
            {"module": "selenium.webdriver.common.by", "items": ["By"]},
        ],
    },
    Framework.PUPPETEER: {
        Language.TYPESCRIPT: [
            {"module": "puppeteer", "default": "puppeteer"},
            {"module": "puppeteer", "items": ["Browser", "Page"], "is_type_import": True},
        ],
        None: [{"module": "puppeteer", "default": "puppeteer"}],
    },
}


def _python_line(spec: ImportSpec) -> str:
    suffix = f" as {spec.alias}" if spec.alias else ""
    if spec.items:
        return f"from {spec.module} import {', '.join(spec.items)}{suffix}"
    return f"import {spec.module}{suffix}"


def _typescript_line(spec: ImportSpec) -> str:
    names = f"{{ {', '.join(spec.items)} }}" if spec.items else ""
    if spec.is_type_import:
        return f"import type {names} from '{spec.module}';"
    if spec.default:
        binding = f"{spec.default}, {names}" if names else spec.default
        return f"import {binding} from '{spec.module}';"
    if names:
        return f"import {names} from '{spec.module}';"
    if spec.alias:
        return f"import * as {spec.alias} from '{spec.module}';"
    return f"import '{spec.module}';"


def _javascript_lines(spec: ImportSpec) -> list[str]:
    if spec.is_type_import:
        return []
    source = f"require('{spec.module}')"
    lines = [f"const {spec.default} = {source};"] if spec.default else []
    if spec.items:
        lines.append(f"const {{ {', '.join(spec.items)} }} = {source};")
    elif spec.alias:
        lines.append(f"const {spec.alias} = {source};")
    elif not lines:
        lines.append(f"{source};")
    return lines


class ImportsManager:
    """Collects the imports a generated file needs and renders them.

    Imports of the same module merge their items in first-seen order.
    TypeScript type imports are tracked apart from value imports of the
    same module.
    """

    def __init__(self, language: Language, framework: Framework, include_base: bool = True):
        self.language = language
        self.framework = framework
        self._imports: list[ImportSpec] = []
        if include_base:
            by_language = _BASE_IMPORTS.get(framework, {})
            for kwargs in by_language.get(language, by_language.get(None, [])):
                self.add_import(**kwargs)

    @property
    def imports(self) -> list[ImportSpec]:
        return list(self._imports)

    def add_import(
        self,
        module: str,
        items: Optional[list[str]] = None,
        alias: Optional[str] = None,
        default: Optional[str] = None,
        is_type_import: bool = False,
    ):
        spec = ImportSpec(module, list(items or []), alias, default, is_type_import)
        for existing in self._imports:
            if existing.module == module and existing.is_type_import == is_type_import:
                existing.merge(spec)
                return
        self._imports.append(spec)

    def add_used_imports(self, code: str, symbol_imports: SymbolImports) -> None:
        """Add the imports for every symbol pattern found in ``code``."""
        for pattern, kwargs in symbol_imports.items():
            if re.search(pattern, code):
                self.add_import(**kwargs)

    def get_imports_code(self) -> str:
        """Render the collected imports for the target language."""
        if self.language == Language.PYTHON:
            # plain ``import x`` lines go before ``from x import y``
            ordered = sorted(self._imports, key=lambda spec: bool(spec.items))
            return "\n".join(_python_line(spec) for spec in ordered)
        if self.language == Language.TYPESCRIPT:
            return "\n".join(_typescript_line(spec) for spec in self._imports)
        if self.language == Language.JAVASCRIPT:
            return "\n".join(line for spec in self._imports for line in _javascript_lines(spec))
        return ""

    def get_dependencies(self) -> list[str]:
        """Packages a project needs to run the generated tests."""
        return list(FRAMEWORK_DEPENDENCIES.get((self.framework, self.language), []))

    def get_install_command(self) -> str:
        deps = self.get_dependencies()
        if not deps:
            return ""
        tool = "pip install" if self.language == Language.PYTHON else "npm install --save-dev"
        return f"{tool} {' '.join(deps)}"

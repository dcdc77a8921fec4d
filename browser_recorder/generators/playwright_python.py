"""Playwright test generator for Python (pytest-playwright)."""

from typing import Any, Optional

from .formatters import ImportsManager
from .models import FileType, GeneratedTestFile, Language
from .playwright import PlaywrightGenerator


class PlaywrightPythonGenerator(PlaywrightGenerator):
    """Generates pytest-playwright tests using the sync API."""

    languages = (Language.PYTHON,)
    default_templates = {Language.PYTHON: "playwright-python-pytest"}

    def test_filename(self) -> str:
        return "test_recording.py"

    def _method(self, name: str) -> str:
        return self.to_snake_case(name)

    def _await(self, expression: str) -> str:
        return expression

    def _plain(self, expression: str) -> str:
        return expression

    def _literal(self, value: Any) -> str:
        if isinstance(value, bool):
            return "True" if value else "False"
        return super()._literal(value)

    def _options(self, **options) -> str:
        return ", ".join(f"{self.to_snake_case(key)}={self._literal(value)}" for key, value in options.items())

    def _object(self, **values) -> str:
        pairs = ", ".join(f"{self.q(key)}: {self._literal(value)}" for key, value in values.items())
        return f"{{{pairs}}}"

    def _js_function(self, source: str) -> str:
        return self.q(source)

    def _submit_function(self) -> str:
        return "(form) => form.requestSubmit()"

    def build_test_context(self, body: str) -> dict[str, Any]:
        context = super().build_test_context(body)
        if context["setup"]:
            self.imports.add_import("pytest")
        return context

    def generate_config_file(self) -> Optional[GeneratedTestFile]:
        addopts = ["--browser chromium"]
        if not self.config.headless:
            addopts.append("--headed")
        if self.config.base_url:
            addopts.append(f"--base-url {self.config.base_url}")
        content = self.template_engine.render("pytest-ini", {"addopts": " ".join(addopts)})
        return GeneratedTestFile("pytest.ini", content, FileType.CONFIG)

    def page_object_imports(self, code: str) -> str:
        manager = ImportsManager(self.language, self.framework, include_base=False)
        if "expect(" in code:
            manager.add_import("playwright.sync_api", items=["expect"])
        return manager.get_imports_code()

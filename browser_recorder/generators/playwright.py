"""Playwright test generator (TypeScript and JavaScript)."""

from typing import Any, Optional

from ..recording.models import RecordedEvent
from .base import BaseGenerator
from .formatters import ImportsManager
from .models import FileType, Framework, GeneratedTestFile, Language


class PlaywrightGenerator(BaseGenerator):
    """Generates Playwright tests.

    Statements are assembled from a few syntax primitives (awaiting, method
    naming, option objects, inline browser functions) so the Python flavour
    only overrides those primitives.
    """

    framework = Framework.PLAYWRIGHT
    languages = (Language.TYPESCRIPT, Language.JAVASCRIPT)
    default_templates = {
        Language.TYPESCRIPT: "playwright-ts-basic",
        Language.JAVASCRIPT: "playwright-js-basic",
    }
    handle = "page"
    handle_type = "Page"

    # ------------------------------------------------------------------
    # Syntax primitives
    # ------------------------------------------------------------------

    def _method(self, name: str) -> str:
        return name

    def _await(self, expression: str) -> str:
        return f"await {expression};"

    def _plain(self, expression: str) -> str:
        return f"{expression};"

    def _literal(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, (list, tuple)):
            return f"[{', '.join(self._literal(v) for v in value)}]"
        return self.q(value)

    def _options(self, **options) -> str:
        """Trailing options argument."""
        pairs = ", ".join(f"{key}: {self._literal(value)}" for key, value in options.items())
        return f"{{ {pairs} }}"

    def _object(self, **values) -> str:
        """Plain object argument."""
        return self._options(**values)

    def _js_function(self, source: str) -> str:
        """Function evaluated in the browser."""
        return source

    def _call(self, receiver: str, method: str, *args: str) -> str:
        return f"{receiver}.{self._method(method)}({', '.join(args)})"

    def _locator(self, selector: str) -> str:
        return f"page.locator({self.q(selector)})"

    def _expect(self, subject: str, matcher: str, *args: str) -> list[str]:
        return [self._await(self._call(f"expect({subject})", matcher, *args))]

    def _action(self, selector: str, method: str, *args: str) -> list[str]:
        return [self._await(self._call(self._locator(selector), method, *args))]

    def _submit_function(self) -> str:
        if self.is_typescript:
            return "(form) => (form as HTMLFormElement).requestSubmit()"
        return "(form) => form.requestSubmit()"

    # ------------------------------------------------------------------
    # Selectors
    # ------------------------------------------------------------------

    def text_selector(self, tag_name: str, text: str) -> Optional[str]:
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'text="{escaped}"'

    def accepts_selector(self, selector: str) -> bool:
        # Playwright runs CSS, text= and XPath selectors
        return True

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def navigate_statements(self, url: str) -> list[str]:
        return [self._await(self._call("page", "goto", self.q(url)))]

    def wait_for_timeout(self, ms: int) -> Optional[list[str]]:
        return [self._await(self._call("page", "waitForTimeout", str(ms)))]

    def wait_for_network_idle(self) -> Optional[list[str]]:
        return [self._await(self._call("page", "waitForLoadState", self.q("networkidle")))]

    def wait_for_selector(self, selector: str) -> Optional[list[str]]:
        return self._action(selector, "waitFor")

    def emit_click(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._action(selector, "click")

    def emit_dblclick(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._action(selector, "dblclick")

    def emit_contextmenu(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._action(selector, "click", self._options(button="right"))

    def emit_input(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._action(selector, "fill", self.q(event.data.get("value", "")))

    def set_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        return self._action(selector, "check" if checked else "uncheck")

    def select_options(self, selector: str, values: list[str]) -> Optional[list[str]]:
        argument = self.q(values[0]) if len(values) == 1 else self._literal(values)
        return self._action(selector, "selectOption", argument)

    def set_input_files(self, selector: str, files: list[str]) -> Optional[list[str]]:
        argument = self.q(files[0]) if len(files) == 1 else self._literal(files)
        return self._action(selector, "setInputFiles", argument)

    def emit_select(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._action(selector, "selectText")

    def emit_submit(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._action(selector, "evaluate", self._js_function(self._submit_function()))

    def emit_keydown(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        key = event.data.get("key")
        if not key:
            return None
        return [self._await(self._call("page.keyboard", "down", self.q(key)))]

    def emit_keyup(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        key = event.data.get("key")
        if not key:
            return None
        return [self._await(self._call("page.keyboard", "up", self.q(key)))]

    def emit_keypress(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        key = event.data.get("key")
        if not key:
            return None
        if selector:
            return self._action(selector, "press", self.q(key))
        return [self._await(self._call("page.keyboard", "press", self.q(key)))]

    def emit_scroll(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        x, y = self.scroll_position(event)
        if not selector or event.data.get("element") == "window":
            function = self._js_function(f"() => window.scrollTo({x}, {y})")
            return [self._await(self._call("page", "evaluate", function))]
        return self._action(selector, "evaluate", self._js_function(f"(el) => el.scrollTo({x}, {y})"))

    def emit_wheel(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        delta_x, delta_y = self.wheel_delta(event)
        return [self._await(self._call("page.mouse", "wheel", str(delta_x), str(delta_y)))]

    def emit_focus(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._action(selector, "focus")

    def emit_blur(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._action(selector, "blur")

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    def assert_url(self, url: str) -> Optional[list[str]]:
        return self._expect("page", "toHaveURL", self.q(url))

    def assert_title(self, title: str) -> Optional[list[str]]:
        return self._expect("page", "toHaveTitle", self.q(title))

    def assert_visible(self, selector: str) -> Optional[list[str]]:
        return self._expect(self._locator(selector), "toBeVisible")

    def assert_hidden(self, selector: str) -> Optional[list[str]]:
        return self._expect(self._locator(selector), "toBeHidden")

    def assert_enabled(self, selector: str) -> Optional[list[str]]:
        return self._expect(self._locator(selector), "toBeEnabled")

    def assert_disabled(self, selector: str) -> Optional[list[str]]:
        return self._expect(self._locator(selector), "toBeDisabled")

    def assert_text(self, selector: str, text: str) -> Optional[list[str]]:
        return self._expect(self._locator(selector), "toContainText", self.q(text))

    def assert_text_equals(self, selector: str, text: str) -> Optional[list[str]]:
        return self._expect(self._locator(selector), "toHaveText", self.q(text))

    def assert_value(self, selector: str, value: str) -> Optional[list[str]]:
        return self._expect(self._locator(selector), "toHaveValue", self.q(value))

    def assert_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        if checked:
            return self._expect(self._locator(selector), "toBeChecked")
        return self._expect(self._locator(selector), "toBeChecked", self._options(checked=False))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def generate_setup_code(self) -> str:
        viewport = self.config.viewport
        size = self._object(width=viewport.width, height=viewport.height)
        return "\n".join([
            self._await(self._call("page", "setViewportSize", size)),
            self._plain(self._call("page", "setDefaultTimeout", str(self.config.timeout_ms))),
        ])

    def generate_teardown_code(self) -> str:
        return ""

    def generate_config_file(self) -> Optional[GeneratedTestFile]:
        manager = ImportsManager(self.language, self.framework, include_base=False)
        manager.add_import("@playwright/test", items=["defineConfig"])
        context = {
            "imports": manager.get_imports_code(),
            "typescript": self.is_typescript,
            "test_dir": ".",
            "timeout": self.config.timeout_ms,
            "base_url": self.config.base_url,
            "headless": self.config.headless,
            "viewport": {"width": self.config.viewport.width, "height": self.config.viewport.height},
            "action_timeout": self.config.timeout_ms,
        }
        template_id = "playwright-config-ts" if self.is_typescript else "playwright-config-js"
        content = self.template_engine.render(template_id, context)
        return GeneratedTestFile(f"playwright.config.{self.extension}", content, FileType.CONFIG)

    def page_object_imports(self, code: str) -> str:
        manager = ImportsManager(self.language, self.framework, include_base=False)
        if "expect(" in code:
            manager.add_import("@playwright/test", items=["expect"])
        if self.is_typescript:
            manager.add_import("@playwright/test", items=["Page"], is_type_import=True)
        return manager.get_imports_code()

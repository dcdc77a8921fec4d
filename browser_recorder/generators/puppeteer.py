"""Puppeteer test generator (Jest runner)."""

from typing import Any, Optional

from ..recording.models import RecordedEvent
from .base import BaseGenerator
from .formatters import ImportsManager
from .models import FileType, Framework, GeneratedTestFile, Language

# Characters that would need quoting inside ::-p-text()
P_TEXT_RESERVED = set("()\"'\\")


class PuppeteerGenerator(BaseGenerator):
    """Generates Puppeteer tests run by Jest."""

    framework = Framework.PUPPETEER
    languages = (Language.JAVASCRIPT, Language.TYPESCRIPT)
    default_templates = {
        Language.JAVASCRIPT: "puppeteer-jest-basic",
        Language.TYPESCRIPT: "puppeteer-jest-ts",
    }
    handle = "page"
    handle_type = "Page"
    relative_urls = False

    symbol_imports = {
        r"\bElementHandle<": {"module": "puppeteer", "items": ["ElementHandle"], "is_type_import": True},
    }

    def _cast(self, expression: str, type_name: str) -> str:
        return f"({expression} as {type_name})" if self.is_typescript else expression

    def _locator(self, selector: str) -> str:
        return f"page.locator({self.q(selector)})"

    def _eval(self, selector: str, function: str) -> str:
        return f"page.$eval({self.q(selector)}, {function})"

    def text_selector(self, tag_name: str, text: str) -> Optional[str]:
        if P_TEXT_RESERVED & set(text):
            return None
        return f"{tag_name}::-p-text({text})"

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def navigate_statements(self, url: str) -> list[str]:
        return [f"await page.goto({self.q(url)});"]

    def wait_for_timeout(self, ms: int) -> Optional[list[str]]:
        return [f"await new Promise((resolve) => setTimeout(resolve, {ms}));"]

    def wait_for_network_idle(self) -> Optional[list[str]]:
        return ["await page.waitForNetworkIdle();"]

    def wait_for_selector(self, selector: str) -> Optional[list[str]]:
        return [f"await page.waitForSelector({self.q(selector)});"]

    def emit_click(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"await {self._locator(selector)}.click();"]

    def emit_dblclick(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"await {self._locator(selector)}.click({{ count: 2 }});"]

    def emit_contextmenu(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"await {self._locator(selector)}.click({{ button: 'right' }});"]

    def emit_input(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        value = str(event.data.get("value", ""))
        return [f"await {self._locator(selector)}.fill({self.q(value)});"]

    def set_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        box = self._cast("el", "HTMLInputElement")
        expected = "true" if checked else "false"
        function = f"(el) => {{ if ({box}.checked !== {expected}) {box}.click(); }}"
        return [f"await {self._eval(selector, function)};"]

    def select_options(self, selector: str, values: list[str]) -> Optional[list[str]]:
        arguments = ", ".join(self.q(value) for value in values)
        return [f"await page.select({self.q(selector)}, {arguments});"]

    def emit_select(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        function = f"(el) => {self._cast('el', 'HTMLInputElement')}.select()"
        return [f"await {self._eval(selector, function)};"]

    def set_input_files(self, selector: str, files: list[str]) -> Optional[list[str]]:
        handle = f"await page.$({self.q(selector)})"
        handle = self._cast(handle, "ElementHandle<HTMLInputElement>") if self.is_typescript else f"({handle})"
        arguments = ", ".join(self.q(name) for name in files)
        return [f"await {handle}.uploadFile({arguments});"]

    def emit_submit(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        function = f"(form) => {self._cast('form', 'HTMLFormElement')}.requestSubmit()"
        return [f"await {self._eval(selector, function)};"]

    def emit_keydown(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        key = event.data.get("key")
        return [f"await page.keyboard.down({self.q(key)});"] if key else None

    def emit_keyup(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        key = event.data.get("key")
        return [f"await page.keyboard.up({self.q(key)});"] if key else None

    def emit_keypress(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        key = event.data.get("key")
        if not key:
            return None
        lines = [f"await page.focus({self.q(selector)});"] if selector else []
        lines.append(f"await page.keyboard.press({self.q(key)});")
        return lines

    def emit_scroll(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        x, y = self.scroll_position(event)
        if not selector or event.data.get("element") == "window":
            return [f"await page.evaluate(() => window.scrollTo({x}, {y}));"]
        return [f"await {self._eval(selector, f'(el) => el.scrollTo({x}, {y})')};"]

    def emit_wheel(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        delta_x, delta_y = self.wheel_delta(event)
        return [f"await page.mouse.wheel({{ deltaX: {delta_x}, deltaY: {delta_y} }});"]

    def emit_focus(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"await page.focus({self.q(selector)});"]

    def emit_blur(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        function = f"(el) => {self._cast('el', 'HTMLElement')}.blur()"
        return [f"await {self._eval(selector, function)};"]

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    def assert_url(self, url: str) -> Optional[list[str]]:
        return [f"expect(page.url()).toContain({self.q(url)});"]

    def assert_title(self, title: str) -> Optional[list[str]]:
        return [f"expect(await page.title()).toBe({self.q(title)});"]

    def assert_visible(self, selector: str) -> Optional[list[str]]:
        return [f"await page.waitForSelector({self.q(selector)}, {{ visible: true }});"]

    def assert_hidden(self, selector: str) -> Optional[list[str]]:
        return [f"await page.waitForSelector({self.q(selector)}, {{ hidden: true }});"]

    def assert_enabled(self, selector: str) -> Optional[list[str]]:
        function = f"(el) => {self._cast('el', 'HTMLInputElement')}.disabled"
        return [f"expect(await {self._eval(selector, function)}).toBe(false);"]

    def assert_disabled(self, selector: str) -> Optional[list[str]]:
        function = f"(el) => {self._cast('el', 'HTMLInputElement')}.disabled"
        return [f"expect(await {self._eval(selector, function)}).toBe(true);"]

    def assert_text(self, selector: str, text: str) -> Optional[list[str]]:
        return [f"expect(await {self._eval(selector, '(el) => el.textContent')}).toContain({self.q(text)});"]

    def assert_text_equals(self, selector: str, text: str) -> Optional[list[str]]:
        function = "(el) => el.textContent?.trim()"
        return [f"expect(await {self._eval(selector, function)}).toBe({self.q(text.strip())});"]

    def assert_value(self, selector: str, value: str) -> Optional[list[str]]:
        function = f"(el) => {self._cast('el', 'HTMLInputElement')}.value"
        return [f"expect(await {self._eval(selector, function)}).toBe({self.q(value)});"]

    def assert_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        function = f"(el) => {self._cast('el', 'HTMLInputElement')}.checked"
        return [f"expect(await {self._eval(selector, function)}).toBe({'true' if checked else 'false'});"]

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def generate_setup_code(self) -> str:
        viewport = self.config.viewport
        headless = "true" if self.config.headless else "false"
        return "\n".join([
            f"browser = await puppeteer.launch({{ headless: {headless} }});",
            "page = await browser.newPage();",
            f"await page.setViewport({{ width: {viewport.width}, height: {viewport.height} }});",
            f"page.setDefaultTimeout({self.config.timeout_ms});",
        ])

    def generate_teardown_code(self) -> str:
        return "await browser.close();"

    def build_test_context(self, body: str) -> dict[str, Any]:
        context = super().build_test_context(body)
        # The suite owns the browser, so launch and close are always emitted
        context["setup"] = self.generate_setup_code()
        context["teardown"] = self.generate_teardown_code()
        return context

    def generate_config_file(self) -> Optional[GeneratedTestFile]:
        context = {
            "timeout": self.config.timeout_ms,
            "extension": self.extension,
            "typescript": self.is_typescript,
        }
        content = self.template_engine.render("jest-puppeteer-config", context)
        return GeneratedTestFile("jest.config.js", content, FileType.CONFIG)

    def generate_helpers(self) -> list[GeneratedTestFile]:
        content = self.template_engine.render(
            "puppeteer-utils",
            {"typescript": self.is_typescript, "timeout": self.config.timeout_ms},
        )
        return [GeneratedTestFile(f"utils/puppeteer-utils.{self.extension}", content, FileType.HELPER)]

    def page_object_imports(self, code: str) -> str:
        manager = ImportsManager(self.language, self.framework, include_base=False)
        if self.is_typescript:
            manager.add_import("puppeteer", items=["Page"], is_type_import=True)
            manager.add_used_imports(code, self.symbol_imports)
        return manager.get_imports_code()

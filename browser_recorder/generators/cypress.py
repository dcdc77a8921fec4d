"""Cypress test generator."""

from typing import Optional

from ..recording.models import RecordedEvent
from .base import BaseGenerator
from .formatters import ImportsManager
from .models import FileType, Framework, GeneratedTestFile, Language

# DOM key names to cy.type() special sequences
CYPRESS_KEYS = {
    "Enter": "{enter}",
    "Escape": "{esc}",
    "Backspace": "{backspace}",
    "Delete": "{del}",
    "ArrowUp": "{uparrow}",
    "ArrowDown": "{downarrow}",
    "ArrowLeft": "{leftarrow}",
    "ArrowRight": "{rightarrow}",
    "Home": "{home}",
    "End": "{end}",
    "PageUp": "{pageup}",
    "PageDown": "{pagedown}",
    "Insert": "{insert}",
}


def escape_typed_text(text: str) -> str:
    """Escape text for cy.type(), where ``{`` opens a special sequence."""
    return text.replace("{", "{{}")


class CypressGenerator(BaseGenerator):
    """Generates Cypress end-to-end specs."""

    framework = Framework.CYPRESS
    languages = (Language.JAVASCRIPT, Language.TYPESCRIPT)
    default_templates = {
        Language.JAVASCRIPT: "cypress-js-e2e",
        Language.TYPESCRIPT: "cypress-ts-e2e",
    }
    handle = None
    async_methods = False

    def test_filename(self) -> str:
        return f"cypress/e2e/recording.cy.{self.extension}"

    def _get(self, selector: str) -> str:
        return f"cy.get({self.q(selector)})"

    def _list(self, values: list[str]) -> str:
        return f"[{', '.join(self.q(v) for v in values)}]"

    def _type_sequence(self, key: str) -> Optional[str]:
        if key in CYPRESS_KEYS:
            return CYPRESS_KEYS[key]
        if len(key) == 1:
            return escape_typed_text(key)
        return None

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def navigate_statements(self, url: str) -> list[str]:
        return [f"cy.visit({self.q(url)});"]

    def wait_for_timeout(self, ms: int) -> Optional[list[str]]:
        return [f"cy.wait({ms});"]

    def wait_for_navigation(self) -> Optional[list[str]]:
        return ["cy.document().its('readyState').should('eq', 'complete');"]

    def wait_for_selector(self, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.should('exist');"]

    def emit_click(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.click();"]

    def emit_dblclick(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.dblclick();"]

    def emit_contextmenu(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.rightclick();"]

    def emit_input(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        value = str(event.data.get("value", ""))
        if not value:
            return [f"{self._get(selector)}.clear();"]
        return [f"{self._get(selector)}.clear().type({self.q(escape_typed_text(value))});"]

    def set_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        return [f"{self._get(selector)}.{'check' if checked else 'uncheck'}();"]

    def select_options(self, selector: str, values: list[str]) -> Optional[list[str]]:
        argument = self.q(values[0]) if len(values) == 1 else self._list(values)
        return [f"{self._get(selector)}.select({argument});"]

    def set_input_files(self, selector: str, files: list[str]) -> Optional[list[str]]:
        argument = self.q(files[0]) if len(files) == 1 else self._list(files)
        return [f"{self._get(selector)}.selectFile({argument});"]

    def emit_submit(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.submit();"]

    def emit_keypress(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        sequence = self._type_sequence(event.data.get("key", ""))
        if sequence is None:
            return None
        subject = self._get(selector) if selector else "cy.focused()"
        return [f"{subject}.type({self.q(sequence)});"]

    def _trigger_key(self, event: RecordedEvent, selector: str, name: str) -> Optional[list[str]]:
        key = event.data.get("key")
        if not key:
            return None
        subject = self._get(selector) if selector else "cy.document()"
        return [f"{subject}.trigger('{name}', {{ key: {self.q(key)} }});"]

    def emit_keydown(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._trigger_key(event, selector, "keydown")

    def emit_keyup(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._trigger_key(event, selector, "keyup")

    def emit_scroll(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        x, y = self.scroll_position(event)
        if not selector or event.data.get("element") == "window":
            return [f"cy.scrollTo({x}, {y});"]
        return [f"{self._get(selector)}.scrollTo({x}, {y});"]

    def emit_wheel(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        delta_x, delta_y = self.wheel_delta(event)
        subject = self._get(selector) if selector else "cy.get('body')"
        return [f"{subject}.trigger('wheel', {{ deltaX: {delta_x}, deltaY: {delta_y} }});"]

    def emit_focus(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.focus();"]

    def emit_blur(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.blur();"]

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    def assert_url(self, url: str) -> Optional[list[str]]:
        return [f"cy.url().should('include', {self.q(url)});"]

    def assert_title(self, title: str) -> Optional[list[str]]:
        return [f"cy.title().should('eq', {self.q(title)});"]

    def assert_visible(self, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.should('be.visible');"]

    def assert_hidden(self, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.should('not.be.visible');"]

    def assert_enabled(self, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.should('be.enabled');"]

    def assert_disabled(self, selector: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.should('be.disabled');"]

    def assert_text(self, selector: str, text: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.should('contain', {self.q(text)});"]

    def assert_text_equals(self, selector: str, text: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.should('have.text', {self.q(text)});"]

    def assert_value(self, selector: str, value: str) -> Optional[list[str]]:
        return [f"{self._get(selector)}.should('have.value', {self.q(value)});"]

    def assert_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        chainer = "be.checked" if checked else "not.be.checked"
        return [f"{self._get(selector)}.should('{chainer}');"]

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def generate_setup_code(self) -> str:
        viewport = self.config.viewport
        return f"cy.viewport({viewport.width}, {viewport.height});"

    def generate_teardown_code(self) -> str:
        return ""

    def generate_config_file(self) -> Optional[GeneratedTestFile]:
        manager = ImportsManager(self.language, self.framework, include_base=False)
        manager.add_import("cypress", items=["defineConfig"])
        context = {
            "imports": manager.get_imports_code(),
            "typescript": self.is_typescript,
            "base_url": self.config.base_url,
            "extension": self.extension,
            "viewport": {"width": self.config.viewport.width, "height": self.config.viewport.height},
            "timeout": self.config.timeout_ms,
        }
        template_id = "cypress-config-ts" if self.is_typescript else "cypress-config-js"
        content = self.template_engine.render(template_id, context)
        return GeneratedTestFile(f"cypress.config.{self.extension}", content, FileType.CONFIG)

    def generate_helpers(self) -> list[GeneratedTestFile]:
        content = self.template_engine.render(
            "cypress-commands",
            {"typescript": self.is_typescript, "timeout": self.config.timeout_ms},
        )
        return [GeneratedTestFile(f"cypress/support/commands.{self.extension}", content, FileType.HELPER)]

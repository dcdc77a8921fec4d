"""Selenium WebDriver test generator (Python unittest)."""

from typing import Any, Optional

from ..recording.models import RecordedEvent
from .base import BaseGenerator
from .models import FileType, Framework, GeneratedTestFile, Language

# DOM key names to selenium Keys constants
SELENIUM_KEYS = {
    "Enter": "Keys.ENTER",
    "Escape": "Keys.ESCAPE",
    "Tab": "Keys.TAB",
    "Backspace": "Keys.BACK_SPACE",
    "Delete": "Keys.DELETE",
    "ArrowUp": "Keys.ARROW_UP",
    "ArrowDown": "Keys.ARROW_DOWN",
    "ArrowLeft": "Keys.ARROW_LEFT",
    "ArrowRight": "Keys.ARROW_RIGHT",
    "Home": "Keys.HOME",
    "End": "Keys.END",
    "PageUp": "Keys.PAGE_UP",
    "PageDown": "Keys.PAGE_DOWN",
    "Shift": "Keys.SHIFT",
    "Control": "Keys.CONTROL",
    "Alt": "Keys.ALT",
    "Meta": "Keys.META",
    " ": "Keys.SPACE",
}


class SeleniumGenerator(BaseGenerator):
    """Generates Selenium unittest test cases driving Chrome."""

    framework = Framework.SELENIUM
    languages = (Language.PYTHON,)
    default_templates = {Language.PYTHON: "selenium-python-unittest"}
    handle = "driver"
    handle_type = "WebDriver"
    relative_urls = False
    async_methods = False

    symbol_imports = {
        r"\bBy\.": {"module": "selenium.webdriver.common.by", "items": ["By"]},
        r"\bKeys\.": {"module": "selenium.webdriver.common.keys", "items": ["Keys"]},
        r"\bActionChains\(": {"module": "selenium.webdriver.common.action_chains", "items": ["ActionChains"]},
        r"\bSelect\(": {"module": "selenium.webdriver.support.ui", "items": ["Select"]},
        r"\bWebDriverWait\(": {"module": "selenium.webdriver.support.ui", "items": ["WebDriverWait"]},
        r"\bEC\.": {"module": "selenium.webdriver.support", "items": ["expected_conditions"], "alias": "EC"},
        r"\btime\.sleep\(": {"module": "time"},
        r"\bos\.path\.": {"module": "os"},
    }

    def test_filename(self) -> str:
        return "test_recording.py"

    def _by(self, selector: str) -> str:
        return "By.XPATH" if selector.startswith(("//", "/html")) else "By.CSS_SELECTOR"

    def _find(self, selector: str) -> str:
        return f"driver.find_element({self._by(selector)}, {self.q(selector)})"

    def _actions(self, chain: str) -> list[str]:
        return [f"ActionChains(driver).{chain}.perform()"]

    def _key(self, key: Optional[str]) -> Optional[str]:
        if not key:
            return None
        if key in SELENIUM_KEYS:
            return SELENIUM_KEYS[key]
        if len(key) == 1:
            return self.q(key)
        return None

    @property
    def _timeout_seconds(self) -> str:
        return f"{self.config.timeout_ms / 1000:g}"

    def accepts_selector(self, selector: str) -> bool:
        return not selector.startswith(("text=", "xpath="))

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def navigate_statements(self, url: str) -> list[str]:
        return [f"driver.get({self.q(url)})"]

    def wait_for_timeout(self, ms: int) -> Optional[list[str]]:
        return [f"time.sleep({ms / 1000:g})"]

    def wait_for_navigation(self) -> Optional[list[str]]:
        ready = 'lambda d: d.execute_script("return document.readyState") == "complete"'
        return [f"WebDriverWait(driver, {self._timeout_seconds}).until({ready})"]

    def wait_for_selector(self, selector: str) -> Optional[list[str]]:
        locator = f"({self._by(selector)}, {self.q(selector)})"
        return [
            f"WebDriverWait(driver, {self._timeout_seconds}).until("
            f"EC.presence_of_element_located({locator}))"
        ]

    def emit_click(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"{self._find(selector)}.click()"]

    def emit_dblclick(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._actions(f"double_click({self._find(selector)})")

    def emit_contextmenu(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return self._actions(f"context_click({self._find(selector)})")

    def emit_input(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        value = str(event.data.get("value", ""))
        lines = [f"element = {self._find(selector)}", "element.clear()"]
        if value:
            lines.append(f"element.send_keys({self.q(value)})")
        return lines

    def set_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        condition = "not checkbox.is_selected()" if checked else "checkbox.is_selected()"
        return [
            f"checkbox = {self._find(selector)}",
            f"if {condition}:",
            "    checkbox.click()",
        ]

    def select_options(self, selector: str, values: list[str]) -> Optional[list[str]]:
        lines = [f"select = Select({self._find(selector)})"]
        lines.extend(f"select.select_by_value({self.q(value)})" for value in values)
        return lines

    def set_input_files(self, selector: str, files: list[str]) -> Optional[list[str]]:
        # File inputs take absolute paths, several joined by newlines
        lines = [f"element = {self._find(selector)}"]
        if not files:
            lines.append("element.clear()")
        elif len(files) == 1:
            lines.append(f"element.send_keys(os.path.abspath({self.q(files[0])}))")
        else:
            names = ", ".join(self.q(name) for name in files)
            lines.append(f'element.send_keys("\\n".join(os.path.abspath(name) for name in [{names}]))')
        return lines

    def emit_submit(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f"{self._find(selector)}.submit()"]

    def emit_keypress(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        key = self._key(event.data.get("key"))
        if key is None:
            return None
        if selector:
            return [f"{self._find(selector)}.send_keys({key})"]
        return self._actions(f"send_keys({key})")

    def emit_keydown(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        key = self._key(event.data.get("key"))
        return self._actions(f"key_down({key})") if key else None

    def emit_keyup(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        key = self._key(event.data.get("key"))
        return self._actions(f"key_up({key})") if key else None

    def emit_scroll(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        x, y = self.scroll_position(event)
        if not selector or event.data.get("element") == "window":
            return [f'driver.execute_script("window.scrollTo({x}, {y})")']
        return [f'driver.execute_script("arguments[0].scrollTo({x}, {y})", {self._find(selector)})']

    def emit_wheel(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        delta_x, delta_y = self.wheel_delta(event)
        return self._actions(f"scroll_by_amount({delta_x}, {delta_y})")

    def emit_focus(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f'driver.execute_script("arguments[0].focus()", {self._find(selector)})']

    def emit_blur(self, event: RecordedEvent, selector: str) -> Optional[list[str]]:
        return [f'driver.execute_script("arguments[0].blur()", {self._find(selector)})']

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    def assert_url(self, url: str) -> Optional[list[str]]:
        return [f"assert {self.q(url)} in driver.current_url"]

    def assert_title(self, title: str) -> Optional[list[str]]:
        return [f"assert driver.title == {self.q(title)}"]

    def assert_visible(self, selector: str) -> Optional[list[str]]:
        return [f"assert {self._find(selector)}.is_displayed()"]

    def assert_hidden(self, selector: str) -> Optional[list[str]]:
        return [f"assert not {self._find(selector)}.is_displayed()"]

    def assert_enabled(self, selector: str) -> Optional[list[str]]:
        return [f"assert {self._find(selector)}.is_enabled()"]

    def assert_disabled(self, selector: str) -> Optional[list[str]]:
        return [f"assert not {self._find(selector)}.is_enabled()"]

    def assert_text(self, selector: str, text: str) -> Optional[list[str]]:
        return [f"assert {self.q(text)} in {self._find(selector)}.text"]

    def assert_text_equals(self, selector: str, text: str) -> Optional[list[str]]:
        return [f"assert {self._find(selector)}.text == {self.q(text)}"]

    def assert_value(self, selector: str, value: str) -> Optional[list[str]]:
        return [f'assert {self._find(selector)}.get_attribute("value") == {self.q(value)}']

    def assert_checked(self, selector: str, checked: bool) -> Optional[list[str]]:
        negation = "" if checked else "not "
        return [f"assert {negation}{self._find(selector)}.is_selected()"]

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def generate_setup_code(self) -> str:
        viewport = self.config.viewport
        lines = ["options = webdriver.ChromeOptions()"]
        if self.config.headless:
            lines.append('options.add_argument("--headless=new")')
        lines.extend([
            f'options.add_argument("--window-size={viewport.width},{viewport.height}")',
            "self.driver = webdriver.Chrome(options=options)",
            f"self.driver.implicitly_wait({self._timeout_seconds})",
        ])
        return "\n".join(lines)

    def generate_teardown_code(self) -> str:
        return "self.driver.quit()"

    def build_test_context(self, body: str) -> dict[str, Any]:
        context = super().build_test_context(body)
        # unittest needs the driver lifecycle whatever include_setup says
        context["setup"] = self.generate_setup_code()
        context["teardown"] = self.generate_teardown_code()
        return context

    def generate_config_file(self) -> Optional[GeneratedTestFile]:
        content = self.template_engine.render("pytest-ini", {})
        return GeneratedTestFile("pytest.ini", content, FileType.CONFIG)

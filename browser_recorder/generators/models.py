"""Data models for test code generation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..config import Settings
from ..recording.models import Viewport


class Framework(str, Enum):
    """Supported browser automation frameworks."""

    PLAYWRIGHT = "playwright"
    CYPRESS = "cypress"
    SELENIUM = "selenium"
    PUPPETEER = "puppeteer"


class Language(str, Enum):
    """Supported output languages."""

    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PYTHON = "python"


class FileType(str, Enum):
    """Kind of generated file."""

    TEST = "test"
    PAGE_OBJECT = "page-object"
    CONFIG = "config"
    HELPER = "helper"


# Valid framework-language combinations
FRAMEWORK_SUPPORT = {
    Framework.PLAYWRIGHT: [Language.TYPESCRIPT, Language.JAVASCRIPT, Language.PYTHON],
    Framework.CYPRESS: [Language.JAVASCRIPT, Language.TYPESCRIPT],
    Framework.SELENIUM: [Language.PYTHON],
    Framework.PUPPETEER: [Language.JAVASCRIPT, Language.TYPESCRIPT],
}


# File extensions for each language
FILE_EXTENSIONS = {
    Language.TYPESCRIPT: ".ts",
    Language.JAVASCRIPT: ".js",
    Language.PYTHON: ".py",
}


# Dependencies for each framework-language combination
FRAMEWORK_DEPENDENCIES = {
    (Framework.PLAYWRIGHT, Language.TYPESCRIPT): ["@playwright/test", "typescript"],
    (Framework.PLAYWRIGHT, Language.JAVASCRIPT): ["@playwright/test"],
    (Framework.PLAYWRIGHT, Language.PYTHON): ["playwright", "pytest", "pytest-playwright"],
    (Framework.CYPRESS, Language.JAVASCRIPT): ["cypress"],
    (Framework.CYPRESS, Language.TYPESCRIPT): ["cypress", "typescript"],
    (Framework.SELENIUM, Language.PYTHON): ["selenium", "pytest"],
    (Framework.PUPPETEER, Language.JAVASCRIPT): ["puppeteer", "jest", "jest-puppeteer"],
    (Framework.PUPPETEER, Language.TYPESCRIPT): [
        "puppeteer",
        "jest",
        "jest-puppeteer",
        "ts-jest",
        "@types/jest",
        "typescript",
    ],
}


@dataclass
class CodeGenerationConfig:
    """Configuration for test code generation.

    Attributes:
        framework: Target framework
        language: Target language
        include_comments: Emit a comment per group and per user-visible action
        include_assertions: Emit group-level assertions
        include_setup: Emit setup/teardown scaffolding
        include_config: Emit the framework config file
        include_helpers: Emit framework helper files
        page_object_model: Emit one page object per navigated URL
        viewport: Browser viewport for the generated tests
        headless: Run the generated tests headless
        timeout_ms: Default timeout in the generated tests
        base_url: Base URL; navigations under it become relative where supported
        test_name: Name of the generated test case
        suite_name: Name of the generated suite (test_name when omitted)
        template_id: Template used for the main test file instead of the built-in one
    """

    framework: Framework | str = Framework.PLAYWRIGHT
    language: Language | str = Language.TYPESCRIPT
    include_comments: bool = True
    include_assertions: bool = True
    include_setup: bool = True
    include_config: bool = True
    include_helpers: bool = False
    page_object_model: bool = False
    viewport: Viewport = field(default_factory=Viewport)
    headless: bool = True
    timeout_ms: int = 30000
    base_url: Optional[str] = None
    test_name: str = "recorded user flow"
    suite_name: Optional[str] = None
    template_id: Optional[str] = None

    def __post_init__(self):
        """Convert string values to enums.

        Unknown values are kept as strings and reported by ``validate``.
        """
        if isinstance(self.framework, str) and not isinstance(self.framework, Framework):
            try:
                self.framework = Framework(self.framework.lower())
            except ValueError:
                pass
        if isinstance(self.language, str) and not isinstance(self.language, Language):
            try:
                self.language = Language(self.language.lower())
            except ValueError:
                pass

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "CodeGenerationConfig":
        """Seed a config from recorder settings."""
        settings = settings or Settings()
        values: dict[str, Any] = {
            "framework": settings.default_framework,
            "language": settings.default_language,
            "include_comments": settings.include_comments,
            "include_assertions": settings.include_assertions,
            "include_setup": settings.include_setup,
            "page_object_model": settings.page_object_model,
            "viewport": Viewport(width=settings.viewport_width, height=settings.viewport_height),
            "headless": settings.headless,
            "timeout_ms": settings.action_timeout_ms,
            "base_url": settings.base_url,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def resolved_suite_name(self) -> str:
        return self.suite_name or self.test_name

    def validate(self) -> list[str]:
        """Validate the configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not isinstance(self.framework, Framework):
            valid_names = [f.value for f in Framework]
            errors.append(f"Unsupported framework: {self.framework}. Valid options: {valid_names}")
        if not isinstance(self.language, Language):
            valid_names = [lang.value for lang in Language]
            errors.append(f"Unsupported language: {self.language}. Valid options: {valid_names}")

        if not errors:
            valid_languages = FRAMEWORK_SUPPORT[self.framework]
            if self.language not in valid_languages:
                valid_names = [lang.value for lang in valid_languages]
                errors.append(
                    f"Language '{self.language.value}' is not supported for "
                    f"{self.framework.value}. Valid options: {valid_names}"
                )

        if self.timeout_ms <= 0:
            errors.append("timeout_ms must be positive")
        if self.viewport.width <= 0 or self.viewport.height <= 0:
            errors.append("viewport dimensions must be positive")
        if self.base_url and not self.base_url.startswith(("http://", "https://")):
            errors.append(f"base_url must start with http:// or https://: {self.base_url}")
        if not self.test_name.strip():
            errors.append("test_name must not be empty")

        return errors


@dataclass(frozen=True)
class SelectorOptimization:
    """Selector chosen for the generated code.

    Attributes:
        original: Selector recorded on the event
        optimized: Selector emitted in the generated code
        strategy: Why it was chosen (testid, id, text, original, alternative)
        reliability: Estimated reliability of the emitted selector
    """

    original: str
    optimized: str
    strategy: str
    reliability: float


@dataclass(frozen=True)
class GeneratedTestFile:
    """One generated file."""

    filename: str
    content: str
    type: FileType = FileType.TEST

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "content": self.content,
            "type": self.type.value,
        }


@dataclass
class GenerationResult:
    """Result from generating test code.

    Attributes:
        success: Whether generation succeeded
        files: Generated files, main test file first
        framework: Framework code was generated for
        language: Language code was generated for
        dependencies: Packages the generated code needs
        diagnostics: Non-fatal problems (unsupported events, degraded selectors)
        error: Error message if failed
        event_id: Event being generated when generation failed
        sequence: Sequence number of that event
        metadata: Additional generation metadata
    """

    success: bool
    files: list[GeneratedTestFile] = field(default_factory=list)
    framework: Framework | None = None
    language: Language | None = None
    dependencies: list[str] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)
    error: str | None = None
    event_id: str | None = None
    sequence: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def main_file(self) -> Optional[GeneratedTestFile]:
        """The generated test file, if any."""
        return next((f for f in self.files if f.type == FileType.TEST), None)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "files": [f.to_dict() for f in self.files],
            "framework": self.framework.value if self.framework else None,
            "language": self.language.value if self.language else None,
            "dependencies": self.dependencies,
            "diagnostics": self.diagnostics,
            "error": self.error,
            "event_id": self.event_id,
            "sequence": self.sequence,
            "metadata": self.metadata,
        }

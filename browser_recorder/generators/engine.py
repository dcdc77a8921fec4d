"""Code generation engine - main entry point for turning recordings into tests."""

from typing import Optional, Sequence

import structlog

from ..exceptions import GenerationError
from ..recording.grouper import flatten
from ..recording.models import EventGroup
from ..templates.engine import TemplateEngine
from .base import BaseGenerator
from .cypress import CypressGenerator
from .formatters import CodeFormatter, ImportsManager
from .models import (
    FILE_EXTENSIONS,
    FRAMEWORK_SUPPORT,
    CodeGenerationConfig,
    GeneratedTestFile,
    GenerationResult,
    Framework,
    Language,
)
from .playwright import PlaywrightGenerator
from .playwright_python import PlaywrightPythonGenerator
from .puppeteer import PuppeteerGenerator
from .selenium import SeleniumGenerator

logger = structlog.get_logger()


# Generator registry mapping framework/language to generator class
GENERATOR_REGISTRY: dict[tuple[Framework, Language], type[BaseGenerator]] = {
    (Framework.PLAYWRIGHT, Language.TYPESCRIPT): PlaywrightGenerator,
    (Framework.PLAYWRIGHT, Language.JAVASCRIPT): PlaywrightGenerator,
    (Framework.PLAYWRIGHT, Language.PYTHON): PlaywrightPythonGenerator,
    (Framework.CYPRESS, Language.JAVASCRIPT): CypressGenerator,
    (Framework.CYPRESS, Language.TYPESCRIPT): CypressGenerator,
    (Framework.SELENIUM, Language.PYTHON): SeleniumGenerator,
    (Framework.PUPPETEER, Language.JAVASCRIPT): PuppeteerGenerator,
    (Framework.PUPPETEER, Language.TYPESCRIPT): PuppeteerGenerator,
}


class CodeGenerationEngine:
    """Main engine for generating test code from grouped recordings.

    This class orchestrates generation:
    1. Validates the generation configuration
    2. Selects the generator for the framework/language
    3. Generates the test, page object, config and helper files
    4. Formats the output

    Example:
        engine = CodeGenerationEngine()

        result = engine.generate(
            groups,
            CodeGenerationConfig(framework="cypress", language="javascript"),
        )

        if result.success:
            print(result.main_file.content)
            print(f"Install: npm install --save-dev {' '.join(result.dependencies)}")
    """

    def __init__(self, template_engine: Optional[TemplateEngine] = None):
        """Initialize the generation engine.

        Args:
            template_engine: Template catalog shared by every generator
        """
        self.template_engine = template_engine or TemplateEngine()
        self.log = logger.bind(component="generation_engine")

    def get_generator(self, config: CodeGenerationConfig) -> BaseGenerator:
        """Instantiate the generator for a validated config."""
        generator_class = GENERATOR_REGISTRY[(config.framework, config.language)]
        return generator_class(config=config, template_engine=self.template_engine)

    def generate(
        self,
        groups: Sequence[EventGroup],
        config: Optional[CodeGenerationConfig] = None,
    ) -> GenerationResult:
        """Generate test code for a grouped recording.

        Args:
            groups: Action groups in recording order
            config: Generation configuration (uses defaults if not provided)

        Returns:
            GenerationResult with generated files or error
        """
        config = config or CodeGenerationConfig()

        # Validate config
        errors = config.validate()
        if errors:
            return GenerationResult(
                success=False,
                error="; ".join(errors),
            )

        groups = list(groups)
        try:
            generator = self.get_generator(config)
            files = generator.generate_test_files(groups)

            # Format code
            formatter = CodeFormatter(config.language)
            files = [
                GeneratedTestFile(f.filename, formatter.format_code(f.content), f.type)
                for f in files
            ]

            events = flatten(groups)
            self.log.info(
                "Generation successful",
                framework=config.framework.value,
                language=config.language.value,
                group_count=len(groups),
                file_count=len(files),
                diagnostics=len(generator.diagnostics),
            )

            return GenerationResult(
                success=True,
                files=files,
                framework=config.framework,
                language=config.language,
                dependencies=generator.imports.get_dependencies(),
                diagnostics=list(generator.diagnostics),
                metadata={
                    "test_name": config.test_name,
                    "template_id": generator.template_id(),
                    "groups_count": len(groups),
                    "events_count": len(events),
                    "files_count": len(files),
                },
            )

        except GenerationError as e:
            self.log.error(
                "Generation failed",
                framework=config.framework.value,
                language=config.language.value,
                event_id=e.event_id,
                sequence=e.sequence,
                error=str(e),
            )
            return GenerationResult(
                success=False,
                framework=config.framework,
                language=config.language,
                error=f"{e} (event {e.event_id}, sequence {e.sequence})",
                event_id=e.event_id,
                sequence=e.sequence,
            )

        except Exception as e:
            self.log.error(
                "Generation failed",
                framework=config.framework.value,
                language=config.language.value,
                error=str(e),
            )
            return GenerationResult(
                success=False,
                framework=config.framework,
                language=config.language,
                error=str(e),
            )

    def generate_batch(
        self,
        recordings: list[Sequence[EventGroup]],
        config: Optional[CodeGenerationConfig] = None,
    ) -> list[GenerationResult]:
        """Generate code for multiple recordings.

        Args:
            recordings: Grouped recordings
            config: Generation configuration (same for all)

        Returns:
            List of GenerationResults
        """
        return [self.generate(groups, config) for groups in recordings]

    def get_supported_combinations(self) -> dict[str, list[str]]:
        """Get supported framework-language combinations.

        Returns:
            Dict mapping framework names to list of language names
        """
        return {
            framework.value: [language.value for language in languages]
            for framework, languages in FRAMEWORK_SUPPORT.items()
        }

    def preview(
        self,
        groups: Sequence[EventGroup],
        config: Optional[CodeGenerationConfig] = None,
        max_lines: int = 50,
    ) -> str:
        """Generate a preview of the main test file.

        Args:
            groups: Action groups
            config: Generation configuration
            max_lines: Maximum lines to return

        Returns:
            Code preview string
        """
        result = self.generate(groups, config)
        if not result.success:
            return f"Error: {result.error}"

        code = result.main_file.content
        lines = code.split("\n")
        if len(lines) > max_lines:
            return "\n".join(lines[:max_lines]) + f"\n\n... ({len(lines) - max_lines} more lines)"
        return code

    def get_file_info(self, config: CodeGenerationConfig) -> dict:
        """Get file information for a config.

        Args:
            config: Generation configuration

        Returns:
            Dict with file info (extension, dependencies, install command)
        """
        manager = ImportsManager(config.language, config.framework)

        return {
            "extension": FILE_EXTENSIONS.get(config.language, ".txt"),
            "dependencies": manager.get_dependencies(),
            "install_command": manager.get_install_command(),
        }


# Convenience function for quick generation
def generate_test(
    groups: Sequence[EventGroup],
    framework: str = "playwright",
    language: str = "typescript",
    **config_kwargs,
) -> GenerationResult:
    """Quick generation function.

    Args:
        groups: Action groups
        framework: Target framework
        language: Target language
        **config_kwargs: Additional CodeGenerationConfig options

    Returns:
        GenerationResult
    """
    engine = CodeGenerationEngine()
    config = CodeGenerationConfig(
        framework=framework,
        language=language,
        **config_kwargs,
    )
    return engine.generate(groups, config)

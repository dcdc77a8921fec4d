"""Test code generation.

Turns grouped recordings into runnable test files for Playwright
(TypeScript, JavaScript, Python), Cypress, Selenium and Puppeteer.

Example:
    from browser_recorder.generators import generate_test

    result = generate_test(groups, framework="playwright", language="typescript")
    for file in result.files:
        print(file.filename)
"""

from .base import EVENT_HANDLERS, BaseGenerator, assess_reliability
from .cypress import CypressGenerator
from .engine import GENERATOR_REGISTRY, CodeGenerationEngine, generate_test
from .formatters import CodeFormatter, ImportsManager
from .models import (
    FILE_EXTENSIONS,
    FRAMEWORK_DEPENDENCIES,
    FRAMEWORK_SUPPORT,
    CodeGenerationConfig,
    FileType,
    Framework,
    GeneratedTestFile,
    GenerationResult,
    Language,
    SelectorOptimization,
)
from .playwright import PlaywrightGenerator
from .playwright_python import PlaywrightPythonGenerator
from .puppeteer import PuppeteerGenerator
from .selenium import SeleniumGenerator

__all__ = [
    # Engine
    "CodeGenerationEngine",
    "generate_test",
    "GENERATOR_REGISTRY",
    # Generators
    "BaseGenerator",
    "PlaywrightGenerator",
    "PlaywrightPythonGenerator",
    "CypressGenerator",
    "SeleniumGenerator",
    "PuppeteerGenerator",
    "EVENT_HANDLERS",
    "assess_reliability",
    # Models
    "CodeGenerationConfig",
    "GenerationResult",
    "GeneratedTestFile",
    "SelectorOptimization",
    "Framework",
    "Language",
    "FileType",
    "FRAMEWORK_SUPPORT",
    "FRAMEWORK_DEPENDENCIES",
    "FILE_EXTENSIONS",
    # Formatters
    "CodeFormatter",
    "ImportsManager",
]

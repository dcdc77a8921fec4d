"""Browser interaction recorder and test code generator.

Captures interactions from a page surface, normalizes and groups them, and
generates runnable tests for Playwright, Cypress, Selenium and Puppeteer.

Example:
    from browser_recorder import RecordingSession

    with RecordingSession() as session:
        session.start()
        for interaction in interactions:
            session.handle_interaction(interaction)
        session.stop()
        result = session.generate(framework="playwright", language="typescript")
"""

from .config import Settings, get_settings
from .exceptions import (
    AlreadyRecordingError,
    EventNotFoundError,
    GenerationError,
    NotRecordingError,
    ParameterValidationError,
    RecorderError,
    RecordingStateError,
    SelectorSynthesisDegraded,
    TemplateError,
    TemplateNotFoundError,
    TemplateSyntaxError,
    TemplateValidationError,
)
from .generators import CodeGenerationConfig, CodeGenerationEngine, GenerationResult
from .patterns import PatternExtractor
from .recording import (
    ActionGrouper,
    EventProcessor,
    EventRecorder,
    EventType,
    Interaction,
    RecordedEvent,
    RecordingOptions,
    RRWebAdapter,
)
from .selector import SelectorEngine, TargetDescriptor
from .session import RecordingSession
from .templates import TemplateEngine

__version__ = "0.1.0"

__all__ = [
    "RecordingSession",
    "Settings",
    "get_settings",
    # Engines
    "SelectorEngine",
    "EventRecorder",
    "EventProcessor",
    "ActionGrouper",
    "CodeGenerationEngine",
    "TemplateEngine",
    "PatternExtractor",
    "RRWebAdapter",
    # Values
    "TargetDescriptor",
    "Interaction",
    "RecordedEvent",
    "EventType",
    "RecordingOptions",
    "CodeGenerationConfig",
    "GenerationResult",
    # Errors
    "RecorderError",
    "SelectorSynthesisDegraded",
    "RecordingStateError",
    "AlreadyRecordingError",
    "NotRecordingError",
    "EventNotFoundError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateSyntaxError",
    "TemplateValidationError",
    "ParameterValidationError",
    "GenerationError",
]

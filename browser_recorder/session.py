"""Recording session - one explicitly owned capture-to-code pipeline."""

from typing import Optional

import structlog

from .config import Settings, get_settings
from .generators.engine import CodeGenerationEngine
from .generators.models import CodeGenerationConfig, GenerationResult
from .selector.engine import MatchCounter, SelectorEngine
from .recording.grouper import ActionGrouper
from .recording.models import EventGroup, Interaction, ProcessingResult, RecordedEvent
from .recording.options import RecordingOptions
from .recording.processor import EventProcessor
from .recording.recorder import EventRecorder, RecorderState
from .templates.engine import TemplateEngine
from .utils.logging import log_operation


logger = structlog.get_logger()


class RecordingSession:
    """Owns the engines behind a single recording.

    Every engine is created per session, so two sessions never share a
    selector cache, template catalog or recorder.

    Example:
        with RecordingSession() as session:
            session.start()
            session.handle_interaction(Interaction(type="click", target=button))
            session.stop()
            result = session.generate(CodeGenerationConfig(framework="cypress", language="javascript"))
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        matcher: Optional[MatchCounter] = None,
    ):
        """Initialize the session.

        Args:
            settings: Recorder settings (loaded from the environment when omitted)
            matcher: Optional uniqueness oracle for selector synthesis
        """
        self.settings = settings or get_settings()
        self.selector_engine = SelectorEngine()
        self.recorder = EventRecorder(self.selector_engine, matcher=matcher)
        self.processor = EventProcessor(debounce_ms=self.settings.debounce_ms)
        self.grouper = ActionGrouper()
        self.template_engine = TemplateEngine()
        self.generation_engine = CodeGenerationEngine(template_engine=self.template_engine)
        self.log = logger.bind(component="recording_session")
        self._closed = False

    def __enter__(self) -> "RecordingSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def state(self) -> RecorderState:
        return self.recorder.state

    @property
    def events(self) -> list[RecordedEvent]:
        return self.recorder.events

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def start(self, options: Optional[RecordingOptions] = None, **overrides) -> None:
        """Start recording with explicit options or settings-derived ones."""
        options = options or RecordingOptions.from_settings(self.settings, **overrides)
        self.processor.debounce_ms = options.debounce_ms
        self.recorder.start(options)

    def pause(self) -> None:
        self.recorder.pause()

    def resume(self) -> None:
        self.recorder.resume()

    def stop(self) -> list[RecordedEvent]:
        return self.recorder.stop()

    def handle_interaction(self, interaction: Interaction) -> Optional[RecordedEvent]:
        return self.recorder.handle_interaction(interaction)

    def update_event(self, event_id: str, **changes) -> RecordedEvent:
        return self.recorder.update_event(event_id, **changes)

    def remove_event(self, event_id: str) -> RecordedEvent:
        return self.recorder.remove_event(event_id)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def process(self) -> ProcessingResult:
        """Normalize the captured events."""
        return self.processor.process(self.recorder.events)

    def group(self) -> list[EventGroup]:
        """Group the processed events into actions."""
        return self.grouper.group(self.process().events)

    def generate(self, config: Optional[CodeGenerationConfig] = None, **overrides) -> GenerationResult:
        """Generate test code for the current recording.

        Args:
            config: Generation config (derived from settings when omitted)
            **overrides: Field overrides applied to the settings-derived config

        Returns:
            GenerationResult with the generated files
        """
        config = config or CodeGenerationConfig.from_settings(self.settings, **overrides)
        groups = self.group()
        with log_operation(
            "generate",
            self.log,
            framework=getattr(config.framework, "value", config.framework),
            language=getattr(config.language, "value", config.language),
            group_count=len(groups),
        ) as operation:
            result = self.generation_engine.generate(groups, config)
            operation["generated"] = result.success
            operation["file_count"] = len(result.files)
        return result

    def close(self) -> None:
        """Stop an active recording and release cached state."""
        if self._closed:
            return
        if self.recorder.is_active:
            self.recorder.stop()
        self.selector_engine.clear_cache()
        self.template_engine.invalidate()
        self._closed = True
        self.log.debug("Session closed", event_count=len(self.recorder.events))

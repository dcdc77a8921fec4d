"""Error taxonomy for the recorder pipeline.

Contract violations (bad template ids, invalid parameters, illegal state
transitions) are raised. Recoverable conditions such as a degraded selector
are reported as diagnostics attached to the result instead.
"""

from typing import Optional


class RecorderError(Exception):
    """Base class for all recorder errors."""

    pass


class SelectorSynthesisDegraded(RecorderError):
    """Diagnostic signalling that a low-reliability fallback selector was used.

    Never raised by the selector engine; instances are attached to
    ``SelectorResult.degraded``.
    """

    def __init__(self, message: str, reliability: float = 0.0):
        super().__init__(message)
        self.message = message
        self.reliability = reliability


class RecordingStateError(RecorderError):
    """Illegal recorder state-machine transition."""

    def __init__(self, message: str, state: Optional[str] = None):
        super().__init__(message)
        self.state = state


class AlreadyRecordingError(RecordingStateError):
    """start() called while a recording is active."""

    pass


class NotRecordingError(RecordingStateError):
    """pause/resume/stop called without a matching active recording."""

    pass


class EventNotFoundError(RecorderError):
    """An edit referenced an event id that is not in the recording."""

    def __init__(self, event_id: str):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class TemplateError(RecorderError):
    """Base class for template engine errors."""

    pass


class TemplateNotFoundError(TemplateError):
    """Render, export, clone or include of an unknown template id."""

    def __init__(self, template_id: str):
        super().__init__(f"Template not found: {template_id}")
        self.template_id = template_id


class TemplateSyntaxError(TemplateError):
    """Template source could not be parsed (unbalanced or unknown tags)."""

    pass


class TemplateValidationError(TemplateError):
    """Context failed placeholder validation.

    Attributes:
        errors: Every violation found, not just the first
    """

    def __init__(self, errors: list[str], template_id: Optional[str] = None):
        prefix = f"Template '{template_id}' validation failed" if template_id else "Template validation failed"
        super().__init__(f"{prefix}: {'; '.join(errors)}")
        self.errors = list(errors)
        self.template_id = template_id


class ParameterValidationError(RecorderError):
    """Parameters supplied to a test template were rejected.

    Attributes:
        errors: Human-readable messages for every problem found
        missing_parameters: Required parameters that were not supplied
        invalid_parameters: Unknown or mistyped parameter names
    """

    def __init__(
        self,
        errors: list[str],
        missing_parameters: Optional[list[str]] = None,
        invalid_parameters: Optional[list[str]] = None,
    ):
        super().__init__("; ".join(errors) or "Parameter validation failed")
        self.errors = list(errors)
        self.missing_parameters = list(missing_parameters or [])
        self.invalid_parameters = list(invalid_parameters or [])


class GenerationError(RecorderError):
    """Unexpected failure while synthesizing a test file.

    Annotated with the offending event's id and sequence number.
    """

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        sequence: Optional[int] = None,
    ):
        super().__init__(message)
        self.event_id = event_id
        self.sequence = sequence

"""Tests for the logging utility module."""


import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_structlog():
    """Restore structlog defaults after each test."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_logging_default(self, mock_env_vars):
        """Test configure_logging with defaults."""
        from browser_recorder.utils.logging import configure_logging

        configure_logging()

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert any(isinstance(p, structlog.processors.TimeStamper) for p in processors)

    def test_configure_logging_json_format(self, mock_env_vars):
        """Test configure_logging with JSON output."""
        from browser_recorder.utils.logging import configure_logging

        configure_logging(json_format=True)

        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

    def test_configure_logging_no_timestamp(self, mock_env_vars):
        """Test configure_logging without timestamps."""
        from browser_recorder.utils.logging import configure_logging

        configure_logging(include_timestamp=False)

        processors = structlog.get_config()["processors"]
        assert not any(isinstance(p, structlog.processors.TimeStamper) for p in processors)

    @pytest.mark.parametrize("level", ["DEBUG", "warning", "ERROR"])
    def test_configure_logging_levels(self, mock_env_vars, level):
        """Test configure_logging accepts level names in any case."""
        from browser_recorder.utils.logging import configure_logging

        configure_logging(level=level)

    def test_configure_logging_invalid_level(self, mock_env_vars):
        """Test unknown level names are rejected."""
        from browser_recorder.utils.logging import configure_logging

        with pytest.raises(AttributeError):
            configure_logging(level="LOUD")


class TestConfigureFromSettings:
    """Tests for configure_from_settings function."""

    def test_json_settings(self, mock_env_vars):
        """Test JSON log format from the environment."""
        from browser_recorder.config import Settings
        from browser_recorder.utils.logging import configure_from_settings

        configure_from_settings(Settings(_env_file=None))

        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

    def test_console_settings(self):
        """Test console log format by default."""
        from browser_recorder.config import Settings
        from browser_recorder.utils.logging import configure_from_settings

        configure_from_settings(Settings(_env_file=None))

        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger_default(self, mock_env_vars):
        """Test get_logger without name."""
        from browser_recorder.utils.logging import configure_logging, get_logger

        configure_logging()
        logger = get_logger()

        assert logger is not None

    def test_get_logger_with_name(self, mock_env_vars):
        """Test get_logger with name."""
        from browser_recorder.utils.logging import configure_logging, get_logger

        configure_logging()
        logger = get_logger("browser_recorder.session")

        assert logger is not None

    def test_get_logger_with_context(self, mock_env_vars):
        """Test get_logger with context."""
        from browser_recorder.utils.logging import configure_logging, get_logger

        configure_logging()
        logger = get_logger("browser_recorder.session", session_id="rec-123", component="recorder")

        assert logger is not None
        logger.info("Recording started")


class TestLogContext:
    """Tests for LogContext class."""

    def test_log_context_creation(self):
        """Test LogContext creation."""
        from browser_recorder.utils.logging import LogContext

        context = LogContext(session_id="rec-123", framework="cypress")

        assert context.context == {"session_id": "rec-123", "framework": "cypress"}

    def test_log_context_binds_and_unbinds(self):
        """Test context is bound inside the block only."""
        from browser_recorder.utils.logging import LogContext

        with LogContext(session_id="rec-456"):
            assert structlog.contextvars.get_contextvars()["session_id"] == "rec-456"

        assert "session_id" not in structlog.contextvars.get_contextvars()

    def test_log_context_nested(self):
        """Test nested LogContext restores the outer value."""
        from browser_recorder.utils.logging import LogContext

        with LogContext(framework="playwright"):
            with LogContext(framework="selenium", language="python"):
                assert structlog.contextvars.get_contextvars() == {
                    "framework": "selenium",
                    "language": "python",
                }
            assert structlog.contextvars.get_contextvars() == {"framework": "playwright"}

    def test_log_context_empty(self):
        """Test LogContext with no context."""
        from browser_recorder.utils.logging import LogContext

        with LogContext():
            assert structlog.contextvars.get_contextvars() == {}


class TestLogOperation:
    """Tests for log_operation context manager."""

    def test_log_operation_success(self, mock_env_vars):
        """Test log_operation on success."""
        from browser_recorder.utils.logging import configure_logging, log_operation

        configure_logging()

        with log_operation("process_events") as op:
            op["processed_count"] = 4

        assert op["success"] is True
        assert op["error"] is None
        assert op["processed_count"] == 4

    def test_log_operation_with_logger(self, mock_env_vars):
        """Test log_operation with custom logger and context."""
        from browser_recorder.utils.logging import configure_logging, get_logger, log_operation

        configure_logging()
        logger = get_logger("custom")

        with log_operation("generate", logger=logger, framework="cypress") as op:
            pass

        assert op["success"] is True

    def test_log_operation_failure(self, mock_env_vars):
        """Test log_operation records the error and re-raises."""
        from browser_recorder.utils.logging import configure_logging, log_operation

        configure_logging()

        with pytest.raises(ValueError):
            with log_operation("failing_op") as op:
                raise ValueError("Test error")

        assert op["success"] is False
        assert op["error"] == "Test error"

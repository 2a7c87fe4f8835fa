"""Unit tests for logging and tracing setup."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import structlog

from newest_image_tag.observability import configure_logging, get_tracer, reset_for_testing


class TestGetTracer:
    """Test get_tracer function."""

    def test_get_tracer_returns_tracer(self) -> None:
        """Test get_tracer returns an OpenTelemetry tracer."""
        reset_for_testing()

        tracer = get_tracer()

        assert hasattr(tracer, "start_as_current_span")
        assert hasattr(tracer, "start_span")

    def test_get_tracer_returns_same_instance(self) -> None:
        """Test get_tracer returns singleton instance."""
        reset_for_testing()

        assert get_tracer() is get_tracer()

    def test_reset_for_testing_drops_tracer(self) -> None:
        """Test reset_for_testing makes the next call build a new tracer."""
        reset_for_testing()
        get_tracer()

        with patch("newest_image_tag.observability.trace.get_tracer") as mock_get_tracer:
            mock_get_tracer.return_value = MagicMock()
            reset_for_testing()
            tracer = get_tracer()

        mock_get_tracer.assert_called_once_with("newest_image_tag")
        assert tracer is mock_get_tracer.return_value


class TestConfigureLogging:
    """Test configure_logging function."""

    def test_warning_level_by_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test debug events are dropped unless verbose."""
        configure_logging()
        log = structlog.get_logger("test")

        log.debug("hidden_event")
        log.warning("shown_event", key="value")

        err = capsys.readouterr().err
        assert "hidden_event" not in err
        assert "shown_event" in err
        assert "key=value" in err

    def test_verbose_emits_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test verbose logging includes debug events."""
        configure_logging(verbose=True)

        structlog.get_logger("test").debug("debug_event")

        assert "debug_event" in capsys.readouterr().err

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test JSON rendering emits one object per event."""
        configure_logging(json_output=True)

        structlog.get_logger("test").error("json_event", tag="1.1")

        record = json.loads(capsys.readouterr().err.strip())
        assert record["event"] == "json_event"
        assert record["tag"] == "1.1"
        assert record["level"] == "error"
        assert "timestamp" in record

    def test_nothing_written_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test logs never mix with the command result on stdout."""
        configure_logging(verbose=True)

        structlog.get_logger("test").warning("stderr_only")

        assert capsys.readouterr().out == ""

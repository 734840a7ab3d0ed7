"""Unit tests for logging configuration."""

import io
import json
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger

from address_timeline.core.logging import log_integrity_failure, setup_logging


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        """setup_logging with valid log level does not raise."""
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("debug")

    def test_file_sink_created_in_log_dir(self, tmp_path: Path) -> None:
        """A log_dir enables the rotating file sink."""
        log_dir = tmp_path / "logs"
        setup_logging("INFO", log_dir=str(log_dir))
        logger.info("file sink check")
        logger.complete()
        log_file = log_dir / "address-timeline.log"
        assert log_file.exists()
        assert "file sink check" in log_file.read_text()
        setup_logging("INFO")


class TestIntegrityFailureLogging:
    """Tests for the structured integrity-failure record."""

    @pytest.fixture
    def stderr(self, monkeypatch: pytest.MonkeyPatch) -> Iterator[io.StringIO]:
        stream = io.StringIO()
        monkeypatch.setattr(sys, "stderr", stream)
        setup_logging("INFO")
        yield stream
        logger.remove()

    def test_written_as_json_with_context(self, stderr: io.StringIO) -> None:
        log_integrity_failure("two open permanent rows", user_id="u-1", assignment_ids=["a-1", "a-2"])

        lines = stderr.getvalue().splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])["record"]
        assert record["level"]["name"] == "ERROR"
        assert record["extra"]["user_id"] == "u-1"
        assert record["extra"]["assignment_ids"] == ["a-1", "a-2"]
        assert "assignment_ids=['a-1', 'a-2']" in record["message"]

    def test_ordinary_records_stay_human_readable(self, stderr: io.StringIO) -> None:
        logger.info("routine message")

        lines = stderr.getvalue().splitlines()
        assert len(lines) == 1
        assert lines[0].endswith("| routine message")

    def test_message_without_context(self, stderr: io.StringIO) -> None:
        log_integrity_failure("something broke")

        record = json.loads(stderr.getvalue())["record"]
        assert record["message"] == "Timeline integrity failure: something broke"

    def test_context_reaches_file_sink(self, tmp_path: Path) -> None:
        setup_logging("INFO", log_dir=str(tmp_path))
        try:
            log_integrity_failure("duplicate predecessors", user_id="u-9")
            logger.complete()
        finally:
            setup_logging("INFO")
        assert "u-9" in (tmp_path / "address-timeline.log").read_text()

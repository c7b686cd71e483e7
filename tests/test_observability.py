"""
Tests for logging configuration — custom levels and console tags.
"""

import logging
from pathlib import Path

import pytest

from provisioner.core.observability.logging_config import (
    DRY,
    SUCCESS,
    ConsoleFormatter,
    _parse_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord("provisioner.test", level, __file__, 1, msg, None, None)


class TestLevels:
    def test_names_registered(self):
        assert logging.getLevelName(DRY) == "DRY"
        assert logging.getLevelName(SUCCESS) == "SUCCESS"
        assert logging.INFO < DRY < SUCCESS < logging.WARNING

    @pytest.mark.parametrize(
        "name, expected",
        [("debug", logging.DEBUG), ("DRY", DRY), ("success", SUCCESS), ("bogus", logging.INFO), (None, logging.INFO)],
    )
    def test_parse_level(self, name, expected):
        assert _parse_level(name) == expected


class TestConsoleFormatter:
    def test_plain_tags(self):
        fmt = ConsoleFormatter("%(message)s", color=False)
        assert fmt.format(_record(logging.INFO, "hello")) == "INFO    hello"
        assert fmt.format(_record(DRY, "Link a")) == "DRY     Link a"
        assert fmt.format(_record(SUCCESS, "Link a")) == "SUCCESS Link a"
        assert fmt.format(_record(logging.WARNING, "careful")) == "WARN    careful"
        assert fmt.format(_record(logging.ERROR, "broken")) == "ERROR   broken"

    def test_color(self):
        fmt = ConsoleFormatter("%(message)s", color=True)
        assert "\x1b[" in fmt.format(_record(SUCCESS, "done"))


class TestSetupLogging:
    def test_console_level(self):
        setup_logging(level="WARNING", color=False)
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "provision.log"
        setup_logging(level="ERROR", log_file=str(log_file), log_file_level="DEBUG", color=False)
        logging.getLogger("provisioner.test").log(DRY, "would link")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "would link" in log_file.read_text()
        assert logging.getLogger().level == logging.DEBUG

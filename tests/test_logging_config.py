"""Tests for hue_dashboard.logging_config."""

import logging

from hue_dashboard.logging_config import ColoredFormatter, get_logger, setup_logging


def _record(level, msg, name="hue_dashboard.web"):
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


def test_formatter_plain():
    """Without color the line is 'time [LEVEL] module: message'."""
    line = ColoredFormatter(use_color=False).format(_record(logging.INFO, "hello"))
    assert line.endswith("[INFO] web: hello")


def test_formatter_colored():
    """Colored output wraps the level in an ANSI color."""
    line = ColoredFormatter().format(_record(logging.ERROR, "bad"))
    assert "\033[31m[ERROR]" in line
    assert line.endswith("bad")


def test_formatter_keeps_stack_info():
    """stack_info from the log call is appended."""
    record = _record(logging.ERROR, "missing")
    record.stack_info = "Stack (most recent call last):\n  frame"
    line = ColoredFormatter(use_color=False).format(record)
    assert "frame" in line


def test_setup_logging_replaces_handlers():
    """setup_logging installs exactly one handler on the root logger."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(logging.WARNING)
        setup_logging(logging.WARNING)
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ColoredFormatter)
        assert root.level == logging.WARNING
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


def test_get_logger():
    assert get_logger("hue_dashboard.main") is logging.getLogger("hue_dashboard.main")

"""Unit tests for structured logging."""

from __future__ import annotations

import io
import json
import logging

from whatnow.logging import JsonFormatter, configure_logging


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord(
        name="whatnow.machine",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Reset requested",
        args=(),
        exc_info=None,
    )
    record.step = "restart"
    record.interrupted_step = None

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "whatnow.machine"
    assert payload["message"] == "Reset requested"
    assert payload["extra"] == {"step": "restart", "interrupted_step": None}


def test_json_formatter_renders_unserializable_values() -> None:
    record = logging.LogRecord("x", logging.DEBUG, __file__, 1, "m", (), None)
    record.step = object()

    payload = json.loads(JsonFormatter().format(record))

    assert payload["extra"]["step"].startswith("<object object")


def test_configure_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    stream = io.StringIO()
    try:
        configure_logging("info", stream=stream)
        configure_logging("info", stream=stream)
        assert len(root.handlers) == 1

        logging.getLogger("whatnow.test").info("hello", extra={"step": "a"})

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["extra"] == {"step": "a"}
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

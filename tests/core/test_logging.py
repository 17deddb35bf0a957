from __future__ import annotations

import json
import logging
import sys

from prep_service.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(
    level: int = logging.INFO,
    msg: str = "hello",
    args: tuple = (),
    *,
    name: str = "test",
    pathname: str = "test.py",
    lineno: int = 1,
    exc_info=None,
) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname=pathname,
        lineno=lineno,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


# ---- setup_logging ----


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_chatty_libraries_at_debug() -> None:
    setup_logging("debug")
    for name in ("uvicorn", "httpx", "sqlalchemy.engine"):
        assert logging.getLogger(name).level == logging.WARNING


def test_setup_logging_allows_uvicorn_at_error() -> None:
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_setup_logging_json_mode_installs_json_formatter() -> None:
    setup_logging("info", json_format=True)
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)
    setup_logging("info")


# ---- container format ----


def test_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(_record())
    assert "hello" in output
    assert "[test.py:" not in output


def test_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(
        _record(logging.WARNING, "Attempt result not saved", lineno=42)
    )
    assert "Attempt result not saved" in output
    assert "[test.py:42]" in output


def test_container_format_is_not_json() -> None:
    output = _ContainerFormatter().format(_record(name="prep_service.main"))
    assert "INFO" in output
    assert "prep_service.main" in output
    try:
        json.loads(output)
        raise AssertionError("Container format should not be valid JSON")
    except json.JSONDecodeError:
        pass


# ---- JSON format ----


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(
        _JsonFormatter().format(_record(msg="Hello %s", args=("world",), name="test.logger"))
    )
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "test.logger"
    assert parsed["message"] == "Hello world"
    assert "timestamp" in parsed


def test_json_formatter_lifts_request_fields() -> None:
    record = _record()
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.method = "GET"  # type: ignore[attr-defined]
    record.path = "/health"  # type: ignore[attr-defined]
    record.duration_ms = 12.5  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["method"] == "GET"
    assert parsed["path"] == "/health"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_lifts_attempt_fields() -> None:
    logger = logging.getLogger("test.attempts")
    record = logger.makeRecord(
        "test.attempts",
        logging.INFO,
        "attempt_session.py",
        1,
        "Attempt submitted",
        (),
        None,
        extra={"attempt_id": "a-1", "user_id": "u-1", "trigger": "timer"},
    )
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["attempt_id"] == "a-1"
    assert parsed["user_id"] == "u-1"
    assert parsed["trigger"] == "timer"
    assert "test_id" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ValueError("test error")
    except ValueError:
        output = _JsonFormatter().format(
            _record(logging.ERROR, "Something failed", exc_info=sys.exc_info())
        )

    parsed = json.loads(output)
    assert "ValueError: test error" in parsed["exception"]

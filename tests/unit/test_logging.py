from __future__ import annotations

import io
import logging
import sys
from collections.abc import Generator

import pytest

from competition_registration.core.logging import (
    HANDLER_NAME,
    LOG_FORMAT,
    ContextFormatter,
    configure_logging,
)


@pytest.fixture
def captured_stream() -> Generator[io.StringIO, None, None]:
    configure_logging("INFO")
    (handler,) = [
        handler
        for handler in logging.getLogger().handlers
        if handler.get_name() == HANDLER_NAME
    ]
    assert isinstance(handler, logging.StreamHandler)
    stream = io.StringIO()
    previous = handler.setStream(stream)
    try:
        yield stream
    finally:
        handler.setStream(previous)


def test_configure_logging_output_keeps_extra_context(
    captured_stream: io.StringIO,
) -> None:
    logging.getLogger("competition_registration.test").warning(
        "payment_verification_unavailable",
        extra={"record_id": "abc-123", "error": "gateway timed out"},
    )

    line = captured_stream.getvalue()
    assert "WARNING" in line
    assert "payment_verification_unavailable" in line
    assert "record_id=abc-123" in line
    assert "error='gateway timed out'" in line


def test_configure_logging_installs_one_named_handler() -> None:
    configure_logging("INFO")
    configure_logging("DEBUG")

    root_logger = logging.getLogger()
    named = [
        handler
        for handler in root_logger.handlers
        if handler.get_name() == HANDLER_NAME
    ]
    assert len(named) == 1
    assert root_logger.level == logging.DEBUG
    configure_logging("INFO")


def test_formatter_without_context_renders_plain_line() -> None:
    record = logging.makeLogRecord(
        {"name": "x", "levelno": logging.INFO, "levelname": "INFO", "msg": "started"}
    )

    line = ContextFormatter(LOG_FORMAT).format(record)

    assert line.endswith("INFO x started")


def test_formatter_keeps_context_on_first_line_with_traceback() -> None:
    try:
        raise RuntimeError("provider down")
    except RuntimeError:
        record = logging.makeLogRecord(
            {
                "name": "x",
                "levelno": logging.ERROR,
                "levelname": "ERROR",
                "msg": "confirmation_failed",
                "record_id": "abc-123",
                "exc_info": sys.exc_info(),
            }
        )

    first_line, _, rest = ContextFormatter(LOG_FORMAT).format(record).partition("\n")

    assert first_line.endswith("confirmation_failed record_id=abc-123")
    assert "RuntimeError: provider down" in rest

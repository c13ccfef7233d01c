"""Process-wide logging setup."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
HANDLER_NAME = "competition_registration"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED_ATTRIBUTES = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Render the event line followed by its ``extra`` context as key=value."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRIBUTES and not key.startswith("_")
        }
        if not context:
            return line

        rendered = " ".join(
            _render_pair(key, value) for key, value in sorted(context.items())
        )
        head, newline, rest = line.partition("\n")
        return f"{head} {rendered}{newline}{rest}"


def _render_pair(key: str, value: object) -> str:
    if isinstance(value, str) and (not value or " " in value):
        return f"{key}={value!r}"
    return f"{key}={value}"


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the root logger, once per process."""

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    if any(handler.get_name() == HANDLER_NAME for handler in root_logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(ContextFormatter(LOG_FORMAT))
    root_logger.addHandler(handler)

"""Logging for tariff-engine services and batch scripts.

Services pass the loan they are working on as record extras::

    logger.info("Generated schedule", extra={"loan_id": loan_id})

Both output formats surface these context fields, so a batch log can be
filtered per loan or per debtor.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

from tariff_engine.exceptions import ConfigurationError

CONTEXT_FIELDS = ("loan_id", "debtor_id", "month_index", "spread_table_version")

QUIET_LOGGERS = ("psycopg", "faker")

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Loan context attached to a record through ``extra``."""
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}


class ContextFormatter(logging.Formatter):
    """Text formatter that appends ``key=value`` loan context."""

    def __init__(self) -> None:
        super().__init__(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per record, loan context as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(record_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Decimal rates and dates serialize as strings
        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
    stream: IO[str] | None = None,
) -> None:
    """Configure the root logger for a batch run or service process.

    Parameters
    ----------
    level : str
        Log level name; unknown names fall back to INFO.
    format_type : str
        ``"standard"`` for text lines or ``"json"``.
    stream : IO[str] | None
        Output stream, stdout when omitted.

    Raises
    ------
    ConfigurationError
        If ``format_type`` is not recognised.
    """
    formatters = {"standard": ContextFormatter, "json": JsonFormatter}
    if format_type not in formatters:
        raise ConfigurationError(f"Unknown log format {format_type!r}")

    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatters[format_type]())
    root_logger.addHandler(handler)

    logging.getLogger("tariff_engine").setLevel(log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

"""
Structured JSON logging for the marketplace kernel.

Every record under the ``marketplace_kernel`` logger tree is written as one
JSON object per line.  The object carries the envelope (ts, level, logger,
message), whatever identifiers are bound in LogContext for the current
operation, the record's ``extra`` fields, and for errors the exception's
``code`` plus its public attributes.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

ROOT_LOGGER_NAME = "marketplace_kernel"


class LogContext:
    """
    Identifiers attached to every record logged inside an operation.

    Backed by ContextVars, so values never leak between threads or tasks.
    MarketplaceWorkflow binds actor, project and proposal for the duration
    of each call.
    """

    FIELDS = ("correlation_id", "actor_id", "project_id", "proposal_id")

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"marketplace_log_{name}", default=None) for name in FIELDS
    }

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Bound fields only; unset ones are omitted."""
        return {
            name: value
            for name, var in cls._vars.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """
        Bind fields for the body of a ``with`` block, then restore them.

        None values are skipped; anything else (UUIDs) is stored as str.

        Raises:
            KeyError: For a field outside FIELDS.
        """
        tokens = [
            (cls._vars[name], cls._vars[name].set(str(value)))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    return repr(value)


# Attributes every LogRecord has; anything else on a record came from extra=
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in entry
        )
        if record.exc_info and record.exc_info[1] is not None:
            entry.update(self._exception_fields(record))
        return json.dumps(entry, default=_json_default)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        error = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(error).__name__,
            "exc_message": str(error),
        }
        code = getattr(error, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # MarketplaceError subclasses keep their identifiers as attributes
        fields.update(
            (f"exc_{name}", value)
            for name, value in vars(error).items()
            if not name.startswith("_")
        )
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    """``get_logger("services.project")`` -> ``marketplace_kernel.services.project``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_state_lock = threading.Lock()
_configured = False


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the marketplace_kernel logger.

    Only the first call has an effect until reset_logging() runs, so the
    engine and scripts may both call it.
    """
    global _configured
    with _state_lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.propagate = False
    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    root.addHandler(target)


def reset_logging() -> None:
    """Drop handlers and allow configure_logging() again.  Tests only."""
    global _configured
    with _state_lock:
        _configured = False
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.handlers.clear()
    root.setLevel(logging.WARNING)

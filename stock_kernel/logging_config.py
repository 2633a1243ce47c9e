"""
Structured JSON logging for the stock kernel.

Every record is one JSON line.  Fields bound in LogContext (the clinical
event, the acting user, the item being adjusted) are merged into every
record written inside the bound block, so a consumption's lock, ledger and
rollback lines can be correlated without passing ids around.

Quantities are written as strings so ``Decimal("0.500000000")`` is never
rounded through a float, and enum members (ledger reasons, alert
severities) are written as their values.
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
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

_LOGGER_PREFIX = "stock_kernel"


class LogContext:
    """Context-local log fields for the operation in progress."""

    _FIELD_NAMES = ("correlation_id", "event_id", "actor_id", "item_type")

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"stock_log_{name}", default=None) for name in _FIELD_NAMES
    }

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set context fields. None values are ignored."""
        for name, value in fields.items():
            if name not in cls._vars:
                raise TypeError(f"Unknown log context field: {name}")
            if value is not None:
                cls._vars[name].set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
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
    def bind(cls, **fields: object) -> Iterator[type["LogContext"]]:
        """
        Set fields for the duration of a block, restoring the previous
        values on exit.  Values are stored as strings, so an integer event
        id binds as ``"501"``.
        """
        tokens = [
            (cls._vars[name], cls._vars[name].set(str(value)))
            for name, value in fields.items()
            if value is not None and name in cls._vars
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        # An explicit extra never overrides a bound context field
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # StockKernelError subclasses keep their details as attributes
        for key, value in vars(exc).items():
            if not key.startswith("_") and key != "code":
                fields[f"exc_{key}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the stock_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``stock_kernel`` logger.

    Only the first call has an effect.  ``level`` accepts a level number or
    a name such as ``"DEBUG"`` (as read from the configuration file).
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level.upper() if isinstance(level, str) else level)
    kernel_logger.propagate = False

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(handler)


def reset_logging() -> None:
    """Undo configure_logging(). FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)

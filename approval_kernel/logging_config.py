"""
Structured JSON logging for the approval kernel.

Every record under the ``approval_kernel`` logger tree is rendered as one
JSON object per line.  A record carries, in order of precedence:

- the fixed fields ``ts``, ``level``, ``logger``, ``message``;
- the request-scoped fields bound in ``LogContext`` (which proposal is being
  decided, by whom, under which correlation id);
- the ``extra`` mapping passed at the call site;
- for ``exc_info`` records, ``exc_type``/``exc_message``/``exc_code`` and one
  ``exc_<attr>`` entry per public attribute of the exception, so the
  structured data on ``ApprovalKernelError`` subclasses survives into logs.

Messages are event names (``proposal_approved``, ``authorization_denied``)
rather than prose; the detail lives in the fields.
"""

from __future__ import annotations

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
from typing import IO, Any
from uuid import UUID

LOGGER_NAMESPACE = "approval_kernel"

CONTEXT_FIELDS: tuple[str, ...] = ("correlation_id", "proposal_id", "actor_name")


# ---------------------------------------------------------------------------
# Request-scoped context
# ---------------------------------------------------------------------------


class LogContext:
    """Context-local fields stamped onto every record (thread- and task-safe)."""

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"approval_log_{name}", default=None) for name in CONTEXT_FIELDS
    }

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        proposal_id: str | None = None,
        actor_name: str | None = None,
    ) -> None:
        """Set the given fields; ``None`` leaves a field unchanged."""
        for name, value in (
            ("correlation_id", correlation_id),
            ("proposal_id", proposal_id),
            ("actor_name", actor_name),
        ):
            if value is not None:
                cls._vars[name].set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        values = {name: var.get() for name, var in cls._vars.items()}
        return {name: value for name, value in values.items() if value is not None}

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type[LogContext]]:
        """Bind fields for the duration of a ``with`` block.

        Unknown field names and ``None`` values are ignored; the previous
        values are restored on exit, including after an exception.
        """
        tokens = [
            (cls._vars[name], cls._vars[name].set(value))
            for name, value in fields.items()
            if value is not None and name in cls._vars
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for attr, value in vars(exc).items():
        if attr.startswith("_") or attr == "code":
            continue
        fields[f"exc_{attr}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for attr, value in vars(record).items():
            if attr not in _RECORD_ATTRIBUTES:
                payload.setdefault(attr, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` under the approval_kernel namespace."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_setup_lock = threading.Lock()
_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: IO[str] | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one structured handler to the namespace logger.

    Idempotent: once a handler is installed, further calls are no-ops
    until ``reset_logging``.
    """
    global _handler
    with _setup_lock:
        if _handler is not None:
            return
        _handler = handler or logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(StructuredFormatter())

        namespace = logging.getLogger(LOGGER_NAMESPACE)
        namespace.setLevel(level)
        namespace.propagate = False
        namespace.addHandler(_handler)


def reset_logging() -> None:
    """Remove installed handlers so ``configure_logging`` can run again (tests)."""
    global _handler
    with _setup_lock:
        _handler = None
        namespace = logging.getLogger(LOGGER_NAMESPACE)
        namespace.handlers.clear()
        namespace.setLevel(logging.WARNING)

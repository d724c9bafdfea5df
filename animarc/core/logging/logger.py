"""
Animarc logging.

Purpose
-------
Structured logging for the progression core. Every record emitted under a
``LogContext`` carries the user, component, operation and a correlation id,
so one raid attempt or duel can be followed across services and stores.

Usage
-----
Modules log through ``get_logger(__name__)`` and never configure handlers
themselves. The host application calls ``setup_logging()`` once to get JSON
lines on a stream; without it, records propagate to whatever the host has
configured on the root logger.

Design Notes
------------
- Context lives in a ContextVar, so concurrent asyncio tasks never see each
  other's fields.
- ``extra={...}`` fields are emitted under ``"extra"`` in the JSON line.
- Setup attaches to the ``animarc`` logger only and is idempotent.

Dependencies
------------
- animarc.core.config.config.Config (LOG_LEVEL)
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging import Logger
from typing import Any, Dict, Optional, TextIO

from animarc.core.config.config import Config

ROOT_LOGGER_NAME = "animarc"

_request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})

_handler: Optional[logging.Handler] = None


# ============================================================================
# Filter & Formatter
# ============================================================================


class ContextFilter(logging.Filter):
    """Copies the active LogContext onto each record; explicit ``extra`` wins."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _request_context.get({})
        defaults = {
            "user_id": context.get("user_id", "N/A"),
            "correlation_id": context.get("correlation_id") or "N/A",
            "component": context.get("component") or record.name.split(".", 1)[0],
            "operation": context.get("operation") or "N/A",
        }
        for attr, value in defaults.items():
            if getattr(record, attr, None) is None:
                setattr(record, attr, value)
        return True


# Attributes every LogRecord has; anything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}
_CONTEXT_ATTRS = ("user_id", "correlation_id", "component", "operation")


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in _CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value not in (None, "N/A"):
                payload[attr] = value

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in _CONTEXT_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Setup
# ============================================================================


def setup_logging(stream: Optional[TextIO] = None, level: Optional[str] = None) -> logging.Handler:
    """
    Attach a JSON stream handler to the ``animarc`` logger.

    ``level`` defaults to ``Config.LOG_LEVEL``. Calling again returns the
    handler already installed.
    """
    global _handler

    if _handler is not None:
        return _handler

    log_level = logging.getLevelName((level or Config.LOG_LEVEL).upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JSONFormatter())

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(log_level)
    package_logger.addHandler(handler)
    _handler = handler

    package_logger.info(
        "Logging initialized",
        extra={"environment": Config.ENVIRONMENT, "log_level": logging.getLevelName(log_level)},
    )
    return handler


def shutdown_logging() -> None:
    global _handler

    if _handler is None:
        return
    logging.getLogger(ROOT_LOGGER_NAME).removeHandler(_handler)
    _handler.flush()
    _handler.close()
    _handler = None


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scoped logging context for one operation.

    Example:
        >>> async with LogContext(user_id="u-1", operation="raid.attack"):
        ...     logger.info("Raid attempt started")
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        request_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        effective = correlation_id or request_id or uuid.uuid4().hex[:8]
        self.context: Dict[str, Any] = {
            "user_id": str(user_id) if user_id is not None else "N/A",
            "component": component,
            "operation": operation,
            "correlation_id": effective,
            "request_id": request_id or effective,
            **extra,
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _request_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _request_context.reset(self._token)

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(
    user_id: Optional[str] = None,
    component: Optional[str] = None,
    operation: Optional[str] = None,
    correlation_id: Optional[str] = None,
    request_id: Optional[str] = None,
    **extra: Any,
) -> None:
    """Merge fields into the current context without opening a scope."""
    current = dict(_request_context.get({}))
    if user_id is not None:
        current["user_id"] = str(user_id)
    if component is not None:
        current["component"] = component
    if operation is not None:
        current["operation"] = operation
    if correlation_id:
        current["correlation_id"] = correlation_id
    if request_id:
        current["request_id"] = request_id
        current.setdefault("correlation_id", request_id)
    current.update(extra)
    _request_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_request_context.get({}))


def clear_log_context() -> None:
    _request_context.set({})

# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across lookups and imports
# CREATED: 14 SEP 2026
# ============================================================================
"""
Structured Logging

JSON lines in deployed environments (LOG_FORMAT=json), one readable line
per record during development.

A lookup or an import opens a log_context; every record emitted inside it
carries the same correlation_id / tier / dataset_code / version_id,
whichever logger emitted it:

    from core.logging import ComponentType, get_logger, log_context

    logger = get_logger(__name__, ComponentType.SERVICE)

    with log_context(operation="irradiance.lookup", correlation_id=req_id):
        with log_context(tier="nsrdb"):
            logger.info("Fetching series", extra={"lat": -15.8})

Context lives in a ContextVar, so concurrent requests on one event loop
never share fields.
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Union


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    API = "api"
    SERVICE = "service"
    RESOLVER = "resolver"
    IMPORTER = "importer"


@dataclass(frozen=True)
class LogContext:
    correlation_id: Optional[str] = None
    operation: Optional[str] = None
    tier: Optional[str] = None
    dataset_code: Optional[str] = None
    version_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Set fields only, extras flattened in."""
        result = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "extra" and getattr(self, f.name) is not None
        }
        result.update(self.extra)
        return result

    def label(self) -> str:
        """Short inline form for the human formatter."""
        parts = [
            ("req", self.correlation_id),
            ("tier", self.tier),
            ("dataset", self.dataset_code),
            ("version", self.version_id),
        ]
        return ", ".join(f"{k}={v}" for k, v in parts if v)


_NAMED_FIELDS = frozenset(f.name for f in fields(LogContext)) - {"extra"}

_current: ContextVar[LogContext] = ContextVar("irradiance_log_context", default=LogContext())


def get_current_context() -> LogContext:
    return _current.get()


@contextmanager
def log_context(**values: Any) -> Iterator[LogContext]:
    """
    Layer fields over the enclosing context for the duration of the block.

    None leaves the enclosing value in place; unknown keys go to `extra`.
    """
    parent = _current.get()
    named = {k: v for k, v in values.items() if k in _NAMED_FIELDS and v is not None}
    extra = {k: v for k, v in values.items() if k not in _NAMED_FIELDS and v is not None}
    context = replace(parent, extra={**parent.extra, **extra}, **named)

    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _record_data(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra", None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_current_context().to_dict()
        if context:
            entry["context"] = context
        data = _record_data(record)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry["source"] = f"{record.filename}:{record.lineno}"
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """time LEVEL logger [context]: message {data}"""

    def format(self, record: logging.LogRecord) -> str:
        label = get_current_context().label()
        line = "{} {:<8} {}{}: {}".format(
            datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            record.levelname,
            record.name,
            f" [{label}]" if label else "",
            record.getMessage(),
        )
        data = _record_data(record)
        if data:
            line += f" {data}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """
    Adapter that folds the caller's `extra` and the component into a single
    `record.extra` dict, which both formatters read.
    """

    def process(self, msg, kwargs):
        data = dict(kwargs.get("extra") or {})
        component = self.extra.get("component") if self.extra else None
        if component is not None:
            data.setdefault("component", component.value)
        kwargs["extra"] = {"extra": data}
        return msg, kwargs


def get_logger(name: str, component: Optional[ComponentType] = None) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), {"component": component})


def configure_logging(level: Union[str, int] = "INFO", json_output: bool = False) -> None:
    """
    Replace the root handlers with one stdout handler.

    LOG_FORMAT=json forces JSON output regardless of json_output.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    json_output = json_output or os.getenv("LOG_FORMAT", "").lower() == "json"
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if json_output else HumanFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    # httpx logs every request at INFO, which duplicates the tier logs
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
) -> None:
    """
    Log a named checkpoint ("version_promoted", "lookup_exhausted", ...).

    Checkpoints carry the full context so one lookup or one import can be
    followed by querying a single field.

    Args:
        name: Checkpoint name
        data: Optional checkpoint data
        logger: Logger (or ContextLogger) to emit through; defaults to
            the "checkpoint" logger
    """
    payload: Dict[str, Any] = {"checkpoint": name, **get_current_context().to_dict()}
    if data:
        payload["data"] = data

    if logger is None:
        target = logging.getLogger("checkpoint")
    elif isinstance(logger, logging.LoggerAdapter):
        # The adapter would nest the payload a second time
        target = logger.logger
    else:
        target = logger
    target.info(f"CHECKPOINT: {name}", extra={"extra": payload})


__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]

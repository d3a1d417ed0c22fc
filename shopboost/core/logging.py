"""
Shop Boost Importer - Structured Logging

Every record emitted inside an import run is stamped with the import fields
active at that moment (run_id, shop_id, intake_id, entity, row_number), so a
failed row can be found from a single log line. Production emits one JSON
object per line; development gets a short coloured line.

Usage:
    logger = logging.getLogger(__name__)

    with LogContext(run_id=intake_id, shop_id=shop_id):
        with LogContext(entity="vehicles", row_number=12):
            logger.warning("Row failed")
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping

from pydantic import BaseModel

_import_fields: ContextVar[Mapping[str, Any]] = ContextVar("import_fields", default={})

# Record attributes passed through ``extra=`` that belong in structured output
RECORD_FIELDS = ("external_id", "duration_ms", "status", "count", "error_type")

# Keys containing any of these fragments are masked; contact details count.
SENSITIVE_FRAGMENTS = (
    "password",
    "secret",
    "token",
    "api_key",
    "apikey",
    "service_role",
    "authorization",
    "credential",
    "email",
    "phone",
)

MASK = "[REDACTED]"


def get_current_context() -> Dict[str, Any]:
    """Import fields active in the current task."""
    return dict(_import_fields.get())


@contextmanager
def LogContext(**fields: Any) -> Iterator[None]:
    """Stamp ``fields`` on every record logged inside the block; nesting adds to the outer fields."""
    token = _import_fields.set({**_import_fields.get(), **fields})
    try:
        yield
    finally:
        _import_fields.reset(token)


def redact_sensitive(data: Any, max_depth: int = 10) -> Any:
    """Mask values under sensitive keys anywhere in a nested structure."""
    if max_depth <= 0:
        return "[MAX_DEPTH_EXCEEDED]"
    if isinstance(data, BaseModel):
        data = data.model_dump()
    if isinstance(data, Mapping):
        return {
            key: MASK
            if any(fragment in str(key).lower() for fragment in SENSITIVE_FRAGMENTS)
            else redact_sensitive(value, max_depth - 1)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_sensitive(item, max_depth - 1) for item in data]
    return data


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = get_current_context()
    for name in RECORD_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value
    return fields


class StructuredJsonFormatter(logging.Formatter):
    """One JSON object per record, import fields inlined and secrets masked."""

    def __init__(
        self,
        service_name: str | None = None,
        include_timestamp: bool = True,
        redact_sensitive_data: bool = True,
    ) -> None:
        super().__init__()
        self.service_name = service_name
        self.include_timestamp = include_timestamp
        self.redact_sensitive_data = redact_sensitive_data

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        if self.service_name:
            entry["service"] = self.service_name
        entry.update(_record_fields(record))

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        if self.redact_sensitive_data:
            entry = redact_sensitive(entry)
        return json.dumps(entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger [run=..., entity=..., row=...] message``"""

    LEVEL_COLOURS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"
    SHOWN = (("run_id", "run"), ("entity", "entity"), ("row_number", "row"))

    def format(self, record: logging.LogRecord) -> str:
        fields = get_current_context()
        tags = [
            f"{label}={str(fields[key])[:8] if key == 'run_id' else fields[key]}"
            for key, label in self.SHOWN
            if key in fields
        ]
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        colour = self.LEVEL_COLOURS.get(record.levelno, "")
        tag_text = f" [{', '.join(tags)}]" if tags else ""

        line = (
            f"{stamp} {colour}{record.levelname:<8}{self.RESET} "
            f"{record.name}{tag_text} {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _BelowWarning(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def _create_split_handlers(formatter: logging.Formatter, level: int) -> list[logging.Handler]:
    """DEBUG/INFO go to stdout, WARNING and above to stderr."""
    out = logging.StreamHandler(sys.stdout)
    out.setLevel(level)
    out.addFilter(_BelowWarning())

    err = logging.StreamHandler(sys.stderr)
    err.setLevel(max(level, logging.WARNING))

    for handler in (out, err):
        handler.setFormatter(formatter)
    return [out, err]


def configure_structured_logging(
    level: str = "INFO",
    json_output: bool = True,
    service_name: str = "shopboost-importer",
) -> None:
    """Replace the root handlers with the split stdout/stderr pair."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    formatter: logging.Formatter = (
        StructuredJsonFormatter(service_name=service_name) if json_output else ConsoleFormatter()
    )

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in _create_split_handlers(formatter, numeric_level):
        root.addHandler(handler)


class Timer:
    """Wall-clock timer; ``elapsed_ms`` is live until the block exits."""

    def __init__(self) -> None:
        self._started = 0.0
        self._stopped: float | None = None

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._stopped = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return (end - self._started) * 1000

"""Structured logging for catalogue jobs.

Features:
- console handler on stderr (CLI reports on stdout stay machine-readable)
- optional log file
- JSON lines or plain text
- run/stage/source context carried on records via a LoggerAdapter
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "event_catalogue"

# record attributes understood by the formatters, with their short text labels
_CONTEXT_LABELS = {"run_id": "run", "stage": "stage", "source": "source"}

# ---------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {k: getattr(record, k) for k in _CONTEXT_LABELS if getattr(record, k, None)}


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        doc: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            **_context_of(record),
        }

        payload = getattr(record, "payload", None)
        if isinstance(payload, dict):
            doc["payload"] = payload
        if record.exc_info:
            doc["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(doc, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """``LEVEL logger [run=.. stage=..] message``"""

    def format(self, record: logging.LogRecord) -> str:
        head = f"{record.levelname} {record.name}"
        context = _context_of(record)
        if context:
            tags = " ".join(f"{_CONTEXT_LABELS[k]}={v}" for k, v in context.items())
            head += f" [{tags}]"

        line = f"{head} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingOptions:
    """How a CLI run or batch job logs."""

    level: str = "INFO"
    json_logs: bool = False
    log_file: Path | None = None
    enable_console: bool = True


def _make_handler(handler: logging.Handler, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(options: LoggingOptions | None = None) -> logging.Logger:
    """
    Configure the ``event_catalogue`` logger.

    Handlers installed by a previous call are closed and replaced, so
    repeated runs in one process never duplicate output.
    """
    options = options or LoggingOptions()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level = getattr(logging, options.level.upper(), logging.INFO)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        old = logger.handlers[0]
        logger.removeHandler(old)
        old.close()

    fmt: logging.Formatter = JsonFormatter() if options.json_logs else TextFormatter()

    if options.enable_console:
        logger.addHandler(_make_handler(logging.StreamHandler(sys.stderr), level, fmt))

    if options.log_file is not None:
        options.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(
            _make_handler(logging.FileHandler(options.log_file, encoding="utf-8"), level, fmt)
        )

    return logger


# ---------------------------------------------------------------------
# Context injection
# ---------------------------------------------------------------------


class ContextAdapter(logging.LoggerAdapter):
    """Merge the adapter's context into each call's ``extra``."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def with_context(
    logger: logging.Logger,
    *,
    run_id: str | None = None,
    stage: str | None = None,
    source: str | None = None,
) -> ContextAdapter:
    """Wrap ``logger`` so records carry the given run, stage and source."""
    given = {"run_id": run_id, "stage": stage, "source": source}
    return ContextAdapter(logger, {k: v for k, v in given.items() if v})

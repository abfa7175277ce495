"""Structured logging helpers: JSON lines with context."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import Any

ROOT_LOGGER = "bundle_builder"
LEVEL_ENV = "BUNDLE_BUILDER_LOG_LEVEL"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _level_from_env() -> int:
    name = os.environ.get(LEVEL_ENV, "INFO").upper()
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger under the ``bundle_builder`` hierarchy.

    The JSON handler lives on the root package logger only, module loggers
    propagate to it.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.setLevel(_level_from_env())
    return root if name == ROOT_LOGGER else logging.getLogger(name)


def set_verbosity(level: str) -> None:
    """Apply a CLI verbosity (``debug`` .. ``error`` or ``off``)."""
    root = get_logger()
    if level.lower() in {"off", "silent"}:
        root.setLevel(logging.CRITICAL + 1)
        return
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))

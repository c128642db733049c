"""Log formatting and setup for planroute.

Every planroute module logs through ``logging.getLogger(__name__)``; this
module only decides how those records are rendered.

Formats:
    Text (RouteLogFormatter):
        [2026-01-11 10:15:32] [INFO] [ROUTER] Routed 'get_tasks' via direct path
    JSON Lines (JsonLinesFormatter):
        {"timestamp":"2026-01-11T10:15:32.120+00:00","level":"INFO",
         "component":"router","message":"...","operation":"get_tasks",
         "handler_id":null,"duration_ms":3,"cache_hit":false}

Routing records carry ``operation``, ``handler_id``, ``duration_ms``,
``cache_hit`` and ``complexity`` as ``extra`` fields; both formatters pick
them up when present.

Example:
    >>> setup_logging(get_settings())
    >>> logging.getLogger("planroute.routing.router").info("ready")
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from planroute.config.settings import PlanrouteSettings


# =============================================================================
# Constants
# =============================================================================

ROOT_LOGGER_NAME = "planroute"

# Max log file size (10MB)
LOG_MAX_BYTES = 10 * 1024 * 1024

LOG_BACKUP_COUNT = 5

ROUTE_FIELDS: tuple[str, ...] = (
    "operation",
    "handler_id",
    "duration_ms",
    "cache_hit",
    "complexity",
    "category",
    "state",
)


def _component(record: logging.LogRecord) -> str:
    return record.name.split(".")[-1]


# =============================================================================
# Formatters
# =============================================================================


class RouteLogFormatter(logging.Formatter):
    """Human-readable formatter.

    Format:
        [TIMESTAMP] [LEVEL] [COMPONENT] Message
    """

    STANDARD_FORMAT = "[%(asctime)s] [%(levelname)s] [%(component)s] %(message)s"

    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.STANDARD_FORMAT, datefmt=self.DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "component"):
            record.component = _component(record).upper()
        return super().format(record)


class JsonLinesFormatter(logging.Formatter):
    """One JSON object per line, for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", _component(record)),
            "message": record.getMessage(),
        }
        for field_name in ROUTE_FIELDS:
            if hasattr(record, field_name):
                value = getattr(record, field_name)
                # Round floats to 2 decimal places
                if isinstance(value, float):
                    value = round(value, 2)
                entry[field_name] = value
        if record.exc_info:
            entry["error_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, separators=(",", ":"), default=str)


# =============================================================================
# Setup
# =============================================================================


def setup_logging(
    settings: Optional["PlanrouteSettings"] = None,
    level: Optional[str] = None,
    json_lines: Optional[bool] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure the ``planroute`` logger.

    Replaces any handlers previously installed on the ``planroute`` logger,
    so calling it twice does not duplicate output.

    Args:
        settings: Settings providing log_level, debug and logging.*.
        level: Explicit level, overrides settings.
        json_lines: Explicit format switch, overrides settings.
        log_file: Explicit rotating file path, overrides settings.

    Returns:
        The configured ``planroute`` logger.
    """
    if settings is not None:
        level = level or ("DEBUG" if settings.debug else settings.log_level)
        json_lines = settings.logging.json_lines if json_lines is None else json_lines
        log_file = log_file or settings.logging.log_file
    level = (level or "INFO").upper()
    formatter: logging.Formatter = JsonLinesFormatter() if json_lines else RouteLogFormatter()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


__all__ = [
    "ROOT_LOGGER_NAME",
    "RouteLogFormatter",
    "JsonLinesFormatter",
    "setup_logging",
]

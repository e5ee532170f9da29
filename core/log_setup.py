"""
Core Module - Logging Setup.

Routes every module logger through one stdout handler, as
pipe-separated text or one JSON object per line.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional


def new_correlation_id(prefix: str = "export") -> str:
    """Correlation ID for one process lifetime."""
    return f"{prefix}_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; the message is escaped by json.dumps."""

    def __init__(self, correlation_id: Optional[str] = None):
        super().__init__()
        self.correlation_id = correlation_id or ""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": self.correlation_id,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def build_formatter(log_format: str, correlation_id: Optional[str] = None) -> logging.Formatter:
    if log_format == "json":
        return JsonLineFormatter(correlation_id)
    return logging.Formatter(
        f"%(asctime)s | %(levelname)-8s | %(name)s | {correlation_id or '-'} | %(message)s"
    )


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    correlation_id: Optional[str] = None,
    stream=None,
) -> None:
    """Replace the root handlers with a single stream handler (stdout by default)."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(build_formatter(log_format, correlation_id))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers = [handler]

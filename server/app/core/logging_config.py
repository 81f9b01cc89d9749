"""Logging setup: JSON lines in deployed environments, plain text locally."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

_CONTEXT_FIELDS = (
    "actor",
    "user_id",
    "member_id",
    "ministry_id",
    "event_id",
    "contribution_id",
    "announcement_id",
    "cell_id",
    "outcome",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "error_code",
    "format",
    "rows",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = record.__dict__.get(key)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_church_admin", False):
            root.removeHandler(existing)
    handler._church_admin = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

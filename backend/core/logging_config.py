"""Structured logging with redaction hooks.

Two output modes, picked from ENV unless forced:
  - prod: one JSON object per line
  - elsewhere: plaintext for a terminal

Messages follow a key=value convention (device=<id> session=<id>); the JSON
formatter lifts those ids into their own fields so lines can be filtered per
device without parsing the message.
"""
import json
import logging
import re
import sys
from typing import Any, Dict, Optional

from observability.redaction import redact
from config.settings import get_settings

_ID_FIELDS = {
    "device_id": re.compile(r"device=(\S+)"),
    "session_id": re.compile(r"session=(\S+)"),
}
# Request context attached by the API error handlers via extra=
_REQUEST_FIELDS = ("method", "path", "status_code", "error_code")

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _scrub(line: str) -> str:
    if get_settings().LOG_REDACTION_ENABLED:
        return redact(line)
    return line


class RedactingFormatter(logging.Formatter):
    """Plaintext formatter; secrets are scrubbed from the finished line."""

    def format(self, record: logging.LogRecord) -> str:
        return _scrub(super().format(record))


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        entry: Dict[str, Any] = {
            "ts": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": msg,
        }
        for field, pattern in _ID_FIELDS.items():
            m = pattern.search(msg)
            if m:
                entry[field] = m.group(1)
        entry.update({k: getattr(record, k) for k in _REQUEST_FIELDS if hasattr(record, k)})

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)

        return _scrub(json.dumps(entry, default=str))


def setup_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Install a single stdout handler on the root logger."""
    settings = get_settings()
    if json_logs is None:
        json_logs = settings.ENV == "prod"

    formatter: logging.Formatter
    if json_logs:
        formatter = JSONFormatter()
    else:
        formatter = RedactingFormatter(fmt=PLAIN_FORMAT, datefmt=DATE_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)

    # Quiet chatty libraries
    for name in ("uvicorn.access", "motor", "pymongo"):
        logging.getLogger(name).setLevel(logging.WARNING)

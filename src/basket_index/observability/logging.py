"""Structured logging setup for the index API and CLI."""

from __future__ import annotations

import json
import logging
import logging.config
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_CONTEXT_ATTRS = ("endpoint", "cache_key", "provider", "request_path")
REDACTED = "***"


class JsonLogFormatter(logging.Formatter):
    """Serialize records as line-delimited JSON.

    Messages produced by ``log_event`` are already JSON objects; their fields
    are lifted to the top level instead of being nested as a string.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        message = record.getMessage()
        event = _decode_event(message)
        if event is not None:
            payload.update(event)
        else:
            payload["message"] = message
        for attr in _CONTEXT_ATTRS:
            if hasattr(record, attr):
                payload.setdefault(attr, getattr(record, attr))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _decode_event(message: str) -> dict[str, Any] | None:
    if not message.startswith("{"):
        return None
    try:
        decoded = json.loads(message)
    except ValueError:
        return None
    if isinstance(decoded, dict) and "event" in decoded:
        return decoded
    return None


class SecretRedactionFilter(logging.Filter):
    """Mask provider credentials wherever they would reach a handler."""

    def __init__(self, secrets: Iterable[str | None] = ()) -> None:
        super().__init__()
        self.secrets = [secret for secret in secrets if secret]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self.secrets:
            redacted = redacted.replace(secret, REDACTED)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(
    level: str = "INFO",
    *,
    json_format: bool = True,
    log_file: str | None = None,
    secrets: Iterable[str | None] = (),
) -> None:
    """Install root handlers; every handler masks the given ``secrets``."""
    formatter = "json" if json_format else "text"
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "filters": ["redact"],
        }
    }
    if log_file:
        file_path = Path(log_file).expanduser().resolve()
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(file_path),
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": formatter,
            "filters": ["redact"],
            "encoding": "utf-8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "redact": {
                    "()": "basket_index.observability.logging.SecretRedactionFilter",
                    "secrets": list(secrets),
                }
            },
            "formatters": {
                "json": {"()": "basket_index.observability.logging.JsonLogFormatter"},
                "text": {
                    "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S%z",
                },
            },
            "handlers": handlers,
            "root": {"level": level, "handlers": list(handlers)},
        }
    )

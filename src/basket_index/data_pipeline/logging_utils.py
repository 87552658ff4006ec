from __future__ import annotations

import json
import logging
from typing import Any


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **context: Any) -> None:
    """Log a single structured event payload."""
    payload = {"event": event, **context}
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def truncate_preview(text: str | None, limit: int = 500) -> str | None:
    """Trim an upstream body to a printable preview."""
    if text is None:
        return None
    cleaned = "".join(ch for ch in text if ch.isprintable() or ch in "\n\t").strip()
    return cleaned[:limit]

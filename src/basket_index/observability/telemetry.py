"""Crash telemetry helpers."""

from __future__ import annotations

import json
import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def emit_crash_telemetry(
    error: BaseException,
    context: dict[str, Any] | None = None,
    *,
    enabled: bool = True,
    telemetry_file: str | None = None,
) -> bool:
    """
    Append a crash record for an exception caught at a service boundary.

    Returns True if telemetry was written successfully.
    Returns False if telemetry is disabled or writing fails.
    """
    if not enabled:
        return False

    trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pid": os.getpid(),
        "error_type": type(error).__name__,
        "error_message": str(error),
        "traceback": trace,
        "context": context or {},
    }

    target = (
        Path(telemetry_file).expanduser().resolve()
        if telemetry_file
        else Path.cwd() / "data" / "crash_telemetry.jsonl"
    )
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(payload, ensure_ascii=True, default=str))
            fh.write("\n")
    except OSError:
        return False
    return True

"""Observability helpers for logging, telemetry, and metrics."""

from .logging import JsonLogFormatter, SecretRedactionFilter, configure_logging
from .metrics import MetricsCollector
from .telemetry import emit_crash_telemetry

__all__ = [
    "JsonLogFormatter",
    "SecretRedactionFilter",
    "configure_logging",
    "emit_crash_telemetry",
    "MetricsCollector",
]

from __future__ import annotations


class IndexPipelineError(Exception):
    """Base error for the basket index pipeline."""


class RequestValidationError(IndexPipelineError):
    """Raised when request parameters are malformed or out of range."""


class ConfigurationError(IndexPipelineError):
    """Raised when a required credential or setting is missing."""

    def __init__(self, message: str, *, setting: str | None = None) -> None:
        super().__init__(message)
        self.setting = setting


class InsufficientDataError(IndexPipelineError):
    """Raised when too few assets carry usable sizing or history."""

    def __init__(self, message: str, *, usable: int, required: int, total: int) -> None:
        super().__init__(message)
        self.usable = usable
        self.required = required
        self.total = total


class PipelineStepError(IndexPipelineError):
    """A named pipeline stage failed; rendered as a soft failure."""

    def __init__(
        self,
        step: str,
        message: str,
        *,
        details: str | None = None,
        upstream_status: int | None = None,
        upstream_body_preview: str | None = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.message = message
        self.details = details
        self.upstream_status = upstream_status
        self.upstream_body_preview = upstream_body_preview


class PayloadShapeError(IndexPipelineError):
    """Raised when an upstream payload matches none of the accepted shapes."""

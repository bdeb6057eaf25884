"""Error taxonomy for the generation pipeline.

Every failure carries a stable ``kind`` so logs can tell the stages apart even
though clients only ever see the 400/500 JSON shapes.
"""
from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base class for pipeline failures.

    Usage:
        raise NavigationError(url=url, cause=str(exc))
    """

    kind = "PIPELINE_ERROR"

    def __init__(self, message: str = "", **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        parts = [f"[{self.kind}]"]
        if self.message:
            parts.append(self.message)
        if ctx_str:
            parts.append(ctx_str)
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """For structured log records."""
        return {"kind": self.kind, "message": self.message, **self.context}


class ValidationError(PipelineError):
    """Missing or malformed request fields (client's fault)."""

    kind = "VALIDATION_ERROR"


class InvalidNameError(ValidationError):
    """The app name sanitizes down to nothing."""

    kind = "INVALID_NAME"


class CaptureError(PipelineError):
    kind = "CAPTURE_ERROR"


class NavigationError(CaptureError):
    """Target URL is invalid or unreachable."""

    kind = "NAVIGATION_ERROR"


class CaptureTimeoutError(CaptureError):
    """Page did not reach network idle within the timeout."""

    kind = "CAPTURE_TIMEOUT"


class RendererUnavailableError(CaptureError):
    """Chromium could not be started (missing executable, sandbox, resources)."""

    kind = "RENDERER_UNAVAILABLE"


class WriteError(PipelineError):
    kind = "WRITE_ERROR"


class ArchiveError(PipelineError):
    kind = "ARCHIVE_ERROR"


class TransferError(PipelineError):
    """Streaming the archive to the client failed after headers were sent."""

    kind = "TRANSFER_ERROR"

"""Standardized error types for segment tracking and completion streaming.

Every error carries a machine-readable code plus a human-readable message
so the orchestration boundary can surface it through the notifier and
log it with the same payload.
"""

from __future__ import annotations

from typing import Any, ClassVar, Mapping


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------

class ErrorCode:
    """Constants for error codes carried by :class:`QuillstreamError`."""

    # Anchor/segment errors
    STALE_ANCHOR = "stale_anchor"
    EMPTY_APPEND = "empty_append"

    # Configuration errors
    UNKNOWN_MODE = "unknown_mode"
    PARAMS_BUILDER = "params_builder"

    # Stream errors
    PROVIDER_STREAM = "provider_stream"
    TRUNCATED_RESPONSE = "truncated_response"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

class QuillstreamError(Exception):
    """Base exception class for all quillstream errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
    """

    error_code: ClassVar[str] = "internal_error"
    severity: ClassVar[str] = "error"

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for notices and logs."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# -----------------------------------------------------------------------------
# Anchor / Segment Errors
# -----------------------------------------------------------------------------

class StaleAnchorError(QuillstreamError):
    """Raised when an operation touches an anchor that was closed or never existed."""

    error_code = ErrorCode.STALE_ANCHOR

    def __init__(self, anchor_id: int | None = None, message: str | None = None) -> None:
        super().__init__(
            message or "Anchor for segment no longer exists",
            details={"anchor_id": anchor_id} if anchor_id is not None else None,
        )
        self.anchor_id = anchor_id


class EmptyAppendError(QuillstreamError):
    """Raised when a segment is asked to append a zero-length chunk."""

    error_code = ErrorCode.EMPTY_APPEND

    def __init__(self, message: str = "Tried to append nothing to segment") -> None:
        super().__init__(message)


# -----------------------------------------------------------------------------
# Configuration Errors
# -----------------------------------------------------------------------------

class UnknownModeError(QuillstreamError, ValueError):
    """Raised when a prompt declares a display mode outside the supported set."""

    error_code = ErrorCode.UNKNOWN_MODE

    def __init__(self, mode: Any) -> None:
        super().__init__(f"Unknown segment mode: {mode!r}", details={"mode": repr(mode)})
        self.mode = mode


class ParamsBuilderError(QuillstreamError):
    """Raised when a prompt's parameter builder produces nothing usable."""

    error_code = ErrorCode.PARAMS_BUILDER


# -----------------------------------------------------------------------------
# Stream Errors
# -----------------------------------------------------------------------------

class ProviderStreamError(QuillstreamError):
    """Wraps an ``on_error`` delivery from a provider stream."""

    error_code = ErrorCode.PROVIDER_STREAM

    def __init__(self, data: Any, label: str | None = None) -> None:
        message = data if isinstance(data, str) else repr(data)
        super().__init__(message, details={"label": label} if label else None)
        self.data = data
        self.label = label

    @property
    def title(self) -> str:
        return f"stream error {self.label or ''}".rstrip()


class TruncatedResponseError(QuillstreamError):
    """Describes a stream that finished because it hit the token limit."""

    error_code = ErrorCode.TRUNCATED_RESPONSE
    severity = "warning"

    def __init__(self, message: str = "Hit token limit") -> None:
        super().__init__(message)


__all__ = [
    "ErrorCode",
    "QuillstreamError",
    "StaleAnchorError",
    "EmptyAppendError",
    "UnknownModeError",
    "ParamsBuilderError",
    "ProviderStreamError",
    "TruncatedResponseError",
]

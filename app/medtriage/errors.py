"""Failure taxonomy for the triage pipeline.

None of these reach the HTTP caller: the engine converts every one of them into a
displayable fallback reply.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    UNAVAILABLE = "unavailable"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class TriageError(Exception):
    """Base class for triage pipeline failures."""


class ConfigurationError(TriageError):
    """Completion credentials are missing or blank."""


class UpstreamError(TriageError):
    kind: FailureKind = FailureKind.UNKNOWN

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind in {FailureKind.TIMEOUT, FailureKind.RATE_LIMITED}


class UpstreamUnavailable(UpstreamError):
    kind = FailureKind.UNAVAILABLE


class UpstreamRateLimited(UpstreamError):
    kind = FailureKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after_sec: float | None = None,
    ):
        super().__init__(message, status_code=status_code)
        self.retry_after_sec = retry_after_sec


class UpstreamTimeout(UpstreamError):
    kind = FailureKind.TIMEOUT


class UpstreamUnknown(UpstreamError):
    kind = FailureKind.UNKNOWN


class MalformedStructuredOutput(TriageError):
    """The structured block is present but unusable; the turn degrades to plain text."""

    def __init__(self, field_name: str, detail: str):
        super().__init__(f"{field_name}: {detail}")
        self.field_name = field_name
        self.detail = detail

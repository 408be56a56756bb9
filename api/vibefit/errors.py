from __future__ import annotations

from enum import Enum
from typing import Optional


class FailureReason(str, Enum):
    CAPABILITY_UNAVAILABLE = "capability_unavailable"
    EMPTY_RESULT = "empty_result"
    REQUEST_REJECTED = "request_rejected"
    TRANSPORT_FAILURE = "transport_failure"


class InvalidInput(ValueError):
    """Raised for caller-supplied values the core cannot work with."""


class VibefitError(RuntimeError):
    """Base class for failures of a call against the generation service."""

    reason: FailureReason = FailureReason.REQUEST_REJECTED

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        # Set on the terminal error of a fallback hop.
        self.primary_failure: Optional[VibefitError] = None


class CapabilityUnavailable(VibefitError):
    """The model is missing or the key has no access to it (403/404)."""

    reason = FailureReason.CAPABILITY_UNAVAILABLE


class EmptyResult(VibefitError):
    """The call succeeded but carried nothing usable."""

    reason = FailureReason.EMPTY_RESULT


class RequestRejected(VibefitError):
    """Any other 4xx/5xx answer: bad input, quota, server error."""

    reason = FailureReason.REQUEST_REJECTED


class TransportFailure(VibefitError):
    """The request never got an answer (connection error, timeout)."""

    reason = FailureReason.TRANSPORT_FAILURE

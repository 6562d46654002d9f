"""Error taxonomy for capture and evaluation failures."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    DEVICE_ACCESS = "device_access"
    CONFIGURATION = "configuration"
    TRANSIENT_SERVICE = "transient_service"
    QUOTA_EXCEEDED = "quota_exceeded"
    SCHEMA = "schema"


class EvaluationError(Exception):
    """Classified pipeline failure with a short user-facing message.

    ``detail`` keeps the upstream text for logs; it is never shown to the user.
    """

    kind: ErrorKind = ErrorKind.CONFIGURATION
    default_message = "Something went wrong. Please try again."
    retryable = False

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class DeviceAccessError(EvaluationError):
    kind = ErrorKind.DEVICE_ACCESS
    default_message = "Could not access the microphone. Please check permissions and try again."


class ConfigurationError(EvaluationError):
    kind = ErrorKind.CONFIGURATION
    default_message = "API configuration error. Please check your API key."


class TransientServiceError(EvaluationError):
    kind = ErrorKind.TRANSIENT_SERVICE
    default_message = "The service is currently busy. Please try again in a few moments."
    retryable = True


class QuotaExceededError(EvaluationError):
    kind = ErrorKind.QUOTA_EXCEEDED
    default_message = "API quota exceeded. Please check your account credits."


class SchemaError(EvaluationError):
    kind = ErrorKind.SCHEMA
    default_message = "Could not read the pronunciation evaluation. Please try again."


QUOTA_MARKERS = ("insufficient_quota", "quota", "billing")
CREDENTIAL_MARKERS = ("api key", "invalid_api_key", "authentication", "unauthorized", "not configured")
TRANSIENT_MARKERS = (
    "overloaded",
    "rate limit",
    "rate_limit",
    "timeout",
    "timed out",
    "network",
    "econnreset",
    "etimedout",
)
TRANSIENT_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def classify_failure(status_code: Optional[int], message: str) -> EvaluationError:
    """Map an upstream HTTP status and error text to a classified error.

    Quota phrasing wins over rate-limit phrasing even when both arrive as 429.
    """
    text = (message or "").lower()
    detail = message or (f"HTTP {status_code}" if status_code else None)
    if any(marker in text for marker in QUOTA_MARKERS):
        return QuotaExceededError(detail=detail)
    if status_code in (401, 403) or any(marker in text for marker in CREDENTIAL_MARKERS):
        return ConfigurationError(detail=detail)
    if status_code in TRANSIENT_STATUSES or any(marker in text for marker in TRANSIENT_MARKERS):
        return TransientServiceError(detail=detail)
    if status_code is not None and 400 <= status_code < 500:
        return ConfigurationError("The evaluation request was rejected by the service.", detail=detail)
    return TransientServiceError(detail=detail)


__all__ = [
    "ErrorKind",
    "EvaluationError",
    "DeviceAccessError",
    "ConfigurationError",
    "TransientServiceError",
    "QuotaExceededError",
    "SchemaError",
    "classify_failure",
]

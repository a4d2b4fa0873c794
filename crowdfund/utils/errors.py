"""Domain errors and helpers for standardized error responses."""
from typing import Any


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload."""

    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


class CrowdfundError(Exception):
    """Base class for errors raised by the service layer.

    Each subclass carries the HTTP status the API layer renders it with; the
    ``code`` is the machine-readable identifier placed in the error envelope.
    """

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_response(self) -> dict[str, Any]:
        return error_response(self.code, self.message, self.details)


class ValidationFailure(CrowdfundError):
    """Malformed payload or failed signature check. No side effects."""

    status_code = 400
    default_code = "VALIDATION_FAILED"


class Forbidden(CrowdfundError):
    status_code = 403
    default_code = "FORBIDDEN"


class NotFound(CrowdfundError):
    """Referenced campaign, milestone or user is absent. No side effects."""

    status_code = 404
    default_code = "NOT_FOUND"


class Conflict(CrowdfundError):
    """Structural change on a voted milestone, duplicate vote or illegal state change."""

    status_code = 409
    default_code = "CONFLICT"


class PersistenceFailure(CrowdfundError):
    """The atomic ledger update could not commit; the whole call may be retried."""

    status_code = 503
    default_code = "PERSISTENCE_FAILURE"


class SequencerFailure(CrowdfundError):
    """Advancing the active milestone failed after the payment was committed."""

    status_code = 500
    default_code = "SEQUENCER_FAILURE"


__all__ = [
    "error_response",
    "CrowdfundError",
    "ValidationFailure",
    "Forbidden",
    "NotFound",
    "Conflict",
    "PersistenceFailure",
    "SequencerFailure",
]

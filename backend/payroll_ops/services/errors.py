# Overview: Domain error taxonomy for uniform order services.

"""
Errors raised by the order services.

Routes translate these into JSON responses:
- ValidationError      -> 400 (bad input shape; do not retry)
- OrderNotFoundError   -> 404
- InvalidStateError    -> 409 (includes the current status)
- NothingReceivedError -> 400
- NotDueError          -> 409
- NotUndoableError     -> 409 (terminal)
- LockTimeoutError     -> 503 (retryable)
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for uniform order domain errors."""
    status_code = 400
    retryable = False

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        if self.retryable:
            body["retryable"] = True
        return body


class ValidationError(OrderError, ValueError):
    """Input failed validation (missing fields, size limits)."""
    status_code = 400


class OrderNotFoundError(OrderError, LookupError):
    status_code = 404


class InvalidStateError(OrderError):
    """Operation is not legal for the order's current status."""
    status_code = 409

    def __init__(self, message: str, *, current_status: str | None = None):
        super().__init__(message)
        self.current_status = current_status

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["current_status"] = self.current_status
        return body


class NothingReceivedError(OrderError):
    """A receive call reported zero received quantity across all lines."""
    status_code = 400


class NotDueError(OrderError):
    """No installment can be recorded for the order."""
    status_code = 409


class NotUndoableError(OrderError):
    """Undo entry is unknown, already undone, or past its window."""
    status_code = 409


class LockTimeoutError(OrderError):
    """Identifier lock could not be acquired in time. Safe to retry."""
    status_code = 503
    retryable = True

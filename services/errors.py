"""Domain error types shared by services and the JSON boundary."""

from __future__ import annotations

from typing import Optional


class QuoteAppError(Exception):
    """Base class for errors that are reported back to the caller.

    ``code`` is machine-readable; the message is safe to show to users.
    """

    code = "ERROR"
    http_status = 400

    def __init__(self, message: str, field_errors: Optional[dict[str, list[str]]] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors or {}


class Unauthenticated(QuoteAppError):
    code = "UNAUTHENTICATED"
    http_status = 401


class ValidationError(QuoteAppError):
    code = "VALIDATION_ERROR"
    http_status = 422


class NotFoundError(QuoteAppError):
    """Missing or owned by another business; callers cannot tell the two apart."""

    code = "NOT_FOUND"
    http_status = 404


class InvalidStateError(QuoteAppError):
    code = "INVALID_STATE"
    http_status = 409


class ExternalServiceError(QuoteAppError):
    code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class NumberingError(QuoteAppError):
    """The previous quote number could not be determined; nothing was created."""

    code = "NUMBERING_ERROR"
    http_status = 500

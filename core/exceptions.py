from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule failures surfaced to the caller."""

    status_code = 400
    default_message = "Request could not be processed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(DomainError):
    status_code = 401
    default_message = "Unauthorized"


class ValidationError(DomainError):
    status_code = 400
    default_message = "Invalid input."


class NotFoundError(DomainError):
    # Rows of another tenant are reported exactly like missing rows.
    status_code = 404
    default_message = "Not found."


class ConflictError(DomainError):
    status_code = 409
    default_message = "Operation conflicts with the current state."


class GatewayError(DomainError):
    status_code = 502
    default_message = "Payment provider error."

    def __init__(self, message: str | None = None, *, provider: str = ""):
        self.provider = provider
        super().__init__(message)

"""
Typed failures raised by the business logic.

The API layer maps each class to an HTTP status in one place.
"""


class CivicError(Exception):
    """Base class for all business logic failures."""

    status_code = 500


class ValidationError(CivicError):
    """Raised when required input is missing or malformed."""

    status_code = 400


class AuthenticationError(CivicError):
    """Raised when no valid session is presented."""

    status_code = 401


class AuthorizationError(CivicError):
    """Raised when the caller lacks the required role or ownership."""

    status_code = 403


class NotFoundError(CivicError):
    """Raised when a referenced problem, solution or resource is missing."""

    status_code = 404


class ConflictError(CivicError):
    """Raised when an operation is not allowed in the current state."""

    status_code = 400


class DependencyError(CivicError):
    """Raised when the store or the AI provider fails."""

    status_code = 500

"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status the API answers with and a message
that is safe to show to the caller.
"""

from typing import Optional


class LibraryError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(LibraryError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request data."


class AuthenticationError(LibraryError):
    """Missing, invalid or expired session token, or a wrong current password."""

    status_code = 401
    default_message = "Authentication required."


class ForbiddenError(LibraryError):
    """The caller is not allowed to perform the operation."""

    status_code = 403
    default_message = "Access denied. Insufficient permissions."


class NotFoundError(LibraryError):
    """Referenced entity does not exist."""

    status_code = 404
    default_message = "Resource not found."


class ConflictError(LibraryError):
    """Duplicate registration or catalog entry."""

    status_code = 409
    default_message = "Resource already exists."


class DeliveryError(LibraryError):
    """The mail sender could not deliver a message."""

    status_code = 500
    default_message = "The recovery e-mail could not be sent. Check the SMTP configuration."


class TransientStoreError(LibraryError):
    """The relational store is unavailable. Callers may retry."""

    status_code = 500
    default_message = "The service is temporarily unavailable. Try again later."

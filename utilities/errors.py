"""
Error taxonomy shared by the storage layer and the HTTP API.

Every error carries the HTTP status it maps to; the API installs a single
handler that renders them as ErrorResponse bodies.
"""

from typing import Optional


class BookClubError(Exception):
    """Base class for all expected application errors."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(BookClubError):
    """Malformed, missing or out-of-range input."""

    status_code = 400


class Unauthenticated(BookClubError):
    """Missing, invalid or expired credentials."""

    status_code = 401


class Forbidden(BookClubError):
    """Authenticated, but not allowed to touch the resource."""

    status_code = 403


class NotFound(BookClubError):
    status_code = 404


class Conflict(BookClubError):
    """Uniqueness violation. Retrying the request may succeed."""

    status_code = 409


class ServerError(BookClubError):
    status_code = 500

"""Error taxonomy shared by the stores, services and HTTP layer.

Every error carries the HTTP status it maps to and a caller-safe ``detail``
string. Handlers in :mod:`rolling_paper.main` translate them into JSON
responses; nothing below the API layer imports FastAPI.
"""

from __future__ import annotations

from fastapi import status


class BoardError(Exception):
    """Base class for all board errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(BoardError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid message format"


class DuplicateIdError(ValidationError):
    """A message with the same id already exists."""

    default_detail = "Message id already exists"


class NotFound(BoardError):
    """Unknown message id or empty resource."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Message not found"


class Unauthorized(BoardError):
    """Password did not match."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid password"


class Forbidden(BoardError):
    """Operation is not permitted on this message (no password set)."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "This message is not password protected"


class InternalError(BoardError):
    """Storage or transport failure. Details are logged, never returned."""


class StorageError(InternalError):
    """The message store could not be read or written."""

    default_detail = "Message storage is unavailable"

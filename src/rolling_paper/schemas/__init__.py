"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .message import (
    ContentResponse,
    GroupResponse,
    MessageCreate,
    MessageResponse,
    MessageUpdate,
    PasswordPayload,
    StatusResponse,
    VerifyResponse,
)

__all__ = [
    "ContentResponse",
    "GroupResponse",
    "MessageCreate",
    "MessageResponse",
    "MessageUpdate",
    "PasswordPayload",
    "StatusResponse",
    "VerifyResponse",
]

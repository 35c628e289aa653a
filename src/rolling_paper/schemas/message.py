# src/rolling_paper/schemas/message.py
"""Message-related Pydantic schemas.

Request bodies keep every field optional: presence and emptiness checks live
in the board service so that they surface as 400 errors with a single
message rather than as per-field validation reports.
"""

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    """Schema for posting a new message."""

    id: str | None = Field(None, description="Client-generated unique message id")
    author: str | None = Field(None, description="Display name of the author")
    group: str | None = Field(None, description="Target group board")
    content: str | None = Field(None, description="Message body")
    timestamp: int | None = Field(None, description="Creation time in epoch milliseconds")
    password: str | None = Field(None, description="Optional edit/delete password")
    is_private: bool = Field(False, alias="isPrivate", description="Hide content from the board")

    model_config = ConfigDict(populate_by_name=True)


class MessageUpdate(BaseModel):
    """Schema for editing a message owned by the caller."""

    password: str | None = None
    author: str | None = None
    content: str | None = None


class PasswordPayload(BaseModel):
    """Body carrying a single password (verify, content, delete, download)."""

    password: str | None = None


class MessageResponse(BaseModel):
    """A sanitized message: never includes the password hash."""

    id: str
    author: str
    group: str
    content: str
    timestamp: int
    likes: int
    is_private: bool = Field(False, alias="isPrivate")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class VerifyResponse(BaseModel):
    """Result of a password check."""

    valid: bool


class ContentResponse(BaseModel):
    """Content of a message revealed to its password holder."""

    content: str


class StatusResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class GroupResponse(BaseModel):
    """A board group."""

    id: str
    name: str
    description: str

    model_config = ConfigDict(from_attributes=True)

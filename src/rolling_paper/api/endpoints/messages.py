# src/rolling_paper/api/endpoints/messages.py
"""Message board endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from rolling_paper.api.dependencies import BoardDep
from rolling_paper.schemas.message import (
    ContentResponse,
    MessageCreate,
    MessageResponse,
    MessageUpdate,
    PasswordPayload,
    StatusResponse,
    VerifyResponse,
)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("", response_model=list[MessageResponse])
async def list_messages(board: BoardDep) -> list[dict[str, Any]]:
    """Return all messages, newest first, without password hashes."""
    return board.list_messages()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def create_message(payload: MessageCreate, board: BoardDep) -> dict[str, Any]:
    """Post a new message, optionally password protected or private."""
    return board.create(
        message_id=payload.id,
        author=payload.author,
        group=payload.group,
        content=payload.content,
        password=payload.password,
        is_private=payload.is_private,
        timestamp=payload.timestamp,
    )


@router.post("/{message_id}/like", response_model=MessageResponse)
async def like_message(message_id: str, board: BoardDep) -> dict[str, Any]:
    """Add one like to a message."""
    return board.like(message_id)


@router.post("/{message_id}/verify", response_model=VerifyResponse)
async def verify_message_password(
    message_id: str, payload: PasswordPayload, board: BoardDep
) -> VerifyResponse:
    """Check a password against a message without changing anything."""
    return VerifyResponse(valid=board.verify_password(message_id, payload.password))


@router.post("/{message_id}/content", response_model=ContentResponse)
async def get_message_content(
    message_id: str, payload: PasswordPayload, board: BoardDep
) -> ContentResponse:
    """Reveal the content of a private message to its password holder."""
    return ContentResponse(content=board.get_private_content(message_id, payload.password))


@router.put("/{message_id}", response_model=MessageResponse)
async def update_message(
    message_id: str, payload: MessageUpdate, board: BoardDep
) -> dict[str, Any]:
    """Edit the author and/or content of a password protected message."""
    return board.update(
        message_id,
        payload.password,
        author=payload.author,
        content=payload.content,
    )


@router.delete("/{message_id}", response_model=StatusResponse)
async def delete_message(
    message_id: str, payload: PasswordPayload, board: BoardDep
) -> StatusResponse:
    """Permanently remove a password protected message."""
    board.delete(message_id, payload.password)
    return StatusResponse(message="Message deleted successfully")

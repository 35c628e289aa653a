"""FastAPI dependency providers bound to the process-scoped services."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from rolling_paper.services.board import BoardService
from rolling_paper.services.broadcaster import Broadcaster


def get_board_service(request: Request) -> BoardService:
    """Return the board service created at startup."""
    return request.app.state.board


def get_broadcaster(request: Request) -> Broadcaster:
    """Return the live update broadcaster created at startup."""
    return request.app.state.broadcaster


BoardDep = Annotated[BoardService, Depends(get_board_service)]
BroadcasterDep = Annotated[Broadcaster, Depends(get_broadcaster)]

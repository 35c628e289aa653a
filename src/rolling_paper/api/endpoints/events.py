# src/rolling_paper/api/endpoints/events.py
"""Server-Sent Events stream of the full message list."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from rolling_paper.api.dependencies import BroadcasterDep

router = APIRouter(tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/events")
async def stream_events(request: Request, broadcaster: BroadcasterDep) -> StreamingResponse:
    """Open a live update channel.

    The first event carries the current message list; every later event
    carries the full list again after a change. Comment lines are sent as
    heartbeats while nothing changes.
    """
    channel = broadcaster.subscribe()
    return StreamingResponse(
        broadcaster.stream(channel, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )

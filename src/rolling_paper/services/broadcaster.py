"""Live update fan-out over Server-Sent Events.

Each connected client owns a :class:`Channel`. A broadcast re-reads the full
sanitized message list and hands the same payload to every open channel;
channels keep only the newest undelivered payload, so a slow client skips
intermediate states instead of replaying them.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from rolling_paper.services.change_feed import ChangeEvent

__all__ = ["Broadcaster", "Channel", "HEARTBEAT", "format_event"]

logger = logging.getLogger(__name__)

HEARTBEAT = ": heartbeat\n\n"

Snapshot = Callable[[], list[dict[str, Any]]]


def format_event(payload: str) -> str:
    """Frame ``payload`` as a single SSE ``data`` event."""
    return f"data: {payload}\n\n"


class Channel:
    """One subscriber's mailbox. ``None`` in the mailbox means closed."""

    def __init__(self) -> None:
        self._mailbox: asyncio.Queue[str | None] = asyncio.Queue(maxsize=1)
        self.closed = False

    def push(self, payload: str) -> None:
        if self.closed:
            return
        self._replace(payload)

    @property
    def pending(self) -> bool:
        """True while a payload is waiting to be received."""
        return not self._mailbox.empty()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._replace(None)

    def _replace(self, item: str | None) -> None:
        if self._mailbox.full():
            self._mailbox.get_nowait()
        self._mailbox.put_nowait(item)

    async def receive(self) -> str | None:
        """Wait for the next payload; ``None`` once the channel is closed."""
        return await self._mailbox.get()


class Broadcaster:
    """Owns the set of open channels for one process."""

    def __init__(self, snapshot: Snapshot, heartbeat_interval: float = 30.0) -> None:
        self._snapshot = snapshot
        self.heartbeat_interval = heartbeat_interval
        self._channels: set[Channel] = set()

    @property
    def channel_count(self) -> int:
        return len(self._channels)

    @property
    def channels(self) -> tuple[Channel, ...]:
        return tuple(self._channels)

    def _payload(self) -> str:
        return json.dumps(self._snapshot(), ensure_ascii=False)

    def subscribe(self) -> Channel:
        """Open a channel primed with the current message list."""
        channel = Channel()
        channel.push(self._payload())
        self._channels.add(channel)
        logger.info("SSE client connected. Total: %d", len(self._channels))
        return channel

    def unsubscribe(self, channel: Channel) -> None:
        """Close and forget ``channel``. Safe to call more than once."""
        channel.close()
        if channel in self._channels:
            self._channels.discard(channel)
            logger.info("SSE client disconnected. Total: %d", len(self._channels))

    def broadcast(self) -> None:
        """Push the current full message list to every open channel."""
        if not self._channels:
            return
        payload = self._payload()
        for channel in list(self._channels):
            channel.push(payload)

    def on_change(self, event: ChangeEvent) -> None:
        """Change-feed listener: any change triggers a full re-broadcast."""
        logger.debug("Broadcasting after %s", event)
        self.broadcast()

    def close_all(self) -> None:
        """Close every channel, ending their streams."""
        for channel in list(self._channels):
            self.unsubscribe(channel)

    async def stream(
        self,
        channel: Channel,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[str]:
        """Yield SSE frames for ``channel`` until it closes or the client leaves."""
        try:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    break
                try:
                    payload = await asyncio.wait_for(
                        channel.receive(), timeout=self.heartbeat_interval
                    )
                except TimeoutError:
                    yield HEARTBEAT
                    continue
                if payload is None:
                    break
                yield format_event(payload)
        finally:
            self.unsubscribe(channel)

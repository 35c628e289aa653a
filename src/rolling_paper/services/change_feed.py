"""Change notifications: one interface, two delivery mechanisms.

``InProcessChangeFeed`` hands events straight to its listeners when the board
service publishes them. ``PostgresChangeFeed`` ignores local publishes and
instead listens for the ``NOTIFY`` emitted by the ``messages`` table
triggers, so writes made by any process reach every broadcaster.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Protocol

import psycopg
from psycopg import sql

from rolling_paper.core.settings import Settings

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "ChangeListener",
    "InProcessChangeFeed",
    "PostgresChangeFeed",
    "build_change_feed",
]

logger = logging.getLogger(__name__)

Operation = Literal["INSERT", "UPDATE", "DELETE"]


@dataclass(frozen=True)
class ChangeEvent:
    """A row-level change to the message collection."""

    operation: Operation
    message_id: str | None = None

    @classmethod
    def from_payload(cls, payload: str) -> ChangeEvent:
        """Parse the JSON payload written by ``notify_message_change()``."""
        data = json.loads(payload)
        operation = str(data.get("operation", "UPDATE")).upper()
        if operation not in ("INSERT", "UPDATE", "DELETE"):
            raise ValueError(f"Unknown operation {operation!r}")
        message_id = data.get("id")
        return cls(operation=operation, message_id=str(message_id) if message_id is not None else None)  # type: ignore[arg-type]


ChangeListener = Callable[[ChangeEvent], None]


class ChangeFeed(Protocol):
    """On-change event interface shared by both implementations."""

    def subscribe(self, listener: ChangeListener) -> None: ...

    def publish(self, event: ChangeEvent) -> None: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class _ListenerRegistry:
    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        """Register ``listener``; it is called once per change event."""
        self._listeners.append(listener)

    def _dispatch(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # A failing listener must not undo a write that already happened.
                logger.exception("Change listener %r failed for %s", listener, event)


class InProcessChangeFeed(_ListenerRegistry):
    """Delivers published events synchronously to local listeners."""

    def publish(self, event: ChangeEvent) -> None:
        self._dispatch(event)

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None


class PostgresChangeFeed(_ListenerRegistry):
    """Consumes ``LISTEN <channel>`` notifications on a dedicated connection.

    The connection is re-established after ``retry_seconds`` whenever it
    fails; notifications sent while disconnected are lost, which the next
    full-state broadcast makes up for.
    """

    def __init__(self, dsn: str, channel: str, retry_seconds: float = 5.0) -> None:
        super().__init__()
        self.dsn = dsn
        self.channel = channel
        self.retry_seconds = retry_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    def publish(self, event: ChangeEvent) -> None:
        """Local writes are announced by the database triggers instead."""
        logger.debug("Waiting for database notification of %s", event)

    async def start(self) -> None:
        """Start the background listen loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background listen loop."""
        if self._task is None:
            return
        self._stopping.set()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self._listen()
            except (psycopg.Error, OSError) as exc:
                logger.warning("Change listener lost connection: %s", exc)
            if self._stopping.is_set():
                break
            await asyncio.sleep(self.retry_seconds)

    async def _listen(self) -> None:
        async with await psycopg.AsyncConnection.connect(self.dsn, autocommit=True) as conn:
            await conn.execute(sql.SQL("LISTEN {}").format(sql.Identifier(self.channel)))
            logger.info("Listening for message changes on channel %s", self.channel)
            async for notify in conn.notifies():
                self.handle_payload(notify.payload)

    def handle_payload(self, payload: str) -> None:
        """Decode one notification payload and dispatch it."""
        try:
            event = ChangeEvent.from_payload(payload)
        except (ValueError, TypeError, AttributeError):
            logger.warning("Ignoring malformed change notification: %r", payload)
            return
        self._dispatch(event)


def build_change_feed(settings: Settings) -> ChangeFeed:
    """Return the change feed selected by ``CHANGE_FEED``."""
    if settings.change_feed == "postgres":
        return PostgresChangeFeed(
            settings.listener_dsn,
            settings.notify_channel,
            retry_seconds=settings.listener_retry_seconds,
        )
    return InProcessChangeFeed()

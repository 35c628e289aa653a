"""Tests for the change notification feeds."""

import asyncio
import json

import pytest

from rolling_paper.core.settings import Settings
from rolling_paper.services.change_feed import (
    ChangeEvent,
    InProcessChangeFeed,
    PostgresChangeFeed,
    build_change_feed,
)


def test_in_process_feed_dispatches_to_every_listener(mocker) -> None:
    feed = InProcessChangeFeed()
    first, second = mocker.Mock(), mocker.Mock()
    feed.subscribe(first)
    feed.subscribe(second)
    event = ChangeEvent(operation="INSERT", message_id="m1")

    feed.publish(event)

    first.assert_called_once_with(event)
    second.assert_called_once_with(event)


def test_failing_listener_does_not_stop_others(mocker) -> None:
    feed = InProcessChangeFeed()
    feed.subscribe(mocker.Mock(side_effect=RuntimeError("boom")))
    survivor = mocker.Mock()
    feed.subscribe(survivor)

    feed.publish(ChangeEvent(operation="DELETE", message_id="m1"))

    survivor.assert_called_once()


def test_event_from_trigger_payload() -> None:
    payload = json.dumps({"operation": "DELETE", "id": "m9"})

    assert ChangeEvent.from_payload(payload) == ChangeEvent(operation="DELETE", message_id="m9")


def test_event_from_payload_rejects_unknown_operation() -> None:
    with pytest.raises(ValueError):
        ChangeEvent.from_payload('{"operation": "TRUNCATE"}')


def test_postgres_feed_ignores_local_publish(mocker) -> None:
    feed = PostgresChangeFeed("postgresql://localhost/db", "messages_changed")
    listener = mocker.Mock()
    feed.subscribe(listener)

    feed.publish(ChangeEvent(operation="INSERT", message_id="m1"))

    listener.assert_not_called()


def test_postgres_feed_dispatches_notifications(mocker) -> None:
    feed = PostgresChangeFeed("postgresql://localhost/db", "messages_changed")
    listener = mocker.Mock()
    feed.subscribe(listener)

    feed.handle_payload('{"operation": "UPDATE", "id": "m1"}')
    feed.handle_payload("not json")

    listener.assert_called_once_with(ChangeEvent(operation="UPDATE", message_id="m1"))


@pytest.mark.asyncio
async def test_postgres_feed_reconnects_after_failure(mocker) -> None:
    feed = PostgresChangeFeed("postgresql://localhost/db", "messages_changed", retry_seconds=0)
    attempts = 0

    async def _listen() -> None:
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise OSError("connection refused")
        await asyncio.Event().wait()

    mocker.patch.object(feed, "_listen", side_effect=_listen)

    await feed.start()
    for _ in range(50):
        if attempts >= 3:
            break
        await asyncio.sleep(0.01)
    await feed.stop()

    assert attempts == 3


def test_build_change_feed() -> None:
    assert isinstance(build_change_feed(Settings(CHANGE_FEED="inprocess")), InProcessChangeFeed)

    feed = build_change_feed(
        Settings(
            CHANGE_FEED="postgres",
            STORAGE_BACKEND="database",
            DATABASE_URL="postgresql+psycopg://board:pw@db:5432/board",
            NOTIFY_CHANNEL="board_changes",
        )
    )

    assert isinstance(feed, PostgresChangeFeed)
    assert feed.dsn == "postgresql://board:pw@db:5432/board"
    assert feed.channel == "board_changes"

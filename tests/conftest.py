# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Iterator
from itertools import count
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from rolling_paper.core.security import hash_password
from rolling_paper.core.settings import Settings
from rolling_paper.db.session import build_engine, build_session_factory, create_tables, drop_tables
from rolling_paper.main import create_app
from rolling_paper.repositories import LogMessageStore, MessageRecord, SqlMessageStore
from rolling_paper.services.board import BoardService
from rolling_paper.services.cache import MemoryCache
from rolling_paper.services.change_feed import InProcessChangeFeed

DOWNLOAD_PASSWORD = "test-download-pw"

_MESSAGE_COUNTER = count(1)


@pytest.fixture()
def message_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "messages"
    directory.mkdir()
    return directory


@pytest.fixture()
def log_store(message_dir: Path) -> LogMessageStore:
    store = LogMessageStore(message_dir)
    store.initialize()
    return store


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = build_engine("sqlite://")
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def sql_store(engine: Engine) -> SqlMessageStore:
    return SqlMessageStore(build_session_factory(engine))


@pytest.fixture(params=["log", "sql"])
def store(request: pytest.FixtureRequest) -> Any:
    """Run a test once against each backend."""
    if request.param == "log":
        return request.getfixturevalue("log_store")
    return request.getfixturevalue("sql_store")


@pytest.fixture()
def make_record() -> Callable[..., MessageRecord]:
    """Build a valid record; keyword arguments override the defaults."""

    def _make(**overrides: Any) -> MessageRecord:
        number = next(_MESSAGE_COUNTER)
        password = overrides.pop("password", None)
        values: dict[str, Any] = {
            "id": f"msg-{number}",
            "author": "Author",
            "group": "ESD",
            "content": f"note {number}",
            "timestamp": 1_000 + number,
        }
        values.update(overrides)
        if password is not None:
            values["password_hash"] = hash_password(password)
        return MessageRecord(**values)

    return _make


@pytest.fixture()
def change_feed() -> InProcessChangeFeed:
    return InProcessChangeFeed()


@pytest.fixture()
def board(log_store: LogMessageStore, change_feed: InProcessChangeFeed) -> BoardService:
    return BoardService(
        log_store,
        MemoryCache(),
        change_feed,
        download_password=DOWNLOAD_PASSWORD,
    )


@pytest.fixture()
def test_settings(message_dir: Path) -> Settings:
    return Settings(
        STORAGE_BACKEND="log",
        MESSAGE_DIR=str(message_dir),
        CACHE_BACKEND="memory",
        CHANGE_FEED="inprocess",
        DOWNLOAD_PASSWORD=DOWNLOAD_PASSWORD,
        HEARTBEAT_INTERVAL_SECONDS=0.05,
    )


@pytest.fixture()
def app(test_settings: Settings) -> FastAPI:
    return create_app(test_settings)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def post_message(client: TestClient) -> Callable[..., dict[str, Any]]:
    """Create a message through the API and return the response body."""

    def _post(**overrides: Any) -> dict[str, Any]:
        number = next(_MESSAGE_COUNTER)
        payload: dict[str, Any] = {
            "id": f"api-{number}",
            "author": "Author",
            "group": "ESD",
            "content": f"hello {number}",
            "timestamp": 10_000 + number,
        }
        payload.update(overrides)
        response = client.post("/api/messages", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _post

# src/rolling_paper/main.py
"""Main entry point for the Rolling Paper application."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rolling_paper.api import events_router, export_router, groups_router, messages_router
from rolling_paper.core.errors import BoardError, InternalError
from rolling_paper.core.settings import Settings, settings
from rolling_paper.db.session import build_engine, build_session_factory, create_tables
from rolling_paper.repositories import LogMessageStore, MessageStore, SqlMessageStore
from rolling_paper.services.board import BoardService
from rolling_paper.services.broadcaster import Broadcaster
from rolling_paper.services.cache import MessageCache, build_cache
from rolling_paper.services.change_feed import ChangeFeed, build_change_feed

logger = logging.getLogger(__name__)


@dataclass
class BoardRuntime:
    """Services owned by one server process, opened at startup and closed at shutdown."""

    store: MessageStore
    cache: MessageCache
    feed: ChangeFeed
    board: BoardService
    broadcaster: Broadcaster

    async def start(self) -> None:
        await self.feed.start()

    async def stop(self) -> None:
        self.broadcaster.close_all()
        await self.feed.stop()
        self.cache.close()
        self.store.close()


def build_store(app_settings: Settings) -> MessageStore:
    """Open the message store selected by ``STORAGE_BACKEND``."""
    if app_settings.storage_backend == "database":
        engine = build_engine(app_settings.database_url, echo=app_settings.sql_debug)
        create_tables(engine, notify_channel=app_settings.notify_channel)
        logger.info("Using database message store")
        return SqlMessageStore(build_session_factory(engine))

    store = LogMessageStore(app_settings.message_dir)
    store.initialize()
    return store


def build_runtime(app_settings: Settings) -> BoardRuntime:
    """Wire store, cache, change feed, board service and broadcaster together."""
    store = build_store(app_settings)
    cache = build_cache(app_settings)
    feed = build_change_feed(app_settings)
    board = BoardService(
        store,
        cache,
        feed,
        download_password=app_settings.download_password,
        max_content_length=app_settings.max_content_length,
    )
    broadcaster = Broadcaster(
        board.list_messages,
        heartbeat_interval=app_settings.heartbeat_interval_seconds,
    )
    feed.subscribe(broadcaster.on_change)
    return BoardRuntime(store=store, cache=cache, feed=feed, board=board, broadcaster=broadcaster)


async def board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
    """Translate board errors into JSON responses."""
    if isinstance(exc, InternalError):
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.detail, exc_info=exc
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Malformed request bodies are reported as 400, like missing fields."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request body"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log anything unexpected and hide its details from the caller."""
    logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": InternalError.default_detail},
    )


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application for ``app_settings``."""
    app_settings = app_settings or settings

    app = FastAPI(
        title="Rolling Paper API",
        description="Group message board with live updates",
        version=app_settings.app_version,
    )
    app.state.settings = app_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=app_settings.cors_allow_credentials,
        allow_methods=app_settings.cors_allow_methods,
        allow_headers=app_settings.cors_allow_headers,
    )

    app.add_exception_handler(BoardError, board_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(messages_router, prefix="/api")
    app.include_router(events_router, prefix="/api")
    app.include_router(export_router, prefix="/api")
    app.include_router(groups_router, prefix="/api")

    @app.on_event("startup")
    async def on_startup() -> None:
        runtime = build_runtime(app_settings)
        await runtime.start()
        app.state.runtime = runtime
        app.state.board = runtime.board
        app.state.broadcaster = runtime.broadcaster
        logger.info(
            "%s started (storage=%s, cache=%s, change feed=%s)",
            app_settings.app_name,
            app_settings.storage_backend,
            app_settings.cache_backend,
            app_settings.change_feed,
        )

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        runtime: BoardRuntime | None = getattr(app.state, "runtime", None)
        if runtime:
            await runtime.stop()
            app.state.runtime = None

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the API."""
        return {
            "name": app_settings.app_name,
            "version": app_settings.app_version,
            "description": "Group message board with live updates",
            "docs": "/docs",
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("rolling_paper.main:app", host="0.0.0.0", port=3001, reload=settings.debug)

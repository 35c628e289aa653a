# src/rolling_paper/api/__init__.py
"""HTTP API for the Rolling Paper board."""

from .endpoints import events_router, export_router, groups_router, messages_router

__all__ = ["events_router", "export_router", "groups_router", "messages_router"]

# src/rolling_paper/api/endpoints/__init__.py
"""API endpoint modules."""

from .events import router as events_router
from .export import router as export_router
from .groups import router as groups_router
from .messages import router as messages_router

__all__ = ["events_router", "export_router", "groups_router", "messages_router"]

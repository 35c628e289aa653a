# src/rolling_paper/models/__init__.py
"""SQLAlchemy models for the Rolling Paper board."""

from .message import Message

__all__ = ["Message"]

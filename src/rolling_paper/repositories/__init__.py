"""Message stores: the authoritative persistence backends."""

from .base import MessageRecord, MessageStore
from .log_store import LogMessageStore
from .sql_store import SqlMessageStore

__all__ = ["LogMessageStore", "MessageRecord", "MessageStore", "SqlMessageStore"]

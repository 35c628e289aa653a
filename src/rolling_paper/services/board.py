"""Board service: validation, authorization and mutation of messages.

All results leave this module sanitized: the password hash is never included
and private content is blanked unless the caller proved the password in the
same call.
"""

from __future__ import annotations

import logging
from dataclasses import replace as dataclass_replace
from typing import Any

from rolling_paper.core.errors import Forbidden, NotFound, Unauthorized, ValidationError
from rolling_paper.core.groups import is_known_group
from rolling_paper.core.security import check_secret, hash_password, verify_password
from rolling_paper.db.time import now_millis
from rolling_paper.repositories.base import MessageRecord, MessageStore
from rolling_paper.services.archive import build_archive
from rolling_paper.services.cache import MessageCache, NullCache
from rolling_paper.services.change_feed import ChangeEvent, ChangeFeed, InProcessChangeFeed

__all__ = ["BoardService", "sanitize"]

logger = logging.getLogger(__name__)


def sanitize(record: MessageRecord, *, reveal: bool = False) -> dict[str, Any]:
    """Return the client-facing form of ``record``."""
    return {
        "id": record.id,
        "author": record.author,
        "group": record.group,
        "content": record.content if reveal or not record.is_private else "",
        "timestamp": record.timestamp,
        "likes": record.likes,
        "isPrivate": record.is_private,
    }


def _require_password(password: str | None) -> str:
    if not password:
        raise ValidationError("Password is required")
    return password


class BoardService:
    """Process-scoped owner of the store, the cache and the change feed."""

    def __init__(
        self,
        store: MessageStore,
        cache: MessageCache | None = None,
        feed: ChangeFeed | None = None,
        *,
        download_password: str,
        max_content_length: int = 500,
    ) -> None:
        self.store = store
        self.cache = cache or NullCache()
        self.feed = feed or InProcessChangeFeed()
        self.download_password = download_password
        self.max_content_length = max_content_length
        # Writes made by other processes reach us only through the feed.
        self.feed.subscribe(self._on_change)

    # -- reads ---------------------------------------------------------------

    def list_records(self) -> list[MessageRecord]:
        records = self.cache.get_all()
        if records is None:
            records = self.store.list_all()
            self.cache.put_all(records)
        return records

    def get_record(self, message_id: str) -> MessageRecord:
        record = self.cache.get_message(message_id)
        if record is None:
            record = self.store.get_by_id(message_id)
            self.cache.put_message(record)
        return record

    def list_messages(self) -> list[dict[str, Any]]:
        """Return every message, newest first, sanitized."""
        return [sanitize(record) for record in self.list_records()]

    # -- operations ----------------------------------------------------------

    def create(
        self,
        *,
        message_id: str | None,
        author: str | None,
        group: str | None,
        content: str | None,
        password: str | None = None,
        is_private: bool = False,
        timestamp: int | None = None,
    ) -> dict[str, Any]:
        """Store a new message; likes always start at zero."""
        if not message_id or not author or not group or not content:
            raise ValidationError("Invalid message format")
        if not is_known_group(group):
            raise ValidationError(f"Unknown group: {group}")
        self._check_length(content)
        if is_private and not password:
            raise ValidationError("Private messages require a password")

        record = MessageRecord(
            id=message_id,
            author=author,
            group=group,
            content=content,
            timestamp=timestamp if timestamp is not None else now_millis(),
            likes=0,
            password_hash=hash_password(password) if password else None,
            is_private=is_private,
        )
        self.store.append(record)
        self._changed("INSERT", record.id)
        logger.info("Message %s posted to %s", record.id, record.group)
        return sanitize(record)

    def like(self, message_id: str) -> dict[str, Any]:
        record = self.store.increment_likes(message_id)
        self._changed("UPDATE", message_id)
        return sanitize(record)

    def verify_password(self, message_id: str, password: str | None) -> bool:
        password = _require_password(password)
        record = self.get_record(message_id)
        if not record.password_hash:
            raise Forbidden("This message is not password protected")
        return verify_password(password, record.password_hash)

    def get_private_content(self, message_id: str, password: str | None) -> str:
        password = _require_password(password)
        record = self.get_record(message_id)
        if not record.password_hash:
            raise Forbidden("This message is not password protected")
        if record.is_private and not verify_password(password, record.password_hash):
            raise Unauthorized()
        return record.content

    def update(
        self,
        message_id: str,
        password: str | None,
        *,
        author: str | None = None,
        content: str | None = None,
    ) -> dict[str, Any]:
        """Overwrite author and/or content; empty values are left unchanged."""
        password = _require_password(password)
        if content:
            self._check_length(content)

        def _apply(record: MessageRecord) -> MessageRecord:
            self._authorize(record, password, action="edited")
            return dataclass_replace(
                record,
                author=author or record.author,
                content=content or record.content,
            )

        record = self.store.replace(message_id, _apply)
        self._changed("UPDATE", message_id)
        return sanitize(record, reveal=True)

    def delete(self, message_id: str, password: str | None) -> None:
        password = _require_password(password)
        # Authorize against the store, not the cache.
        record = self.store.get_by_id(message_id)
        self._authorize(record, password, action="deleted")
        self.store.remove(message_id)
        self._changed("DELETE", message_id)
        logger.info("Message %s deleted", message_id)

    def export_archive(self, password: str | None) -> bytes:
        """Return a zip of all group transcripts, rebuilt from the store."""
        password = _require_password(password)
        if not check_secret(password, self.download_password):
            raise Unauthorized()
        transcripts = self.store.regenerate_transcripts()
        if not transcripts:
            raise NotFound("No messages to export")
        return build_archive(transcripts)

    # -- helpers -------------------------------------------------------------

    def _check_length(self, content: str) -> None:
        if len(content) > self.max_content_length:
            raise ValidationError(
                f"Content must be at most {self.max_content_length} characters"
            )

    @staticmethod
    def _authorize(record: MessageRecord, password: str, *, action: str) -> None:
        if not record.password_hash:
            raise Forbidden(f"This message cannot be {action}")
        if not verify_password(password, record.password_hash):
            raise Unauthorized()

    def _changed(self, operation: str, message_id: str) -> None:
        # The write is already committed; listeners hear about it even if the
        # cache cannot be cleared.
        try:
            self.cache.invalidate(message_id)
        finally:
            self.feed.publish(ChangeEvent(operation=operation, message_id=message_id))  # type: ignore[arg-type]

    def _on_change(self, event: ChangeEvent) -> None:
        self.cache.invalidate(event.message_id)

"""Relational message store built on the ``messages`` table."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace as dataclass_replace

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from rolling_paper.core.errors import DuplicateIdError, NotFound, StorageError
from rolling_paper.models import Message
from rolling_paper.repositories.base import (
    MessageRecord,
    Mutator,
    check_immutable,
    validate_record,
)
from rolling_paper.services.transcripts import render_transcripts

__all__ = ["SqlMessageStore"]

logger = logging.getLogger(__name__)


def _to_record(row: Message) -> MessageRecord:
    return MessageRecord(
        id=row.id,
        author=row.author,
        group=row.group,
        content=row.content,
        timestamp=int(row.timestamp),
        likes=int(row.likes or 0),
        password_hash=row.password_hash,
        is_private=bool(row.is_private),
    )


def _to_row(record: MessageRecord) -> Message:
    return Message(
        id=record.id,
        author=record.author,
        group=record.group,
        content=record.content,
        timestamp=record.timestamp,
        likes=record.likes,
        password_hash=record.password_hash,
        is_private=record.is_private,
    )


class SqlMessageStore:
    """Message store delegating concurrency to the database.

    Likes are a single ``UPDATE ... SET likes = likes + 1``; edits lock the
    row for the duration of the read-modify-write transaction.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._session_factory() as session:
            try:
                yield session
            except IntegrityError:
                session.rollback()
                raise
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Database operation failed", exc_info=True)
                raise StorageError() from exc

    def append(self, record: MessageRecord) -> MessageRecord:
        validate_record(record)
        try:
            with self._session() as session:
                if session.get(Message, record.id) is not None:
                    raise DuplicateIdError()
                session.add(_to_row(record))
                session.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent insert of the same id.
            raise DuplicateIdError() from exc
        return record

    def list_all(self) -> list[MessageRecord]:
        with self._session() as session:
            rows = session.scalars(
                select(Message).order_by(Message.timestamp.desc(), Message.created_at.desc())
            ).all()
            return [_to_record(row) for row in rows]

    def get_by_id(self, message_id: str) -> MessageRecord:
        with self._session() as session:
            row = session.get(Message, message_id)
            if row is None:
                raise NotFound()
            return _to_record(row)

    def replace(self, message_id: str, mutator: Mutator) -> MessageRecord:
        with self._session() as session:
            row = session.scalars(
                select(Message).where(Message.id == message_id).with_for_update()
            ).first()
            if row is None:
                raise NotFound()
            current = _to_record(row)
            updated = mutator(dataclass_replace(current))
            check_immutable(current, updated)
            validate_record(updated)
            row.author = updated.author
            row.content = updated.content
            row.likes = updated.likes
            row.password_hash = updated.password_hash
            row.is_private = updated.is_private
            session.commit()
        return updated

    def increment_likes(self, message_id: str) -> MessageRecord:
        with self._session() as session:
            result = session.execute(
                update(Message)
                .where(Message.id == message_id)
                .values(likes=Message.likes + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.rollback()
                raise NotFound()
            session.commit()
            row = session.get(Message, message_id, populate_existing=True)
            if row is None:
                raise NotFound()
            return _to_record(row)

    def remove(self, message_id: str) -> None:
        with self._session() as session:
            result = session.execute(delete(Message).where(Message.id == message_id))
            if result.rowcount == 0:
                session.rollback()
                raise NotFound()
            session.commit()

    def regenerate_transcripts(self) -> dict[str, str]:
        """Project transcripts from the table; nothing is written to disk."""
        return render_transcripts(reversed(self.list_all()))

    def import_records(self, records: Iterable[MessageRecord]) -> int:
        """Insert records whose id is not yet present; return how many were added."""
        inserted = 0
        with self._session() as session:
            existing = set(session.scalars(select(Message.id)).all())
            for record in records:
                if record.id in existing:
                    continue
                validate_record(record)
                session.add(_to_row(record))
                existing.add(record.id)
                inserted += 1
            session.commit()
        logger.info("Imported %d messages into the database", inserted)
        return inserted

    def close(self) -> None:
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()

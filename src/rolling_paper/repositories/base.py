"""Store-independent message record and the store contract."""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from rolling_paper.core.errors import ValidationError

__all__ = [
    "MessageRecord",
    "MessageStore",
    "Mutator",
    "check_immutable",
    "newest_first",
    "validate_record",
]


@dataclass
class MessageRecord:
    """One message as persisted, including its password hash.

    ``to_dict``/``from_dict`` use the camelCase keys of the JSONL log so that
    existing log files stay readable.
    """

    id: str
    author: str
    group: str
    content: str
    timestamp: int
    likes: int = 0
    password_hash: str | None = None
    is_private: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "author": self.author,
            "group": self.group,
            "content": self.content,
            "timestamp": self.timestamp,
            "likes": self.likes,
        }
        if self.password_hash:
            data["passwordHash"] = self.password_hash
        if self.is_private:
            data["isPrivate"] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MessageRecord:
        return cls(
            id=str(data["id"]),
            author=str(data["author"]),
            group=str(data["group"]),
            content=str(data["content"]),
            timestamp=int(data.get("timestamp") or 0),
            likes=int(data.get("likes") or 0),
            password_hash=data.get("passwordHash") or None,
            is_private=bool(data.get("isPrivate", False)),
        )


Mutator = Callable[[MessageRecord], MessageRecord]


def validate_record(record: MessageRecord) -> None:
    """Reject records missing one of the required text fields."""
    for field_name in ("id", "author", "group", "content"):
        value = getattr(record, field_name)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Invalid message format: '{field_name}' is required")
    if record.likes < 0:
        raise ValidationError("Invalid message format: 'likes' must not be negative")
    if record.is_private and not record.password_hash:
        raise ValidationError("Private messages require a password")


def check_immutable(before: MessageRecord, after: MessageRecord) -> None:
    """Ensure a mutator left the identity fields untouched."""
    for field_name in ("id", "group", "timestamp"):
        if getattr(before, field_name) != getattr(after, field_name):
            raise ValidationError(f"'{field_name}' cannot be changed")
    if after.likes < before.likes:
        raise ValidationError("'likes' can only be incremented")


def newest_first(records: Iterable[MessageRecord]) -> list[MessageRecord]:
    """Sort by timestamp descending; later insertions win ties."""
    return sorted(reversed(list(records)), key=lambda record: record.timestamp, reverse=True)


class MessageStore(Protocol):
    """Contract shared by the log and database backends."""

    def append(self, record: MessageRecord) -> MessageRecord: ...

    def list_all(self) -> list[MessageRecord]: ...

    def get_by_id(self, message_id: str) -> MessageRecord: ...

    def replace(self, message_id: str, mutator: Mutator) -> MessageRecord: ...

    def increment_likes(self, message_id: str) -> MessageRecord: ...

    def remove(self, message_id: str) -> None: ...

    def regenerate_transcripts(self) -> dict[str, str]: ...

    def close(self) -> None: ...

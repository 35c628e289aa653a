"""Human-readable per-group transcripts.

A transcript is a pure projection of the store: one ``[author]: content``
line per message, oldest first. It is never read back as input.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from rolling_paper.repositories.base import MessageRecord

TRANSCRIPT_SUFFIX = ".txt"


def format_line(record: MessageRecord) -> str:
    """Return the transcript line for one message."""
    return f"[{record.author}]: {record.content}"


def render_transcripts(records: Iterable[MessageRecord]) -> dict[str, str]:
    """Return ``{group: transcript}`` for every group that has messages.

    Records may arrive in any order; each transcript is sorted by timestamp
    ascending, keeping the input order for equal timestamps.
    """
    grouped: dict[str, list[MessageRecord]] = {}
    for record in records:
        grouped.setdefault(record.group, []).append(record)

    transcripts: dict[str, str] = {}
    for group, group_records in grouped.items():
        ordered = sorted(group_records, key=lambda record: record.timestamp)
        transcripts[group] = "\n".join(format_line(record) for record in ordered) + "\n"
    return transcripts


def transcript_filename(group: str) -> str:
    """Return the file or archive entry name for a group's transcript."""
    return f"{group}{TRANSCRIPT_SUFFIX}"

"""Append-only JSONL log backend with derived per-group transcript files.

Layout inside ``directory``::

    all.jsonl      one JSON object per line, oldest first (authoritative)
    <group>.txt    transcript for each group with messages (derived)
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import replace as dataclass_replace
from pathlib import Path

from rolling_paper.core.errors import DuplicateIdError, NotFound, StorageError, ValidationError
from rolling_paper.repositories.base import (
    MessageRecord,
    Mutator,
    check_immutable,
    newest_first,
    validate_record,
)
from rolling_paper.services.transcripts import render_transcripts, transcript_filename

__all__ = ["LogMessageStore"]

LOG_FILENAME = "all.jsonl"

logger = logging.getLogger(__name__)


class LogMessageStore:
    """Message store backed by a line-delimited JSON log.

    Every read-modify-write runs under one process-wide lock and rewrites the
    log through a temporary file, so a failed write leaves the previous log in
    place. Multiple processes must not share a directory.
    """

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)
        self.log_path = self.directory / LOG_FILENAME
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Create the directory if needed and rebuild all transcripts."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError() from exc
        transcripts = self.regenerate_transcripts()
        logger.info(
            "Message log ready at %s (%d group transcripts rebuilt)",
            self.log_path,
            len(transcripts),
        )

    # -- reads ---------------------------------------------------------------

    def list_all(self) -> list[MessageRecord]:
        with self._lock:
            return newest_first(self._read())

    def get_by_id(self, message_id: str) -> MessageRecord:
        with self._lock:
            for record in self._read():
                if record.id == message_id:
                    return record
        raise NotFound()

    # -- writes --------------------------------------------------------------

    def append(self, record: MessageRecord) -> MessageRecord:
        validate_record(record)
        self._transcript_path(record.group)
        with self._lock:
            records = self._read()
            if any(existing.id == record.id for existing in records):
                raise DuplicateIdError()
            previous = self._read_log_bytes()
            line = json.dumps(record.to_dict(), ensure_ascii=False) + "\n"
            try:
                with self.log_path.open("a", encoding="utf-8") as log_file:
                    log_file.write(line)
            except OSError as exc:
                logger.error("Failed to append to %s", self.log_path, exc_info=True)
                self._atomic_write(self.log_path, previous)
                raise StorageError() from exc
            records.append(record)
            group_records = [existing for existing in records if existing.group == record.group]
            try:
                self._write_transcripts(render_transcripts(group_records), prune=False)
            except StorageError:
                self._atomic_write(self.log_path, previous)
                raise
        return record

    def replace(self, message_id: str, mutator: Mutator) -> MessageRecord:
        with self._lock:
            records = self._read()
            index = self._index_of(records, message_id)
            current = records[index]
            updated = mutator(dataclass_replace(current))
            check_immutable(current, updated)
            validate_record(updated)
            records[index] = updated
            self._commit(records, transcripts=True)
        return updated

    def increment_likes(self, message_id: str) -> MessageRecord:
        with self._lock:
            records = self._read()
            index = self._index_of(records, message_id)
            updated = dataclass_replace(records[index], likes=records[index].likes + 1)
            records[index] = updated
            # Transcripts do not show likes.
            self._commit(records, transcripts=False)
        return updated

    def remove(self, message_id: str) -> None:
        with self._lock:
            records = self._read()
            index = self._index_of(records, message_id)
            del records[index]
            self._commit(records, transcripts=True)

    def regenerate_transcripts(self) -> dict[str, str]:
        with self._lock:
            transcripts = render_transcripts(self._read())
            self._write_transcripts(transcripts, prune=True)
        return transcripts

    def close(self) -> None:
        """Nothing to release; files are opened per operation."""

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _index_of(records: list[MessageRecord], message_id: str) -> int:
        for index, record in enumerate(records):
            if record.id == message_id:
                return index
        raise NotFound()

    def _read(self) -> list[MessageRecord]:
        """Return all records in log order (oldest first)."""
        if not self.log_path.exists():
            return []
        try:
            text = self.log_path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to read %s", self.log_path, exc_info=True)
            raise StorageError() from exc

        records: list[MessageRecord] = []
        for line_number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append(MessageRecord.from_dict(json.loads(line)))
            except (ValueError, KeyError, TypeError) as exc:
                logger.error("Corrupt log entry at %s:%d", self.log_path, line_number)
                raise StorageError() from exc
        return records

    def _commit(self, records: list[MessageRecord], *, transcripts: bool) -> None:
        """Rewrite the log, then the transcripts; restore the log if the latter fails."""
        previous = self._read_log_bytes()
        content = "".join(json.dumps(record.to_dict(), ensure_ascii=False) + "\n" for record in records)
        self._atomic_write(self.log_path, content.encode("utf-8"))
        if not transcripts:
            return
        try:
            self._write_transcripts(render_transcripts(records), prune=True)
        except StorageError:
            self._atomic_write(self.log_path, previous)
            raise

    def _read_log_bytes(self) -> bytes:
        try:
            return self.log_path.read_bytes() if self.log_path.exists() else b""
        except OSError as exc:
            raise StorageError() from exc

    def _write_transcripts(self, transcripts: dict[str, str], *, prune: bool) -> None:
        for group, text in transcripts.items():
            self._atomic_write(self._transcript_path(group), text.encode("utf-8"))
        if not prune:
            return
        keep = {transcript_filename(group) for group in transcripts}
        try:
            for stale in self.directory.glob("*.txt"):
                if stale.name not in keep and not stale.name.startswith("."):
                    stale.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError() from exc

    def _transcript_path(self, group: str) -> Path:
        filename = transcript_filename(group)
        if Path(filename).name != filename:
            raise ValidationError("Invalid group name")
        return self.directory / filename

    def _atomic_write(self, path: Path, data: bytes) -> None:
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=path.suffix)
            try:
                with os.fdopen(fd, "wb") as tmp_file:
                    tmp_file.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.error("Failed to write %s", path, exc_info=True)
            raise StorageError() from exc

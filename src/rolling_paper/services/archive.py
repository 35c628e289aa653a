"""Zip export of every group transcript."""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Mapping

from rolling_paper.core.errors import InternalError
from rolling_paper.services.transcripts import transcript_filename

__all__ = ["ARCHIVE_FILENAME", "build_archive"]

ARCHIVE_FILENAME = "messages.zip"

logger = logging.getLogger(__name__)


def build_archive(transcripts: Mapping[str, str]) -> bytes:
    """Return a deflated zip holding one ``<group>.txt`` entry per transcript.

    The archive is assembled in memory; if any entry fails nothing is
    returned, so callers never send a truncated file.
    """
    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(
            buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
        ) as archive:
            for group, text in transcripts.items():
                archive.writestr(transcript_filename(group), text.encode("utf-8"))
    except (OSError, ValueError, zipfile.LargeZipFile) as exc:
        logger.error("Failed to build transcript archive", exc_info=True)
        raise InternalError("Failed to create ZIP file") from exc
    return buffer.getvalue()

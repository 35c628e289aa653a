# src/rolling_paper/api/endpoints/export.py
"""Transcript download."""

from __future__ import annotations

from fastapi import APIRouter, Response

from rolling_paper.api.dependencies import BoardDep
from rolling_paper.schemas.message import PasswordPayload
from rolling_paper.services.archive import ARCHIVE_FILENAME

router = APIRouter(tags=["export"])


@router.post("/download-txt", response_class=Response)
async def download_transcripts(payload: PasswordPayload, board: BoardDep) -> Response:
    """Return a zip with one transcript file per group."""
    archive = board.export_archive(payload.password)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f"attachment; filename={ARCHIVE_FILENAME}"},
    )

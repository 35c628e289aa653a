# src/rolling_paper/api/endpoints/groups.py
"""Group listing."""

from __future__ import annotations

from fastapi import APIRouter

from rolling_paper.core.groups import GROUPS
from rolling_paper.schemas.message import GroupResponse

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("", response_model=list[GroupResponse])
async def list_groups() -> list[GroupResponse]:
    """Return the boards messages can be posted to."""
    return [GroupResponse.model_validate(group) for group in GROUPS]

"""The fixed set of boards a message can be posted to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class Group:
    """A message board group."""

    id: str
    name: str
    description: str


GROUPS: Final[tuple[Group, ...]] = tuple(
    Group(id=group_id, name=group_id, description=f"{group_id} 그룹")
    for group_id in (
        "ESD",
        "FDM",
        "BDM",
        "DV1",
        "DV2",
        "DV3",
        "DV4",
        "ET",
        "AT",
        "PV",
        "AI Agent",
        "GTE",
        "TDE",
        "공정",
        "개발지원과",
        "Staff",
    )
)

GROUP_IDS: Final[frozenset[str]] = frozenset(group.id for group in GROUPS)


def is_known_group(group_id: str) -> bool:
    """Return True if ``group_id`` names one of the configured boards."""
    return group_id in GROUP_IDS

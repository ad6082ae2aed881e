"""
Keeper Selection

Every duplicate group has exactly one survivor. By default it is the
oldest record; the user can pick another member before cleanup.
"""

from typing import Sequence

from task_planner.dedup.errors import InvalidKeeperError, UnknownGroupError
from task_planner.models.duplicates import DuplicateGroup
from task_planner.models.records import PlannerRecord


def default_keep_id(members: Sequence[PlannerRecord]) -> str:
    """
    ID of the member with the earliest created_at.

    min() returns the first of several equal minimums, so ties go to
    whichever record came first in `members`.
    """
    if not members:
        raise ValueError("Cannot choose a keeper from an empty group")
    return min(members, key=lambda r: r.created_at).id


def set_keep(
    groups: Sequence[DuplicateGroup],
    group_key: str,
    record_id: str,
) -> list[DuplicateGroup]:
    """
    Return a new group list with one group's keeper replaced.

    Groups other than the target are returned as the very same
    objects, so callers can detect what changed with `is`.

    Raises:
        UnknownGroupError: No group has `group_key`
        InvalidKeeperError: `record_id` is not a member of that group
    """
    updated = []
    found = False
    for group in groups:
        if group.key != group_key:
            updated.append(group)
            continue
        found = True
        if not group.has_member(record_id):
            raise InvalidKeeperError(
                f"Record {record_id} is not a member of group {group.label!r}"
            )
        updated.append(group.model_copy(update={"keep_id": record_id}))

    if not found:
        raise UnknownGroupError(f"No duplicate group with key {group_key!r}")
    return updated

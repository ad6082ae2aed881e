"""
Duplicate Grouping

Partitions one kind's records by fingerprint and keeps only the
fingerprints shared by more than one record.

Blank identity fields are NOT special-cased: two untitled tasks with
no description share the fingerprint of two empty strings and are
grouped like any other pair.
"""

from typing import Iterable

from task_planner.dedup.keeper import default_keep_id
from task_planner.dedup.normalizer import fingerprint, normalize
from task_planner.models.duplicates import DuplicateGroup, NameCollision
from task_planner.models.records import EntityKind, PlannerRecord, get_kind_spec


def bucket_by_fingerprint(
    records: Iterable[PlannerRecord],
    kind: EntityKind,
) -> dict[str, list[PlannerRecord]]:
    """Fingerprint → records sharing it, both in input order."""
    buckets: dict[str, list[PlannerRecord]] = {}
    for record in records:
        buckets.setdefault(fingerprint(record, kind), []).append(record)
    return buckets


def group_duplicates(
    records: Iterable[PlannerRecord],
    kind: EntityKind,
) -> list[DuplicateGroup]:
    """
    Build duplicate groups for one kind.

    Groups come out in the order their fingerprint first appears in
    `records`. Members are sorted oldest first; the sort is stable, so
    records created at the same instant keep their input order. Each
    group starts with the oldest member as its keeper.
    """
    kind = EntityKind(kind)
    groups = []
    for key, members in bucket_by_fingerprint(records, kind).items():
        if len(members) < 2:
            continue
        ordered = sorted(members, key=lambda r: r.created_at)
        groups.append(DuplicateGroup(
            kind=kind,
            key=key,
            members=ordered,
            keep_id=default_keep_id(ordered),
        ))
    return groups


def find_name_collisions(
    records: Iterable[PlannerRecord],
    kind: EntityKind,
) -> list[NameCollision]:
    """
    Records sharing a normalized name but not a full fingerprint.

    Typical case: two projects called "Launch" with different
    descriptions. They are not duplicates under exact matching, but
    the user may want to know about them. Blank names are ignored.
    """
    kind = EntityKind(kind)
    name_field = get_kind_spec(kind).display_field

    by_name: dict[str, list[PlannerRecord]] = {}
    for record in records:
        name_key = normalize(getattr(record, name_field, None))
        if name_key:
            by_name.setdefault(name_key, []).append(record)

    collisions = []
    for name_key, members in by_name.items():
        distinct = {fingerprint(record, kind) for record in members}
        if len(distinct) < 2:
            continue
        collisions.append(NameCollision(
            kind=kind,
            name_key=name_key,
            record_ids=[record.id for record in members],
            fingerprint_count=len(distinct),
        ))
    return collisions

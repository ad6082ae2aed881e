"""
Duplicate Analysis

Turns one snapshot of every collection into an AnalysisResult.
Pure: reading the store is the session's job, so this can be run
(and tested) on plain lists.
"""

from typing import Mapping, Sequence

from task_planner.dedup.grouper import find_name_collisions, group_duplicates
from task_planner.dedup.recurring import build_recurring_report
from task_planner.models.duplicates import AnalysisResult
from task_planner.models.records import EntityKind, PlannerRecord, get_kind_spec


def analyze_records(
    snapshots: Mapping[EntityKind, Sequence[PlannerRecord]],
) -> AnalysisResult:
    """
    Group every kind's records and collect the side reports.

    Kinds missing from `snapshots` are treated as empty. Each kind is
    grouped on its own, so a task and a project with the same text
    never end up in one group.
    """
    groups = {}
    record_counts = {}
    name_collisions = {}

    for kind in EntityKind:
        records = list(snapshots.get(kind, []))
        record_counts[kind] = len(records)
        groups[kind] = group_duplicates(records, kind)
        if get_kind_spec(kind).report_name_collisions:
            name_collisions[kind] = find_name_collisions(records, kind)

    return AnalysisResult(
        groups=groups,
        record_counts=record_counts,
        name_collisions=name_collisions,
        recurring_report=build_recurring_report(snapshots.get(EntityKind.TASK, [])),
    )

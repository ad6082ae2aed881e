"""
Recurring Task Report

Recurring templates generate one task per occurrence. When generation
runs twice for the same occurrence, the copies usually differ only in
id and created_at, which the title/description fingerprint already
catches. This report looks at the same data from the template's side:
how many tasks each template produced, and which due dates got more
than one copy.

It is informational. Nothing here feeds the reconciler.
"""

from collections import Counter
from typing import Iterable

from task_planner.models.duplicates import (
    NO_DUE_DATE,
    RecurringTaskReport,
    RecurringTemplateSummary,
)
from task_planner.models.records import PlannerRecord


def build_recurring_report(tasks: Iterable[PlannerRecord]) -> RecurringTaskReport:
    """Summarize regular vs recurring-generated tasks."""
    tasks = list(tasks)
    by_template: dict[str, list[PlannerRecord]] = {}
    regular_count = 0

    for task in tasks:
        template_id = getattr(task, "recurring_task_id", None)
        if not template_id:
            regular_count += 1
            continue
        by_template.setdefault(template_id, []).append(task)

    templates = []
    for template_id, instances in by_template.items():
        copies = Counter(
            task.due_date.isoformat() if task.due_date else NO_DUE_DATE
            for task in instances
        )
        templates.append(RecurringTemplateSummary(
            recurring_task_id=template_id,
            instance_count=len(instances),
            sample_title=instances[0].title or "",
            duplicate_due_dates={
                due: count for due, count in copies.items() if count > 1
            },
        ))

    return RecurringTaskReport(
        total_tasks=len(tasks),
        regular_count=regular_count,
        recurring_generated_count=len(tasks) - regular_count,
        templates=templates,
    )

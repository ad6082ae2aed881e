"""
Duplicate Reconciliation

Deletes every non-keeper member of every confirmed group.

GUARANTEES:
- The keeper of a group is never passed to the delete function
- Deletes run one at a time, group by group, in group order
- A failed delete is recorded and the run moves on; it never aborts
  the group or the run
- Nothing is cached or patched locally; re-read the store to see
  the result

If the awaiting task is cancelled, the delete in flight settles on
its own and no further deletes are issued. That can leave a group
half-cleaned, which a later analysis will simply pick up again.
"""

import asyncio
from typing import Awaitable, Callable, Iterable, Optional
from uuid import UUID

import structlog

from task_planner.audit import AuditLogger
from task_planner.config import get_settings
from task_planner.dedup.errors import KindMismatchError, MissingKeeperError
from task_planner.models.duplicates import (
    DeletionFailure,
    DuplicateGroup,
    ReconciliationSummary,
)
from task_planner.models.records import EntityKind, utcnow


DeleteFn = Callable[[str], Awaitable[None]]


class Reconciler:
    """
    Executes the deletes for one entity kind.

    Groups are read, never modified: the keeper of each group is
    whatever `keep_id` says at the moment reconcile() is called.
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)
        self._max_logged_members = get_settings().app.max_logged_members

    @staticmethod
    def validate_groups(groups: Iterable[DuplicateGroup], kind: EntityKind) -> None:
        """
        Check every group before any delete is issued.

        Raises:
            KindMismatchError: A group belongs to another kind
            MissingKeeperError: A group has no keeper, or a keeper that
                                is not one of its members
        """
        for group in groups:
            if group.kind != kind:
                raise KindMismatchError(
                    f"Group {group.label!r} holds {group.kind.value} records, "
                    f"not {kind.value} records"
                )
            if group.keep_id is None:
                raise MissingKeeperError(
                    f"Group {group.label!r} has no record selected to keep"
                )
            if not group.has_member(group.keep_id):
                raise MissingKeeperError(
                    f"Keeper {group.keep_id} is not a member of group {group.label!r}"
                )

    @staticmethod
    def plan_deletions(group: DuplicateGroup) -> list[str]:
        """IDs to delete from a group: every member but the keeper."""
        return [member.id for member in group.members if member.id != group.keep_id]

    async def reconcile(
        self,
        groups: Iterable[DuplicateGroup],
        kind: EntityKind,
        delete_fn: DeleteFn,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationSummary:
        """
        Delete the non-keepers of every group.

        Args:
            groups: Confirmed duplicate groups, all of `kind`
            kind: Entity kind being cleaned
            delete_fn: Async callable deleting one record by ID; must
                       raise on any failure
            correlation_id: Ties the audit events of this run together

        Returns:
            Summary with the confirmed delete count and every failure.
            deleted_count == 0 with a non-empty plan is a total failure,
            not "nothing to do".

        Raises:
            PreconditionError: Before any delete, if a group is invalid
        """
        kind = EntityKind(kind)
        groups = list(groups)
        self.validate_groups(groups, kind)

        summary = ReconciliationSummary(
            kind=kind,
            correlation_id=correlation_id,
            group_count=len(groups),
        )

        for group in groups:
            await self._reconcile_group(group, delete_fn, summary)

        summary.finished_at = utcnow()
        self._logger.info(
            "reconciliation_finished",
            kind=kind.value,
            outcome=summary.outcome.value,
            groups=summary.group_count,
            attempted=summary.attempted_count,
            deleted=summary.deleted_count,
            failed=len(summary.failures),
            correlation_id=str(correlation_id) if correlation_id else None,
        )
        return summary

    async def _reconcile_group(
        self,
        group: DuplicateGroup,
        delete_fn: DeleteFn,
        summary: ReconciliationSummary,
    ) -> None:
        targets = self.plan_deletions(group)
        log = self._logger.bind(
            kind=group.kind.value,
            group=group.label,
            keep_id=group.keep_id,
            correlation_id=str(summary.correlation_id) if summary.correlation_id else None,
        )
        log.info(
            "group_cleanup_started",
            members=group.member_ids[:self._max_logged_members],
            planned=len(targets),
        )

        deleted = 0
        for record_id in targets:
            summary.attempted_count += 1
            try:
                await asyncio.shield(delete_fn(record_id))
            except Exception as e:
                summary.failures.append(DeletionFailure(
                    record_id=record_id,
                    group_key=group.key,
                    error_type=type(e).__name__,
                    error=str(e),
                ))
                log.warning("record_delete_failed", record_id=record_id, error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_record_delete_failed(
                        entity_type=group.kind.value,
                        record_id=record_id,
                        group_key=group.label,
                        error_message=str(e),
                        correlation_id=summary.correlation_id,
                    )
                continue

            deleted += 1
            summary.deleted_count += 1
            summary.deleted_ids.append(record_id)
            log.info("record_deleted", record_id=record_id)
            if self._audit_logger:
                await self._audit_logger.log_record_deleted(
                    entity_type=group.kind.value,
                    record_id=record_id,
                    group_key=group.label,
                    keep_id=group.keep_id,
                    correlation_id=summary.correlation_id,
                )

        log.info(
            "group_cleanup_finished",
            deleted=deleted,
            failed=len(targets) - deleted,
        )


async def reconcile(
    groups: Iterable[DuplicateGroup],
    kind: EntityKind,
    delete_fn: DeleteFn,
) -> ReconciliationSummary:
    """Run a one-off reconciliation without audit logging."""
    return await Reconciler().reconcile(groups, kind, delete_fn)

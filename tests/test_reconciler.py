"""
Tests for the reconciler.

The delete function is a plain async callable, so these tests drive
the reconciler with small recording fakes instead of a real store.
"""

from uuid import uuid4

import pytest

from task_planner.dedup import (
    KindMismatchError,
    MissingKeeperError,
    Reconciler,
    group_duplicates,
    reconcile,
)
from task_planner.models import (
    AuditEventType,
    CleanupOutcome,
    DuplicateGroup,
    EntityKind,
)
from task_planner.services.storage import NotFoundError, StorageError


class RecordingDelete:
    """Async delete function that records calls and fails on demand."""

    def __init__(self, failing: dict[str, Exception] = None):
        self.calls: list[str] = []
        self._failing = failing or {}

    async def __call__(self, record_id: str) -> None:
        self.calls.append(record_id)
        if record_id in self._failing:
            raise self._failing[record_id]


@pytest.fixture
def milk_group(make_task) -> DuplicateGroup:
    """Three copies of "Buy milk": k (oldest), a, b."""
    records = [
        make_task(title="Buy milk", id="k", minutes=0),
        make_task(title="buy milk", id="a", minutes=1),
        make_task(title="BUY MILK", id="b", minutes=2),
    ]
    return group_duplicates(records, EntityKind.TASK)[0]


class TestReconciler:
    """Tests for Reconciler.reconcile()."""

    @pytest.mark.anyio
    async def test_keeper_is_never_deleted(self, milk_group):
        """Every member but the keeper is deleted."""
        delete = RecordingDelete()

        summary = await reconcile([milk_group], EntityKind.TASK, delete)

        assert "k" not in delete.calls
        assert delete.calls == ["a", "b"]
        assert summary.deleted_count == 2
        assert summary.outcome == CleanupOutcome.SUCCESS

    @pytest.mark.anyio
    async def test_user_chosen_keeper_is_respected(self, milk_group):
        """A keeper changed before cleanup is the one that survives."""
        group = milk_group.model_copy(update={"keep_id": "b"})
        delete = RecordingDelete()

        await reconcile([group], EntityKind.TASK, delete)

        assert delete.calls == ["k", "a"]

    @pytest.mark.anyio
    async def test_partial_failure_is_counted_and_run_continues(self, milk_group):
        """One failing delete in a 3-member group: 1 deleted, 1 failure."""
        delete = RecordingDelete({"a": StorageError("quota exceeded")})

        summary = await reconcile([milk_group], EntityKind.TASK, delete)

        assert delete.calls == ["a", "b"]
        assert summary.deleted_count == 1
        assert summary.deleted_ids == ["b"]
        assert summary.failed_ids == ["a"]
        assert summary.failures[0].error_type == "StorageError"
        assert summary.failures[0].error == "quota exceeded"
        assert summary.outcome == CleanupOutcome.PARTIAL_FAILURE

    @pytest.mark.anyio
    async def test_total_failure_is_not_nothing_to_clean(self, make_task):
        """A 2-member group whose only delete fails is a total failure."""
        group = group_duplicates(
            [make_task(title="X", id="x1"), make_task(title="x", id="x2", minutes=1)],
            EntityKind.TASK,
        )[0]
        delete = RecordingDelete({"x2": NotFoundError("gone")})

        summary = await reconcile([group], EntityKind.TASK, delete)

        assert summary.deleted_count == 0
        assert len(summary.failures) == 1
        assert summary.outcome == CleanupOutcome.TOTAL_FAILURE
        assert "No duplicate tasks were deleted" in summary.get_user_friendly_summary()

    @pytest.mark.anyio
    async def test_empty_group_list_is_nothing_to_clean(self):
        """No groups means no calls and a NOTHING_TO_CLEAN outcome."""
        delete = RecordingDelete()

        summary = await reconcile([], EntityKind.PROJECT, delete)

        assert delete.calls == []
        assert summary.outcome == CleanupOutcome.NOTHING_TO_CLEAN
        assert summary.finished_at is not None

    @pytest.mark.anyio
    async def test_groups_are_processed_in_order(self, make_task):
        """Deletes run group by group, in the order the groups are given."""
        groups = group_duplicates(
            [
                make_task(title="One", id="1a", minutes=0),
                make_task(title="Two", id="2a", minutes=1),
                make_task(title="one", id="1b", minutes=2),
                make_task(title="two", id="2b", minutes=3),
                make_task(title="ONE", id="1c", minutes=4),
            ],
            EntityKind.TASK,
        )
        delete = RecordingDelete()

        await reconcile(groups, EntityKind.TASK, delete)

        assert delete.calls == ["1b", "1c", "2b"]

    @pytest.mark.anyio
    async def test_missing_keeper_rejected_before_any_delete(self, milk_group):
        """A group without a keeper stops the run before the first call."""
        no_keeper = milk_group.model_copy(update={"keep_id": None})
        delete = RecordingDelete()

        with pytest.raises(MissingKeeperError):
            await reconcile([milk_group, no_keeper], EntityKind.TASK, delete)

        assert delete.calls == []

    @pytest.mark.anyio
    async def test_kind_mismatch_rejected_before_any_delete(self, milk_group):
        """Task groups cannot be cleaned as projects."""
        delete = RecordingDelete()

        with pytest.raises(KindMismatchError):
            await reconcile([milk_group], EntityKind.PROJECT, delete)

        assert delete.calls == []

    @pytest.mark.anyio
    async def test_deletes_and_failures_are_audited(self, milk_group, audit_logger, audit_storage):
        """Every delete outcome produces an audit event with the run's correlation id."""
        delete = RecordingDelete({"b": StorageError("boom")})
        run_id = uuid4()
        reconciler = Reconciler(audit_logger)

        summary = await reconciler.reconcile(
            [milk_group], EntityKind.TASK, delete, correlation_id=run_id,
        )

        types = [event.event_type for event in audit_storage.events]
        assert types == [
            AuditEventType.RECORD_DELETED,
            AuditEventType.RECORD_DELETE_FAILED,
        ]
        assert audit_storage.events[0].entity_id == "a"
        assert audit_storage.events[0].details["kept_id"] == "k"
        assert audit_storage.events[1].error_message == "boom"
        assert all(event.correlation_id == run_id for event in audit_storage.events)
        assert summary.outcome == CleanupOutcome.PARTIAL_FAILURE


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

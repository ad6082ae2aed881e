"""
Tests for the record stores.

Google Sheets is never called: the Sheets store runs against an
in-process fake client whose worksheets are plain lists of rows.
"""

from datetime import date
from uuid import uuid4

import pytest

from task_planner.models import (
    AuditEventBuilder,
    Category,
    EntityKind,
    Task,
    TaskPriority,
)
from task_planner.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    NotFoundError,
    StorageError,
)
from task_planner.services.storage.google_sheets import AUDIT_COLUMNS, RECORD_COLUMNS


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the stores."""

    def __init__(self, header: list[str]):
        self.rows: list[list[str]] = [list(header)]
        self.fail_deletes = False

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def delete_rows(self, index: int):
        if self.fail_deletes:
            raise RuntimeError("sheet is protected")
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.sheets = {kind: FakeWorksheet(RECORD_COLUMNS[kind]) for kind in EntityKind}
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_records_sheet(self, kind):
        return self.sheets[EntityKind(kind)]

    def get_audit_sheet(self):
        return self.audit


class TestInMemoryRecordStore:
    """Tests for InMemoryRecordStore."""

    @pytest.mark.anyio
    async def test_lists_in_insertion_order(self, make_task):
        """Records come back in the order they were stored."""
        store = InMemoryRecordStore({
            EntityKind.TASK: [make_task(title="b", id="2"), make_task(title="a", id="1")],
        })
        assert [t.id for t in await store.list_records(EntityKind.TASK)] == ["2", "1"]
        assert await store.list_records(EntityKind.PROJECT) == []

    @pytest.mark.anyio
    async def test_delete_then_list_reflects_delete(self, make_task):
        """A deleted record is gone from the next listing."""
        store = InMemoryRecordStore({EntityKind.TASK: [make_task(id="1"), make_task(id="2")]})

        await store.delete_record(EntityKind.TASK, "1")

        assert [t.id for t in await store.list_records(EntityKind.TASK)] == ["2"]
        assert await store.get_record(EntityKind.TASK, "1") is None

    @pytest.mark.anyio
    async def test_delete_missing_raises(self):
        """Deleting an unknown id is an error, never a silent success."""
        store = InMemoryRecordStore()
        with pytest.raises(NotFoundError):
            await store.delete_record(EntityKind.CATEGORY, "nope")

    @pytest.mark.anyio
    async def test_save_rejects_existing_id(self, make_task):
        """Ids are unique per kind."""
        store = InMemoryRecordStore({EntityKind.TASK: [make_task(id="1")]})
        with pytest.raises(DuplicateError):
            await store.save_record(EntityKind.TASK, make_task(id="1"))

    def test_rejects_wrong_model_for_kind(self, make_task):
        """A task cannot be stored as a category."""
        with pytest.raises(StorageError):
            InMemoryRecordStore({EntityKind.CATEGORY: [make_task()]})


class TestGoogleSheetsRecordStore:
    """Tests for GoogleSheetsRecordStore against a fake client."""

    @pytest.fixture
    def client(self) -> FakeSheetsClient:
        return FakeSheetsClient()

    @pytest.fixture
    def store(self, client) -> GoogleSheetsRecordStore:
        return GoogleSheetsRecordStore(client)

    @pytest.mark.anyio
    async def test_saved_task_reads_back(self, store, make_task):
        """Every task column survives a write and a read."""
        task = make_task(
            title="Standup",
            description="daily",
            id="t1",
            completed=True,
            due_date=date(2024, 3, 4),
            category_ids=["c1", "c2"],
            priority=TaskPriority.HIGH,
            recurring_task_id="tpl",
        )

        await store.save_record(EntityKind.TASK, task)
        [loaded] = await store.list_records(EntityKind.TASK)

        assert isinstance(loaded, Task)
        assert loaded.id == "t1"
        assert loaded.completed is True
        assert loaded.archived is False
        assert loaded.due_date == date(2024, 3, 4)
        assert loaded.category_ids == ["c1", "c2"]
        assert loaded.priority == TaskPriority.HIGH
        assert loaded.created_at == task.created_at
        assert loaded.project_id is None

    @pytest.mark.anyio
    async def test_save_rejects_existing_id(self, store, make_category):
        """Saving the same id twice is refused."""
        await store.save_record(EntityKind.CATEGORY, make_category(name="Work", id="c1"))
        with pytest.raises(DuplicateError):
            await store.save_record(EntityKind.CATEGORY, make_category(name="Home", id="c1"))

    @pytest.mark.anyio
    async def test_kinds_use_separate_sheets(self, store, client, make_category, make_project):
        """Each kind is written to its own worksheet."""
        await store.save_record(EntityKind.CATEGORY, make_category(name="Work"))
        await store.save_record(EntityKind.PROJECT, make_project(name="Launch"))

        assert len(client.sheets[EntityKind.CATEGORY].rows) == 2
        assert len(client.sheets[EntityKind.PROJECT].rows) == 2
        assert len(client.sheets[EntityKind.TASK].rows) == 1

    @pytest.mark.anyio
    async def test_malformed_rows_are_skipped(self, store, client, make_category):
        """A row that does not parse is skipped and counted; the rest still load."""
        await store.save_record(EntityKind.CATEGORY, make_category(name="Work", id="c1"))
        client.sheets[EntityKind.CATEGORY].rows.append(["c2", "not a date", "", "Bad", ""])
        client.sheets[EntityKind.CATEGORY].rows.append(["", "", "", "", ""])

        records = await store.list_records(EntityKind.CATEGORY)

        assert [r.id for r in records] == ["c1"]
        assert isinstance(records[0], Category)
        assert store.skipped_count(EntityKind.CATEGORY) == 1
        assert store.skipped_count(EntityKind.TASK) == 0

    @pytest.mark.anyio
    async def test_delete_removes_the_right_row(self, store, client, make_task):
        """Row numbers are looked up fresh, so consecutive deletes stay correct."""
        for record_id in ("a", "b", "c"):
            await store.save_record(EntityKind.TASK, make_task(title=record_id, id=record_id))

        await store.delete_record(EntityKind.TASK, "a")
        await store.delete_record(EntityKind.TASK, "c")

        assert [r.id for r in await store.list_records(EntityKind.TASK)] == ["b"]

    @pytest.mark.anyio
    async def test_delete_missing_raises_not_found(self, store):
        """An id with no row raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await store.delete_record(EntityKind.TASK, "ghost")

    @pytest.mark.anyio
    async def test_delete_failure_raises_storage_error(self, store, client, make_task):
        """Any other sheet failure surfaces as StorageError."""
        await store.save_record(EntityKind.TASK, make_task(id="t1"))
        client.sheets[EntityKind.TASK].fail_deletes = True

        with pytest.raises(StorageError):
            await store.delete_record(EntityKind.TASK, "t1")

        assert await store.get_record(EntityKind.TASK, "t1") is not None


class TestGoogleSheetsAuditStorage:
    """Tests for GoogleSheetsAuditStorage against a fake client."""

    @pytest.mark.anyio
    async def test_events_are_appended_and_read_back(self):
        """Appended events can be looked up by correlation id."""
        storage = GoogleSheetsAuditStorage(FakeSheetsClient())
        run_id = uuid4()

        await storage.append_event(AuditEventBuilder.record_deleted(
            entity_type="task",
            record_id="t2",
            group_key="buy milk | ",
            keep_id="t1",
            correlation_id=run_id,
        ))
        await storage.append_event(AuditEventBuilder.analysis_started())

        events = await storage.get_events_by_correlation_id(run_id)
        assert len(events) == 1
        assert events[0].entity_id == "t2"
        assert events[0].details["kept_id"] == "t1"
        assert len(await storage.get_recent_events(limit=10)) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

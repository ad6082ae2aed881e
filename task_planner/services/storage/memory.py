"""
In-Memory Storage Implementation

Keeps records in plain dicts. Used by the tests and handy for
running the engine against data loaded some other way.

Records are listed in insertion order, the way a real store
returns rows in its own iteration order.
"""

from typing import Iterable, Optional
from uuid import UUID

from task_planner.models.audit import AuditEvent
from task_planner.models.records import EntityKind, PlannerRecord, get_kind_spec
from task_planner.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)


class InMemoryRecordStore(RecordStoreInterface):
    """Record store backed by one dict per entity kind."""

    def __init__(
        self,
        records: Optional[dict[EntityKind, Iterable[PlannerRecord]]] = None,
    ):
        self._records: dict[EntityKind, dict[str, PlannerRecord]] = {
            kind: {} for kind in EntityKind
        }
        for kind, items in (records or {}).items():
            for record in items:
                self._insert(EntityKind(kind), record)

    def _insert(self, kind: EntityKind, record: PlannerRecord) -> None:
        model = get_kind_spec(kind).model
        if not isinstance(record, model):
            raise StorageError(
                f"Cannot store {type(record).__name__} as a {kind.value}"
            )
        if record.id in self._records[kind]:
            raise DuplicateError(f"{kind.value} already exists: {record.id}")
        self._records[kind][record.id] = record

    async def list_records(self, kind: EntityKind) -> list[PlannerRecord]:
        return list(self._records[EntityKind(kind)].values())

    async def get_record(
        self,
        kind: EntityKind,
        record_id: str,
    ) -> Optional[PlannerRecord]:
        return self._records[EntityKind(kind)].get(record_id)

    async def save_record(self, kind: EntityKind, record: PlannerRecord) -> None:
        self._insert(EntityKind(kind), record)

    async def delete_record(self, kind: EntityKind, record_id: str) -> None:
        kind = EntityKind(kind)
        if record_id not in self._records[kind]:
            raise NotFoundError(f"{kind.value} not found: {record_id}")
        del self._records[kind][record_id]

    def count(self, kind: EntityKind) -> int:
        return len(self._records[EntityKind(kind)])


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

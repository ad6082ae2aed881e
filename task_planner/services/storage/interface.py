"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run the duplicate engine against Google Sheets or any other backend
2. Use in-memory storage for testing
3. Keep the engine decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the engine and its tests need, per entity kind.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from task_planner.models.audit import AuditEvent
from task_planner.models.records import EntityKind, PlannerRecord


class RecordStoreInterface(ABC):
    """
    Abstract interface for planner record storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list_records(self, kind: EntityKind) -> list[PlannerRecord]:
        """
        Return the full, current collection for a kind.

        No pagination: the engine always works on the whole collection.

        Raises:
            StorageError: If the collection cannot be read
        """
        pass

    @abstractmethod
    async def get_record(
        self,
        kind: EntityKind,
        record_id: str,
    ) -> Optional[PlannerRecord]:
        """
        Retrieve a record by its ID.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def save_record(self, kind: EntityKind, record: PlannerRecord) -> None:
        """
        Store a new record.

        Raises:
            DuplicateError: If a record with the same ID already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_record(self, kind: EntityKind, record_id: str) -> None:
        """
        Delete a record by ID.

        A delete either fully succeeds or raises. It never reports
        success for a record that is still there.

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If delete fails
        """
        pass

    def skipped_count(self, kind: EntityKind) -> int:
        """Rows of `kind` the last list_records call could not load."""
        return 0


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one cleanup run).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

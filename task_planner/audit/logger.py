"""
Audit Logger

DESIGN DECISION: Every significant step of duplicate cleanup is logged.
Deletes are irreversible, so afterwards we must be able to answer
"what was deleted, what was kept, and who asked for it".

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash a cleanup if logging fails)
- Supports correlation IDs to trace all events of one cleanup run
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from task_planner.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from task_planner.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_analysis_started(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.analysis_started(correlation_id))

    async def log_analysis_completed(
        self,
        analysis_id: UUID,
        group_counts: dict[str, int],
        record_counts: dict[str, int],
        skipped_rows: Optional[dict[str, int]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a finished analysis pass with per-kind counts."""
        event = AuditEventBuilder.analysis_completed(
            analysis_id=analysis_id,
            group_counts=group_counts,
            record_counts=record_counts,
            skipped_rows=skipped_rows,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_analysis_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.analysis_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_keeper_changed(
        self,
        entity_type: str,
        group_key: str,
        previous_keep_id: Optional[str],
        keep_id: str,
    ) -> None:
        """Log the user overriding the default keeper of a group."""
        event = AuditEventBuilder.keeper_changed(
            entity_type=entity_type,
            group_key=group_key,
            previous_keep_id=previous_keep_id,
            keep_id=keep_id,
        )
        await self.log(event)

    async def log_cleanup_started(
        self,
        entity_type: str,
        group_count: int,
        planned_deletes: int,
        user_id: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.cleanup_started(
            entity_type=entity_type,
            group_count=group_count,
            planned_deletes=planned_deletes,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_deleted(
        self,
        entity_type: str,
        record_id: str,
        group_key: str,
        keep_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.record_deleted(
            entity_type=entity_type,
            record_id=record_id,
            group_key=group_key,
            keep_id=keep_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_delete_failed(
        self,
        entity_type: str,
        record_id: str,
        group_key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.record_delete_failed(
            entity_type=entity_type,
            record_id=record_id,
            group_key=group_key,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_cleanup_completed(
        self,
        entity_type: str,
        outcome: str,
        deleted_count: int,
        failed_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.cleanup_completed(
            entity_type=entity_type,
            outcome=outcome,
            deleted_count=deleted_count,
            failed_count=failed_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_precondition_failed(
        self,
        operation: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.precondition_failed(
            operation=operation,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a cleanup run).
    Pass it through all subsequent operations.
    """
    return uuid4()

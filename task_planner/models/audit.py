"""
Audit Models for Task Planner

Every significant step of duplicate cleanup is logged for audit purposes.
This provides:
1. A record of exactly which records were deleted, and why
2. Debugging information when a cleanup only partly succeeds
3. A way to reconstruct what the user confirmed

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from task_planner.models.records import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the analyze → confirm → clean flow has its own event type.
    """
    # Analysis
    ANALYSIS_STARTED = "analysis_started"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"

    # Human confirmation
    KEEPER_CHANGED = "keeper_changed"

    # Cleanup
    CLEANUP_STARTED = "cleanup_started"
    RECORD_DELETED = "record_deleted"
    RECORD_DELETE_FAILED = "record_delete_failed"
    CLEANUP_COMPLETED = "cleanup_completed"

    # Preconditions
    PRECONDITION_FAILED = "precondition_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'task', 'project', 'analysis')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all deletes in one cleanup run)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.analysis_completed(analysis_id, counts, ...)
        event = AuditEventBuilder.record_deleted("task", record_id, group_key, ...)
    """

    @staticmethod
    def analysis_started(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_STARTED,
            entity_type="analysis",
            correlation_id=correlation_id,
            description="Duplicate analysis started",
        )

    @staticmethod
    def analysis_completed(
        analysis_id: UUID,
        group_counts: dict[str, int],
        record_counts: dict[str, int],
        skipped_rows: Optional[dict[str, int]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        total_groups = sum(group_counts.values())
        skipped_rows = skipped_rows or {}
        severity = AuditSeverity.INFO
        if any(skipped_rows.values()):
            severity = AuditSeverity.WARNING
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_COMPLETED,
            severity=severity,
            entity_type="analysis",
            entity_id=str(analysis_id),
            correlation_id=correlation_id,
            description=f"Duplicate analysis found {total_groups} groups",
            details={
                "group_counts": group_counts,
                "record_counts": record_counts,
                "skipped_rows": skipped_rows,
            },
        )

    @staticmethod
    def analysis_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="analysis",
            correlation_id=correlation_id,
            description="Duplicate analysis failed while reading records",
            error_message=error_message,
        )

    @staticmethod
    def keeper_changed(
        entity_type: str,
        group_key: str,
        previous_keep_id: Optional[str],
        keep_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.KEEPER_CHANGED,
            entity_type=entity_type,
            entity_id=keep_id,
            correlation_id=correlation_id,
            description=f"User chose which {entity_type} to keep",
            details={
                "group_key": group_key,
                "previous_keep_id": previous_keep_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def cleanup_started(
        entity_type: str,
        group_count: int,
        planned_deletes: int,
        user_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLEANUP_STARTED,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Cleanup of {planned_deletes} duplicate {entity_type} records started",
            details={
                "group_count": group_count,
                "planned_deletes": planned_deletes,
                "user_id": user_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        record_id: str,
        group_key: str,
        keep_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=entity_type,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Deleted duplicate {entity_type}",
            details={
                "group_key": group_key,
                "kept_id": keep_id,
            },
        )

    @staticmethod
    def record_delete_failed(
        entity_type: str,
        record_id: str,
        group_key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Could not delete duplicate {entity_type}",
            error_message=error_message,
            details={
                "group_key": group_key,
            },
        )

    @staticmethod
    def cleanup_completed(
        entity_type: str,
        outcome: str,
        deleted_count: int,
        failed_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        severity = AuditSeverity.INFO
        if failed_count and deleted_count:
            severity = AuditSeverity.WARNING
        elif failed_count:
            severity = AuditSeverity.ERROR
        return AuditEvent(
            event_type=AuditEventType.CLEANUP_COMPLETED,
            severity=severity,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=(
                f"Cleanup finished ({outcome}): {deleted_count} deleted, "
                f"{failed_count} failed"
            ),
            details={
                "outcome": outcome,
                "deleted_count": deleted_count,
                "failed_count": failed_count,
            },
        )

    @staticmethod
    def precondition_failed(
        operation: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRECONDITION_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"{operation} refused: {reason}",
            details={
                "operation": operation,
            },
            error_message=reason,
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )

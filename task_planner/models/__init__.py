"""
Data Models Package

This package contains all Pydantic models used by the duplicate cleanup engine.
All data flowing through the engine must conform to these schemas.
"""

from task_planner.models.records import (
    FINGERPRINT_DELIMITER,
    KIND_SPECS,
    Category,
    EntityKind,
    KindSpec,
    PlannerRecord,
    Project,
    Task,
    TaskPriority,
    get_kind_spec,
)
from task_planner.models.duplicates import (
    AnalysisResult,
    CleanupOutcome,
    DeletionFailure,
    DuplicateGroup,
    NameCollision,
    ReconciliationSummary,
    RecurringTaskReport,
    RecurringTemplateSummary,
)
from task_planner.models.session import SessionState, UserIdentity
from task_planner.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "FINGERPRINT_DELIMITER",
    "KIND_SPECS",
    "Category",
    "EntityKind",
    "KindSpec",
    "PlannerRecord",
    "Project",
    "Task",
    "TaskPriority",
    "get_kind_spec",
    # Duplicate models
    "AnalysisResult",
    "CleanupOutcome",
    "DeletionFailure",
    "DuplicateGroup",
    "NameCollision",
    "ReconciliationSummary",
    "RecurringTaskReport",
    "RecurringTemplateSummary",
    # Session models
    "SessionState",
    "UserIdentity",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

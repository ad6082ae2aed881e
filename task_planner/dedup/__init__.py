"""Duplicate detection and reconciliation engine."""

from task_planner.dedup.analysis import analyze_records
from task_planner.dedup.errors import (
    AnalysisError,
    DuplicateEngineError,
    InvalidKeeperError,
    KindMismatchError,
    MissingKeeperError,
    NoAnalysisError,
    NotAuthenticatedError,
    PreconditionError,
    SessionBusyError,
    StaleGroupsError,
    UnknownGroupError,
)
from task_planner.dedup.grouper import find_name_collisions, group_duplicates
from task_planner.dedup.keeper import default_keep_id, set_keep
from task_planner.dedup.normalizer import fingerprint, identity_values, normalize
from task_planner.dedup.reconciler import DeleteFn, Reconciler, reconcile
from task_planner.dedup.recurring import build_recurring_report

__all__ = [
    # Pipeline
    "analyze_records",
    "build_recurring_report",
    "default_keep_id",
    "find_name_collisions",
    "fingerprint",
    "group_duplicates",
    "identity_values",
    "normalize",
    "reconcile",
    "set_keep",
    "DeleteFn",
    "Reconciler",
    # Exceptions
    "AnalysisError",
    "DuplicateEngineError",
    "InvalidKeeperError",
    "KindMismatchError",
    "MissingKeeperError",
    "NoAnalysisError",
    "NotAuthenticatedError",
    "PreconditionError",
    "SessionBusyError",
    "StaleGroupsError",
    "UnknownGroupError",
]

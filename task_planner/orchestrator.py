"""
Main Orchestrator for Task Planner duplicate cleanup

This module ties together the store, the session provider, the
analysis pipeline and the reconciler, and defines the end-to-end flow:

    analyze → (optionally change keepers) → cleanup(kind) → analyze again

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is deleted without a signed-in user
- Nothing is deleted from groups that may no longer match the store
- Only one analysis or cleanup runs at a time
- Every step is audited

Groups are never repaired locally after a cleanup. The store is the
only source of truth, so the session simply analyzes again.
"""

import asyncio
import functools
import logging
from typing import Optional
from uuid import UUID

import structlog

from task_planner.audit import AuditLogger, create_correlation_id
from task_planner.config import get_settings, validate_all_settings
from task_planner.dedup import keeper
from task_planner.dedup.analysis import analyze_records
from task_planner.dedup.errors import (
    AnalysisError,
    NoAnalysisError,
    NotAuthenticatedError,
    PreconditionError,
    SessionBusyError,
    StaleGroupsError,
)
from task_planner.dedup.reconciler import Reconciler
from task_planner.models.duplicates import (
    AnalysisResult,
    DuplicateGroup,
    ReconciliationSummary,
)
from task_planner.models.records import EntityKind, utcnow
from task_planner.models.session import SessionState
from task_planner.services.auth import (
    SessionProviderInterface,
    StaticSessionProvider,
)
from task_planner.services.storage import ConnectionError as StoreConnectionError
from task_planner.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    RecordStoreInterface,
)


_BUSY_STATES = (SessionState.ANALYZING, SessionState.CLEANING)


class AnalysisSession:
    """
    Orchestrates duplicate analysis and cleanup for one user session.

    Flow:
    1. analyze() → snapshot every collection, build groups
    2. set_keep() → user may pick a different survivor per group
    3. cleanup(kind) → delete every non-keeper of that kind
    4. analyze() again → confirm what the store now holds

    Step 4 runs automatically after a fully successful cleanup unless
    auto_reanalyze is off. After anything less than full success the
    groups are kept on screen but marked stale, and cleanup is refused
    until the user analyzes again.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        auth: SessionProviderInterface,
        audit_logger: Optional[AuditLogger] = None,
        reconciler: Optional[Reconciler] = None,
        auto_reanalyze: Optional[bool] = None,
    ):
        self._store = store
        self._auth = auth
        self._audit_logger = audit_logger
        self._reconciler = reconciler or Reconciler(audit_logger)
        if auto_reanalyze is None:
            auto_reanalyze = get_settings().app.auto_reanalyze_after_cleanup
        self._auto_reanalyze = auto_reanalyze
        self._logger = structlog.get_logger(__name__)

        self._state = SessionState.IDLE
        self._result: Optional[AnalysisResult] = None
        self._last_summary: Optional[ReconciliationSummary] = None
        self._error: Optional[str] = None
        self._stale = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def result(self) -> Optional[AnalysisResult]:
        """Latest analysis result, or None before the first analysis."""
        return self._result

    @property
    def last_summary(self) -> Optional[ReconciliationSummary]:
        return self._last_summary

    @property
    def error(self) -> Optional[str]:
        """User-facing message for the last failure, if any."""
        return self._error

    @property
    def is_stale(self) -> bool:
        """True when the groups on hand may no longer match the store."""
        return self._stale

    def groups(self, kind: EntityKind) -> list[DuplicateGroup]:
        if self._result is None:
            return []
        return self._result.groups_for(kind)

    def _ensure_not_busy(self, operation: str) -> None:
        if self._state in _BUSY_STATES:
            raise SessionBusyError(
                f"Cannot {operation} while {self._state.value.replace('_', ' ')}"
            )

    async def _refuse(
        self,
        error: PreconditionError,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> None:
        self._logger.warning(
            "precondition_failed",
            operation=operation,
            reason=str(error),
        )
        if self._audit_logger:
            await self._audit_logger.log_precondition_failed(
                operation=operation,
                reason=str(error),
                correlation_id=correlation_id,
            )
        raise error

    def _cleanup_precondition(self, user, kind: EntityKind) -> Optional[PreconditionError]:
        """Return the reason cleanup of `kind` must be refused, if any."""
        if user is None:
            return NotAuthenticatedError("Sign in to clean up duplicates.")
        if self._result is None:
            return NoAnalysisError("Analyze before cleaning up duplicates")
        if self._stale:
            return StaleGroupsError(
                "The duplicate list is out of date. Analyze again before cleaning up."
            )
        try:
            self._reconciler.validate_groups(self._result.groups_for(kind), kind)
        except PreconditionError as e:
            return e
        return None

    async def analyze(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> AnalysisResult:
        """
        Snapshot every collection and rebuild all duplicate groups.

        Collections are fetched one after another. A failure on any of
        them discards the whole pass: no partial result is kept.

        Raises:
            SessionBusyError: An analysis or cleanup is in progress
            AnalysisError: A collection could not be read
        """
        self._ensure_not_busy("analyze")
        correlation_id = correlation_id or create_correlation_id()

        self._state = SessionState.ANALYZING
        self._error = None
        if self._audit_logger:
            await self._audit_logger.log_analysis_started(correlation_id)

        snapshots = {}
        skipped = {}
        try:
            for kind in EntityKind:
                snapshots[kind] = await self._store.list_records(kind)
                skipped[kind.value] = self._store.skipped_count(kind)
        except asyncio.CancelledError:
            self._result = None
            self._state = SessionState.IDLE
            raise
        except Exception as e:
            self._result = None
            self._stale = False
            self._state = SessionState.ERROR
            self._error = f"Could not read your data: {e}"
            self._logger.error("analysis_failed", error=str(e))
            if self._audit_logger:
                if isinstance(e, StoreConnectionError):
                    await self._audit_logger.log_external_service_error(
                        service=type(self._store).__name__,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                await self._audit_logger.log_analysis_failed(
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise AnalysisError(self._error) from e

        result = analyze_records(snapshots)
        self._result = result
        self._stale = False
        self._state = (
            SessionState.GROUPS_FOUND
            if result.has_any_duplicates
            else SessionState.NO_DUPLICATES
        )

        self._logger.info(
            "analysis_completed",
            analysis_id=str(result.analysis_id),
            state=self._state.value,
            duplicates=result.duplicate_record_count(),
            skipped_rows=skipped,
        )
        if self._audit_logger:
            await self._audit_logger.log_analysis_completed(
                analysis_id=result.analysis_id,
                group_counts={k.value: len(result.groups_for(k)) for k in EntityKind},
                record_counts={k.value: v for k, v in result.record_counts.items()},
                skipped_rows=skipped,
                correlation_id=correlation_id,
            )
        return result

    async def set_keep(
        self,
        kind: EntityKind,
        group_key: str,
        record_id: str,
    ) -> DuplicateGroup:
        """
        Choose which member of a group survives cleanup.

        Returns the updated group.

        Raises:
            SessionBusyError: An analysis or cleanup is in progress
            NoAnalysisError: Nothing has been analyzed yet
            UnknownGroupError: No group of `kind` has `group_key`
            InvalidKeeperError: `record_id` is not in that group
        """
        self._ensure_not_busy("change the kept record")
        if self._result is None:
            raise NoAnalysisError("Analyze before choosing which records to keep")

        kind = EntityKind(kind)
        groups = self._result.groups_for(kind)
        updated = keeper.set_keep(groups, group_key, record_id)

        previous = next(g for g in groups if g.key == group_key)
        changed = next(g for g in updated if g.key == group_key)
        self._result = self._result.with_groups(kind, updated)

        if self._audit_logger and previous.keep_id != record_id:
            await self._audit_logger.log_keeper_changed(
                entity_type=kind.value,
                group_key=changed.label,
                previous_keep_id=previous.keep_id,
                keep_id=record_id,
            )
        return changed

    async def cleanup(
        self,
        kind: EntityKind,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationSummary:
        """
        Delete the non-keepers of every group of one kind.

        CRITICAL: Requires a signed-in user and a fresh analysis.
        Per-record failures do not raise; they are reported in the
        returned summary and move the session to PARTIAL_FAILURE.

        Raises:
            SessionBusyError: An analysis or cleanup is in progress
            NotAuthenticatedError: Nobody is signed in (session → ERROR)
            NoAnalysisError: Nothing has been analyzed yet
            StaleGroupsError: The last cleanup did not fully succeed
            MissingKeeperError, KindMismatchError: Invalid groups
        """
        self._ensure_not_busy("clean up")
        kind = EntityKind(kind)
        correlation_id = correlation_id or create_correlation_id()

        # Claimed before the first await so nothing else can start meanwhile
        previous_state = self._state
        self._state = SessionState.CLEANING
        try:
            user = await self._auth.current_user()
        except (Exception, asyncio.CancelledError):
            self._state = previous_state
            raise

        refusal = self._cleanup_precondition(user, kind)
        if refusal is not None:
            if isinstance(refusal, NotAuthenticatedError):
                self._state = SessionState.ERROR
                self._error = str(refusal)
            else:
                self._state = previous_state
            await self._refuse(refusal, "cleanup", correlation_id)

        groups = self._result.groups_for(kind)
        if not groups:
            self._state = previous_state
            return ReconciliationSummary(
                kind=kind,
                correlation_id=correlation_id,
                finished_at=utcnow(),
            )

        self._error = None
        if self._audit_logger:
            await self._audit_logger.log_cleanup_started(
                entity_type=kind.value,
                group_count=len(groups),
                planned_deletes=sum(group.size - 1 for group in groups),
                user_id=user.id,
                correlation_id=correlation_id,
            )

        try:
            summary = await self._reconciler.reconcile(
                groups,
                kind,
                functools.partial(self._store.delete_record, kind),
                correlation_id=correlation_id,
            )
        except asyncio.CancelledError:
            self._state = SessionState.PARTIAL_FAILURE
            self._stale = True
            self._error = "Cleanup was cancelled. Some duplicates may remain."
            self._logger.warning("cleanup_cancelled", kind=kind.value)
            raise
        except Exception as e:
            self._state = SessionState.ERROR
            self._stale = True
            self._error = f"Cleanup stopped unexpectedly: {e}"
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        self._last_summary = summary
        if self._audit_logger:
            await self._audit_logger.log_cleanup_completed(
                entity_type=kind.value,
                outcome=summary.outcome.value,
                deleted_count=summary.deleted_count,
                failed_count=len(summary.failures),
                correlation_id=correlation_id,
            )

        if not summary.is_success:
            self._state = SessionState.PARTIAL_FAILURE
            self._stale = True
            self._error = summary.get_user_friendly_summary()
            return summary

        self._result = self._result.with_groups(kind, [])
        self._state = SessionState.COMPLETE

        if self._auto_reanalyze:
            try:
                await self.analyze(correlation_id)
            except AnalysisError as e:
                # Deletes already happened; the session is in ERROR
                self._logger.warning("reanalysis_failed", error=str(e))

        return summary


def create_app_components(
    use_storage: bool = True,
) -> tuple[AnalysisSession, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run against an empty in-memory store.
                    Ignored when the Google Sheets settings are incomplete.

    Returns:
        (analysis_session, sheets_client)
    """
    logger = structlog.get_logger(__name__)
    app_settings = get_settings().app
    logging.getLogger().setLevel(
        logging.DEBUG if app_settings.debug_mode else logging.INFO
    )
    logger.info(
        "components_starting",
        environment=app_settings.app_environment,
        debug=app_settings.debug_mode,
    )

    sheets_client = None
    store = None
    audit_logger = None

    if use_storage:
        checks = validate_all_settings()
        if not checks["google_sheets"]:
            logger.warning(
                "storage_not_configured",
                error=checks["google_sheets_error"],
            )
            use_storage = False

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsRecordStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Settings are present but the spreadsheet is unreachable
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            store = None

    if store is None:
        store = InMemoryRecordStore()
        audit_logger = AuditLogger()  # Local-only logging

    session = AnalysisSession(
        store=store,
        auth=StaticSessionProvider.from_settings(),
        audit_logger=audit_logger,
    )
    return session, sheets_client

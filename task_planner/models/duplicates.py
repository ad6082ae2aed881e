"""
Duplicate Analysis Models

These models carry the results of duplicate analysis and cleanup
between the engine and whatever presents them to the user.

DESIGN DECISION: Groups are immutable snapshots. They are rebuilt from
the store on every analysis and are never patched in place; changing a
keeper produces a new group object.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializeAsAny,
    model_validator,
)

from task_planner.models.records import (
    FINGERPRINT_DELIMITER,
    EntityKind,
    PlannerRecord,
    get_kind_spec,
    utcnow,
)


# =============================================================================
# DUPLICATE GROUPS
# =============================================================================

class DuplicateGroup(BaseModel):
    """
    Two or more records of one kind sharing a fingerprint.

    Members are ordered oldest first. `keep_id` names the member
    that survives cleanup.
    """
    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    key: str = Field(
        ...,
        description="Fingerprint shared by every member"
    )
    members: list[SerializeAsAny[PlannerRecord]] = Field(
        ...,
        description="Records sharing the fingerprint, oldest first"
    )
    keep_id: Optional[str] = Field(
        default=None,
        description="ID of the member to keep"
    )

    @model_validator(mode='after')
    def validate_members(self) -> 'DuplicateGroup':
        if len(self.members) < 2:
            raise ValueError("A duplicate group needs at least two members")
        if self.keep_id is not None and not self.has_member(self.keep_id):
            raise ValueError(f"Keeper {self.keep_id} is not a member of the group")
        return self

    @property
    def member_ids(self) -> list[str]:
        return [member.id for member in self.members]

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def keeper(self) -> Optional[PlannerRecord]:
        """The member that will survive cleanup, if one is chosen."""
        for member in self.members:
            if member.id == self.keep_id:
                return member
        return None

    @property
    def to_delete(self) -> list[PlannerRecord]:
        """Every member except the keeper."""
        return [member for member in self.members if member.id != self.keep_id]

    @property
    def label(self) -> str:
        """Readable form of the key, e.g. "buy milk | " for a task."""
        return " | ".join(self.key.split(FINGERPRINT_DELIMITER))

    @property
    def display_name(self) -> str:
        """The keeper's (or first member's) title/name as the user typed it."""
        record = self.keeper or self.members[0]
        value = getattr(record, get_kind_spec(self.kind).display_field, None)
        return value or "(untitled)"

    def has_member(self, record_id: str) -> bool:
        return any(member.id == record_id for member in self.members)


class NameCollision(BaseModel):
    """
    Records whose names match but whose full identity differs.

    Reported for information only. These are never cleaned up
    automatically because the descriptions tell them apart.
    """

    kind: EntityKind
    name_key: str = Field(
        ...,
        description="Normalized name shared by the records"
    )
    record_ids: list[str] = Field(default_factory=list)
    fingerprint_count: int = Field(
        ...,
        ge=2,
        description="How many distinct fingerprints share this name"
    )


# =============================================================================
# RECURRING TASK REPORT
# =============================================================================

NO_DUE_DATE = "no-date"


class RecurringTemplateSummary(BaseModel):
    """Instances generated from a single recurring template."""

    recurring_task_id: str
    instance_count: int = Field(ge=0)
    sample_title: str = ""
    duplicate_due_dates: dict[str, int] = Field(
        default_factory=dict,
        description="Due date (ISO, or 'no-date') → number of copies, for dates with more than one"
    )

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicate_due_dates)

    @property
    def extra_instance_count(self) -> int:
        return sum(count - 1 for count in self.duplicate_due_dates.values())


class RecurringTaskReport(BaseModel):
    """Breakdown of regular vs recurring-generated tasks."""

    total_tasks: int = Field(default=0, ge=0)
    regular_count: int = Field(default=0, ge=0)
    recurring_generated_count: int = Field(default=0, ge=0)
    templates: list[RecurringTemplateSummary] = Field(default_factory=list)

    @property
    def templates_with_duplicates(self) -> list[RecurringTemplateSummary]:
        return [t for t in self.templates if t.has_duplicates]

    @property
    def extra_instance_count(self) -> int:
        return sum(t.extra_instance_count for t in self.templates)


# =============================================================================
# ANALYSIS RESULT
# =============================================================================

class AnalysisResult(BaseModel):
    """
    Everything one analysis pass found.

    Rebuilt from scratch on every pass; never persisted.
    """
    model_config = ConfigDict(frozen=True)

    analysis_id: UUID = Field(default_factory=uuid4)
    analyzed_at: datetime = Field(default_factory=utcnow)

    groups: dict[EntityKind, list[DuplicateGroup]] = Field(
        default_factory=lambda: {kind: [] for kind in EntityKind}
    )
    record_counts: dict[EntityKind, int] = Field(default_factory=dict)
    name_collisions: dict[EntityKind, list[NameCollision]] = Field(default_factory=dict)
    recurring_report: Optional[RecurringTaskReport] = None

    @property
    def has_any_duplicates(self) -> bool:
        return any(self.groups.get(kind) for kind in EntityKind)

    def groups_for(self, kind: EntityKind) -> list[DuplicateGroup]:
        return self.groups.get(EntityKind(kind), [])

    def duplicate_record_count(self, kind: Optional[EntityKind] = None) -> int:
        """Number of records a cleanup would delete (all kinds if kind is None)."""
        kinds = [EntityKind(kind)] if kind is not None else list(EntityKind)
        return sum(
            group.size - 1
            for k in kinds
            for group in self.groups_for(k)
        )

    def with_groups(
        self,
        kind: EntityKind,
        groups: list[DuplicateGroup],
    ) -> 'AnalysisResult':
        """Copy of this result with one kind's groups replaced."""
        updated = dict(self.groups)
        updated[EntityKind(kind)] = groups
        return self.model_copy(update={"groups": updated})


# =============================================================================
# CLEANUP RESULTS
# =============================================================================

class CleanupOutcome(str, Enum):
    """
    The four outcomes a cleanup attempt can have.

    They are kept distinct on purpose: "nothing to clean" is not a
    failure, and "deleted nothing" is not a success.
    """
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    TOTAL_FAILURE = "total_failure"
    NOTHING_TO_CLEAN = "nothing_to_clean"


class DeletionFailure(BaseModel):
    """A record the store refused to delete."""

    record_id: str
    group_key: str
    error_type: str = Field(
        ...,
        description="Exception class name"
    )
    error: str = Field(
        ...,
        description="Error message from the store"
    )


class ReconciliationSummary(BaseModel):
    """
    Result of one cleanup run over a single entity kind.

    deleted_count only counts deletes the store confirmed.
    """

    kind: EntityKind
    correlation_id: Optional[UUID] = None
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    group_count: int = Field(default=0, ge=0)
    attempted_count: int = Field(default=0, ge=0)
    deleted_count: int = Field(default=0, ge=0)
    deleted_ids: list[str] = Field(default_factory=list)
    failures: list[DeletionFailure] = Field(default_factory=list)

    @property
    def outcome(self) -> CleanupOutcome:
        if self.attempted_count == 0:
            return CleanupOutcome.NOTHING_TO_CLEAN
        if self.deleted_count == 0:
            return CleanupOutcome.TOTAL_FAILURE
        if self.failures:
            return CleanupOutcome.PARTIAL_FAILURE
        return CleanupOutcome.SUCCESS

    @property
    def failed_ids(self) -> list[str]:
        return [failure.record_id for failure in self.failures]

    @property
    def is_success(self) -> bool:
        return self.outcome == CleanupOutcome.SUCCESS

    def get_user_friendly_summary(self) -> str:
        """Plain-language description of the outcome."""
        plural = get_kind_spec(self.kind).plural
        outcome = self.outcome

        if outcome == CleanupOutcome.NOTHING_TO_CLEAN:
            return f"No duplicate {plural} to clean up."
        if outcome == CleanupOutcome.SUCCESS:
            return f"Removed {self.deleted_count} duplicate {plural}."
        if outcome == CleanupOutcome.PARTIAL_FAILURE:
            return (
                f"Removed {self.deleted_count} duplicate {plural}, but "
                f"{len(self.failures)} could not be deleted. "
                "Analyze again to see what is left."
            )
        return (
            f"No duplicate {plural} were deleted. "
            f"All {len(self.failures)} delete attempts failed."
        )

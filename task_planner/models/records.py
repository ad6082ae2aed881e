"""
Planner Record Models

These models mirror the rows the planner keeps for each entity kind.
The duplicate engine only cares about a handful of fields per kind
(the identity fields), but records carry everything else along so
that nothing is lost when they are passed around.

DESIGN DECISION: Identity fields are Optional and are NOT stripped or
lowercased on the model. Records hold exactly what the user typed;
normalization belongs to the engine, not to the schema.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Joins normalized identity fields into a fingerprint. Normalization turns
# every whitespace character (this one included) into a plain space, so it
# never occurs inside a normalized field.
FINGERPRINT_DELIMITER = "\x1f"


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class EntityKind(str, Enum):
    """
    Kinds of records the engine can deduplicate.

    The kind decides which fields make up a record's identity.
    Grouping is always scoped to a single kind.
    """
    TASK = "task"
    PROJECT = "project"
    CATEGORY = "category"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# RECORD MODELS
# =============================================================================

class PlannerRecord(BaseModel):
    """
    Fields shared by every stored record.

    `id` and `created_at` are assigned once by the store and never change.
    Naive timestamps are read as UTC so that records coming from
    different sources always compare cleanly.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Opaque record identifier assigned by the store"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the record was created"
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last update timestamp"
    )

    @field_validator('created_at', 'updated_at')
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Task(PlannerRecord):
    """A task. Identity: (title, description)."""

    title: Optional[str] = ""
    description: Optional[str] = ""

    completed: bool = False
    archived: bool = False
    due_date: Optional[date] = None
    project_id: Optional[str] = None
    category_ids: list[str] = Field(default_factory=list)
    parent_task_id: Optional[str] = None
    priority: Optional[TaskPriority] = None
    recurring_task_id: Optional[str] = Field(
        default=None,
        description="Recurring template this task was generated from, if any"
    )
    completed_at: Optional[datetime] = None


class Project(PlannerRecord):
    """A project. Identity: (name, description)."""

    name: Optional[str] = ""
    description: Optional[str] = ""

    color: Optional[str] = None
    order: Optional[int] = None


class Category(PlannerRecord):
    """A category. Identity: (name, color)."""

    name: Optional[str] = ""
    color: Optional[str] = ""


# =============================================================================
# KIND TABLE
# =============================================================================

@dataclass(frozen=True)
class KindSpec:
    """
    Per-kind configuration for the engine.

    identity_fields is ordered: fingerprints join the fields in this order.
    """
    kind: EntityKind
    model: type[PlannerRecord]
    identity_fields: tuple[str, ...]
    display_field: str
    plural: str
    report_name_collisions: bool = False


KIND_SPECS: dict[EntityKind, KindSpec] = {
    EntityKind.TASK: KindSpec(
        kind=EntityKind.TASK,
        model=Task,
        identity_fields=("title", "description"),
        display_field="title",
        plural="tasks",
    ),
    EntityKind.PROJECT: KindSpec(
        kind=EntityKind.PROJECT,
        model=Project,
        identity_fields=("name", "description"),
        display_field="name",
        plural="projects",
        report_name_collisions=True,
    ),
    EntityKind.CATEGORY: KindSpec(
        kind=EntityKind.CATEGORY,
        model=Category,
        identity_fields=("name", "color"),
        display_field="name",
        plural="categories",
    ),
}


def get_kind_spec(kind: EntityKind) -> KindSpec:
    """Look up the configuration for an entity kind."""
    return KIND_SPECS[EntityKind(kind)]

"""Normalization of identity fields into comparable fingerprints."""

import re
from typing import Any

from task_planner.models.records import (
    FINGERPRINT_DELIMITER,
    EntityKind,
    PlannerRecord,
    get_kind_spec,
)

_WS_RE = re.compile(r"\s+")


def normalize(value: Any) -> str:
    """
    Canonical form of one identity field.

    None becomes "", anything else is coerced to str, then trimmed,
    lowercased, and every whitespace run collapsed to a single space.
    Never raises.
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    return _WS_RE.sub(" ", text.strip().lower()).strip()


def identity_values(record: PlannerRecord, kind: EntityKind) -> tuple[str, ...]:
    """Normalized identity fields of a record, in the kind's fixed order."""
    fields = get_kind_spec(kind).identity_fields
    return tuple(normalize(getattr(record, field, None)) for field in fields)


def fingerprint(record: PlannerRecord, kind: EntityKind) -> str:
    """Key under which a record is compared with others of the same kind."""
    return FINGERPRINT_DELIMITER.join(identity_values(record, kind))

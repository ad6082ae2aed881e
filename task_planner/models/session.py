"""Session-level models: who is signed in, and where the cleanup flow stands."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    """
    States of the duplicate cleanup session.

    IDLE → ANALYZING → GROUPS_FOUND | NO_DUPLICATES
    GROUPS_FOUND → CLEANING → COMPLETE | PARTIAL_FAILURE
    Any idle state → ERROR on a failed analysis or a signed-out cleanup.
    """
    IDLE = "idle"
    ANALYZING = "analyzing"
    GROUPS_FOUND = "groups_found"
    NO_DUPLICATES = "no_duplicates"
    CLEANING = "cleaning"
    COMPLETE = "complete"
    PARTIAL_FAILURE = "partial_failure"
    ERROR = "error"


class UserIdentity(BaseModel):
    """The signed-in user, as reported by the session provider."""

    id: str = Field(
        ...,
        min_length=1,
        description="User identifier"
    )
    email: Optional[str] = Field(
        default=None,
        description="User email, if known"
    )

"""Session provider package."""

from task_planner.services.auth.provider import (
    SessionProviderInterface,
    StaticSessionProvider,
)

__all__ = ["SessionProviderInterface", "StaticSessionProvider"]

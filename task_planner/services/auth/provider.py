"""
Session Providers

The engine never talks to an authentication service directly. It only
asks "who is signed in right now?" through this interface, and refuses
to delete anything when the answer is nobody.
"""

from abc import ABC, abstractmethod
from typing import Optional

from task_planner.config import get_settings
from task_planner.models.session import UserIdentity


class SessionProviderInterface(ABC):
    """Source of the current user identity."""

    @abstractmethod
    async def current_user(self) -> Optional[UserIdentity]:
        """
        Return the signed-in user, or None when signed out.

        Must not raise for a signed-out session.
        """
        pass


class StaticSessionProvider(SessionProviderInterface):
    """
    Session provider with a fixed (or manually switched) user.

    Useful for scripts, tests, and single-user deployments.
    """

    def __init__(self, user: Optional[UserIdentity] = None):
        self._user = user

    @classmethod
    def from_settings(cls) -> "StaticSessionProvider":
        """Build from PLANNER_USER_* settings; no id means signed out."""
        user_settings = get_settings().user
        if not user_settings.id:
            return cls(None)
        return cls(UserIdentity(id=user_settings.id, email=user_settings.email))

    def sign_in(self, user: UserIdentity) -> None:
        self._user = user

    def sign_out(self) -> None:
        self._user = None

    async def current_user(self) -> Optional[UserIdentity]:
        return self._user

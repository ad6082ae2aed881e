"""Pytest configuration and fixtures for the duplicate cleanup tests."""

from datetime import datetime, timedelta, timezone

import pytest

from task_planner.audit import AuditLogger
from task_planner.models import Category, Project, Task, UserIdentity
from task_planner.services.auth import StaticSessionProvider
from task_planner.services.storage import InMemoryAuditStorage


BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def at():
    """Timestamp `minutes` after a fixed base time."""
    def _at(minutes: int) -> datetime:
        return BASE_TIME + timedelta(minutes=minutes)
    return _at


@pytest.fixture
def make_task(at):
    def _make(title="", description="", minutes=0, **kwargs) -> Task:
        return Task(title=title, description=description, created_at=at(minutes), **kwargs)
    return _make


@pytest.fixture
def make_project(at):
    def _make(name="", description="", minutes=0, **kwargs) -> Project:
        return Project(name=name, description=description, created_at=at(minutes), **kwargs)
    return _make


@pytest.fixture
def make_category(at):
    def _make(name="", color="", minutes=0, **kwargs) -> Category:
        return Category(name=name, color=color, created_at=at(minutes), **kwargs)
    return _make


@pytest.fixture
def user() -> UserIdentity:
    return UserIdentity(id="user-1", email="user@example.com")


@pytest.fixture
def signed_in(user) -> StaticSessionProvider:
    return StaticSessionProvider(user)


@pytest.fixture
def signed_out() -> StaticSessionProvider:
    return StaticSessionProvider(None)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)

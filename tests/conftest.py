# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.
"""

import os

# Settings are read at import time
os.environ["ACCESS_STORE_BACKEND"] = "memory"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["ACCESS_TIMEZONE"] = "UTC"
os.environ["INVALID_ROLE_POLICY"] = "reject"

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from main import create_app
from core.access_control import AccessController
from core.config import settings
from core.memory_store import InMemoryAccessStore
from core.role_admin import RoleAdministrator
from dependencies.access import get_access_controller, get_access_store, get_role_admin
from models.enums import InvalidRolePolicy, Role


# Tuesday 2026-10-20 14:00 UTC
TUESDAY_2PM = datetime(2026, 10, 20, 14, 0, tzinfo=timezone.utc)
# Saturday 2026-10-24 14:00 UTC
SATURDAY_2PM = datetime(2026, 10, 24, 14, 0, tzinfo=timezone.utc)

FACILITY = "facility-001"
OTHER_FACILITY = "facility-002"


class FrozenClock:
    """Callable clock the tests can move."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(TUESDAY_2PM)


@pytest.fixture
def store() -> InMemoryAccessStore:
    """Empty in-memory store with a few seeded profiles."""
    store = InMemoryAccessStore(role_policy=InvalidRolePolicy.reject)
    store.add_user("national-user", Role.national)
    store.add_user("regional-user", Role.regional)
    store.add_user("zonal-user", Role.zonal)
    store.add_user("manager-user", Role.facility_manager)
    store.add_user("officer-user", Role.facility_officer)
    store.add_user("viewer-user", Role.viewer)
    return store


@pytest.fixture
def controller(store, clock) -> AccessController:
    return AccessController(store, clock=clock, tz="UTC")


@pytest.fixture
def admin(store, clock) -> RoleAdministrator:
    return RoleAdministrator(store, clock=clock)


@pytest.fixture(scope="function")
def app(store, controller, admin):
    """Create a test FastAPI application instance backed by the fixture store."""
    app = create_app()
    app.dependency_overrides[get_access_store] = lambda: store
    app.dependency_overrides[get_access_controller] = lambda: controller
    app.dependency_overrides[get_role_admin] = lambda: admin
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


def make_token(user_id: str, email: str = None) -> str:
    return jwt.encode(
        {"sub": user_id, "email": email, "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )


@pytest.fixture
def auth_headers():
    """auth_headers("zonal-user") → Authorization header for that user."""

    def build(user_id: str):
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return build

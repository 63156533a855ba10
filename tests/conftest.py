"""
Shared fixtures: isolated in-memory contexts, fake clocks and users.
"""
import asyncio

import httpx
import pytest

from kubekorea.core.config import Settings
from kubekorea.core.context import create_context
from kubekorea.rdb.client import create_session_factory
from kubekorea.schemas.user import User
from kubekorea.services.local_store import LocalStore


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides) -> Settings:
    values = dict(
        environment="test",
        database_url="sqlite://",
        api_base_url="http://testserver",
        api_timeout=5.0,
        api_retries=0,
        api_retry_delay=0.0,
        auth_secret="test-secret",
        admin_emails=["admin@example.com"],
        github_client_id="gh-client",
        github_client_secret="gh-secret",
    )
    values.update(overrides)
    return Settings(**values)


def make_context(transport: httpx.AsyncBaseTransport = None, **overrides):
    return create_context(make_settings(**overrides), transport=transport)


ALICE = User(id="github-1", email="alice@example.com", name="Alice", github_username="alice")
BOB = User(id="github-2", email="bob@example.com", name="Bob", github_username="bob")
ADMIN = User(id="github-99", email="admin@example.com", name="관리자", github_username="k8s-admin")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store():
    return LocalStore(create_session_factory("sqlite://"))


@pytest.fixture
def context():
    ctx = make_context()
    yield ctx
    asyncio.run(ctx.aclose())


@pytest.fixture
def service(context):
    """Local-only data service signed in as Alice."""
    return context.data_service.for_user(ALICE)


@pytest.fixture
def alice():
    return ALICE


@pytest.fixture
def bob():
    return BOB


@pytest.fixture
def admin():
    return ADMIN

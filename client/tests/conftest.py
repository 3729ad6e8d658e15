"""
Pytest fixtures for the fake remote API, the wired client, and signed-in users.

The client talks to an in-process FastAPI app through httpx.ASGITransport,
so every test runs the real transport, session and repository code without
a network.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport

from fake_api import FakeBackend, build_fake_api
from timeleft.core.config import Settings
from timeleft.main import TimeleftApp, build_app
from timeleft.schemas.user import LoginCredentials
from timeleft.services.interfaces.memory_token_store import MemoryTokenStore

PASSWORD = "secret123"


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        API_URL="http://test/api",
        RAZORPAY_KEY_ID="rzp_test_key",
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def member(backend: FakeBackend) -> dict:
    return backend.add_user("Ana", "ana@example.com", PASSWORD)


@pytest.fixture
def admin(backend: FakeBackend) -> dict:
    return backend.add_user("Rui", "rui@example.com", PASSWORD, role="admin")


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the event fetch backoff, in order."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]):
    async def sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return sleep


@pytest_asyncio.fixture(scope="function")
async def client(settings, backend, fake_sleep) -> AsyncGenerator[TimeleftApp, None]:
    """Fully wired client pointed at the fake API."""
    app = build_app(
        settings,
        token_store=MemoryTokenStore(),
        transport=ASGITransport(app=build_fake_api(backend)),
        sleep=fake_sleep,
    )
    yield app
    await app.events.wait_for_refresh()
    await app.icebreakers.wait_for_refresh()
    await app.aclose()


@pytest.fixture
def sign_in(client: TimeleftApp):
    """Log a seeded user in and wait for the caches to load."""

    async def _sign_in(user: dict) -> TimeleftApp:
        ok = await client.session.login(LoginCredentials(email=user["email"], password=PASSWORD))
        assert ok, client.session.error
        await client.events.wait_for_refresh()
        await client.icebreakers.wait_for_refresh()
        return client

    return _sign_in

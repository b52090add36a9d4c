"""Fixtures for API tests."""

import os

# Must be set before config is imported by the app
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from api.main import app  # noqa: E402
from api.session import InMemorySessionStore, set_session_store  # noqa: E402


@pytest.fixture
def store():
    """A fresh in-memory store installed as the global session store."""
    store = InMemorySessionStore()
    set_session_store(store)
    yield store
    set_session_store(None)


@pytest_asyncio.fixture
async def client(store):
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

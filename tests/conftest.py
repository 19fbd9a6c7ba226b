"""Root conftest: test infrastructure for all backend tests.

Provides:
- In-memory referral store (no network, no Supabase project needed)
- API client with the read-only client dependency overridden
"""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from tests.helpers.fake_supabase import FakeSupabaseClient
from tests.helpers.mock_factories import make_referral_store


@pytest.fixture
def referral_store() -> FakeSupabaseClient:
    """Partially-tracked referral data, fresh per test."""
    return make_referral_store()


@pytest.fixture
async def api_client(referral_store: FakeSupabaseClient):
    """HTTP client whose lookups read from referral_store.

    Overrides: get_read_client
    """
    from app.api.deps import get_read_client
    from app.main import app

    app.dependency_overrides[get_read_client] = lambda: referral_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def unconfigured_client():
    """HTTP client with no dependency overrides (real client factory)."""
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

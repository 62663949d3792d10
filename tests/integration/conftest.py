"""
Integration fixtures: a StorefrontApp wired to the in-memory backend
through httpx.ASGITransport, so no network or server process is needed.
"""

from collections.abc import AsyncIterator
from unittest.mock import Mock

import httpx
import pytest
import pytest_asyncio
from fake_backend import StoreState, create_app, seeded_state

from storefront.adapters.storage import MemoryTokenStore
from storefront.app import StorefrontApp
from storefront.config.settings import Settings


@pytest.fixture
def store() -> StoreState:
    return seeded_state()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, api_url="http://testserver/api", log_level="DEBUG")


@pytest.fixture
def client_notifier() -> Mock:
    return Mock(spec=["success", "error"])


@pytest_asyncio.fixture
async def storefront(
    store: StoreState, settings: Settings, client_notifier: Mock
) -> AsyncIterator[StorefrontApp]:
    """Started application backed by the fake API."""
    app = StorefrontApp(
        settings=settings,
        token_store=MemoryTokenStore(),
        notifier=client_notifier,
        transport=httpx.ASGITransport(app=create_app(store)),
    )
    async with app:
        yield app

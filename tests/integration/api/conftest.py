"""
Conftest for API integration tests
Defines fixtures specific to API testing

Note: These tests use ASGI transport against a per-test SQLite database.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from schoolguard.core.security import create_access_token
from schoolguard.main import app


@pytest_asyncio.fixture
async def client(database) -> AsyncClient:
    """
    Test HTTP client using ASGI transport
    ASGI transport doesn't trigger lifespan, so the database fixture initializes it
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def headers_for(make_user):
    """
    Factory returning bearer headers for a freshly created user
    Returns an async function(role, **user_kwargs) -> (user, headers)
    """

    async def _headers(role=None, **kwargs):
        user = await make_user(role, **kwargs)
        token = create_access_token({"sub": str(user.id), "role": role.value if role else None})
        return user, {"Authorization": f"Bearer {token}"}

    return _headers

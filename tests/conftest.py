"""
Shared fixtures for grant storage tests.
"""

import pytest
import pytest_asyncio

from grantstore.core.types import AccessGrant, AuthorizationGrant
from grantstore.store import MemoryGrantStorage, SqlGrantStorage


def sqlite_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'grants.db'}"


@pytest_asyncio.fixture
async def sql_storage(tmp_path):
    """SQL storage on a fresh SQLite database"""
    storage = SqlGrantStorage.from_url(sqlite_url(tmp_path))
    await storage.create_schemas()
    yield storage
    await storage.close()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def storage(request, tmp_path):
    """Every backend, so each behaviour is checked against both"""
    if request.param == "memory":
        yield MemoryGrantStorage()
        return
    storage = SqlGrantStorage.from_url(sqlite_url(tmp_path))
    await storage.create_schemas()
    yield storage
    await storage.close()


@pytest_asyncio.fixture
async def client(storage):
    return await storage.create_client("client-1", "s3cret", "https://app.example.com/cb")


@pytest_asyncio.fixture
async def authorization(storage, client):
    grant = AuthorizationGrant(
        code="code-1",
        client=client,
        expires_in=600,
        scope="read write",
        redirect_uri=client.redirect_uri,
        state="xyz",
    )
    await storage.save_authorize(grant)
    return grant


@pytest.fixture
def make_access(client, authorization):
    """Build an access grant redeemed from the shared authorization code"""
    def build(access_token, previous=None, refresh_token=""):
        return AccessGrant(
            access_token=access_token,
            client=client,
            authorization=authorization,
            previous=previous,
            refresh_token=refresh_token,
            expires_in=3600,
            scope="read",
            redirect_uri=client.redirect_uri,
        )
    return build

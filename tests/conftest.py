"""
Shared fixtures for the oauthdb test suite.

Behavior tests run once against the memory backend and once against the
SQL backend on a SQLite file.
"""

import os

import pytest
import pytest_asyncio

from oauthdb import OAuthDB, StoreConfig
from oauthdb.backend import MemoryBackend, SQLBackend

from .helpers import make_client, sqlite_url


@pytest.fixture(params=["memory", "sqlite"])
def backend_kind(request):
    return request.param


@pytest_asyncio.fixture
async def backend(backend_kind, tmp_path):
    """Connected backend of each kind"""
    if backend_kind == "memory":
        instance = MemoryBackend()
    else:
        instance = SQLBackend(sqlite_url(tmp_path))

    await instance.connect()
    yield instance
    await instance.close()


@pytest.fixture
def config():
    """Store configuration with fast retries"""
    return StoreConfig(removal_attempts=3, removal_initial_delay="1ms")


@pytest_asyncio.fixture
async def db(config, backend):
    """Connected store over each backend"""
    store = OAuthDB.new(config, backend=backend)
    await store.connect()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def client(db):
    """A registered client"""
    return await db.register_client(make_client())


@pytest.fixture
def mysql_url():
    url = os.environ.get("OAUTHDB_TEST_MYSQL_URL")
    if not url:
        pytest.skip("OAUTHDB_TEST_MYSQL_URL is not set")
    return url

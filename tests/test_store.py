"""
Tests for the store facade lifecycle, readiness probe and encoding report.
"""

import pytest

from oauthdb import OAuthDB, StoreConfig
from oauthdb.backend import MemoryBackend, SQLBackend
from oauthdb.errors import EncodingUnsupportedError, InvalidArgumentError, UnavailableError
from oauthdb.monitoring import HealthStatus

from .helpers import make_client, sqlite_url


class TestLifecycle:
    """Construction, connect and close"""

    def test_new_defaults_to_memory(self):
        db = OAuthDB.new()
        assert isinstance(db.backend, MemoryBackend)
        assert db.ready is False

    def test_new_validates_config(self):
        with pytest.raises(ValueError):
            OAuthDB.new(StoreConfig(driver="sql"))

    def test_new_builds_sql_backend(self, tmp_path):
        db = OAuthDB.new(StoreConfig(driver="sql", database_url=sqlite_url(tmp_path)))
        assert isinstance(db.backend, SQLBackend)

    @pytest.mark.asyncio
    async def test_connect_syncs_configured_clients(self, backend):
        configured = [make_client(name="Configured One"), make_client(name="Configured Two")]
        db = OAuthDB.new(StoreConfig(clients=configured), backend=backend)

        await db.connect()

        assert db.ready is True
        for data in configured:
            assert (await db.get_client(data["id"])).name == data["name"]

    @pytest.mark.asyncio
    async def test_reconnect_is_idempotent(self, backend):
        configured = [make_client()]
        db = OAuthDB.new(StoreConfig(clients=configured), backend=backend)
        await db.connect()
        before = await db.get_client(configured[0]["id"])

        await db.connect()

        assert await db.get_client(configured[0]["id"]) == before

    @pytest.mark.asyncio
    async def test_async_context_manager(self, tmp_path):
        config = StoreConfig(
            driver="sql",
            database_url=sqlite_url(tmp_path),
            clients=[make_client(id="0011223344556677")],
        )

        async with OAuthDB.new(config) as db:
            assert db.ready
            assert await db.get_client("0011223344556677") is not None

        assert db.ready is False
        with pytest.raises(UnavailableError):
            await db.ping()

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, tmp_path):
        config = StoreConfig(driver="sql", database_url=sqlite_url(tmp_path))

        async with OAuthDB.new(config) as db:
            developer = await db.activate_developer("dev@example.com")

        async with OAuthDB.new(config) as db:
            assert await db.get_developer("dev@example.com") == developer

    @pytest.mark.asyncio
    async def test_connect_fails_when_unavailable(self, tmp_path):
        config = StoreConfig(driver="sql", database_url=sqlite_url(tmp_path / "missing"))
        db = OAuthDB.new(config)

        with pytest.raises(UnavailableError):
            await db.connect()
        assert db.ready is False

    @pytest.mark.asyncio
    async def test_invalid_configured_client(self, backend):
        db = OAuthDB.new(StoreConfig(clients=[make_client(id="short")]), backend=backend)

        with pytest.raises(InvalidArgumentError):
            await db.connect()
        assert db.ready is False


class TestProbes:
    """Readiness and encoding"""

    @pytest.mark.asyncio
    async def test_ping(self, db):
        health = await db.ping()
        assert health.status == HealthStatus.HEALTHY
        assert health.to_dict()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_encoding_info(self, db, backend_kind):
        if backend_kind == "memory":
            with pytest.raises(EncodingUnsupportedError):
                await db.get_encoding_info()
        else:
            info = await db.get_encoding_info()
            assert info.is_utf8()
            assert info.to_dict()["character_set_connection"].lower() == "utf-8"


class TestMySQL:
    """Runs only against a live MySQL server"""

    @pytest.mark.asyncio
    async def test_mysql_encoding(self, mysql_url):
        async with OAuthDB.new(StoreConfig(driver="sql", database_url=mysql_url)) as db:
            info = await db.get_encoding_info()

        assert info.connection_charset == "utf8mb4"
        assert info.is_utf8()
        assert info.is_case_insensitive_unicode()

    @pytest.mark.asyncio
    async def test_mysql_unicode_and_case_sensitive_email(self, mysql_url):
        async with OAuthDB.new(StoreConfig(driver="sql", database_url=mysql_url)) as db:
            data = make_client(name="Düsseldorf 北京")
            await db.register_client(data)
            try:
                assert (await db.get_client(data["id"])).name == "Düsseldorf 北京"

                await db.activate_developer("Case@example.com")
                try:
                    await db.activate_developer("case@example.com")
                    assert await db.get_developer("CASE@example.com") is None
                finally:
                    await db.remove_developer("Case@example.com")
                    await db.remove_developer("case@example.com")
            finally:
                await db.remove_client(data["id"])

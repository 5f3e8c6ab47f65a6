"""
Tests for the storage backends and their transaction semantics.
"""

import pytest
from sqlalchemy.dialects import mysql
from sqlalchemy.schema import CreateTable

from oauthdb import StoreConfig
from oauthdb.backend import (
    CODES,
    DEVELOPERS,
    CLIENT_DEVELOPERS,
    Backend,
    MemoryBackend,
    SQLBackend,
    available_backends,
    build_metadata,
    create_backend,
    register_backend,
)
from oauthdb.common.utils import get_current_time
from oauthdb.errors import ConflictError, EncodingUnsupportedError, UnavailableError
from oauthdb.monitoring import HealthStatus


def code_row(code: bytes, user_id: bytes = b"\x01" * 16):
    return {
        "code": code,
        "client_id": b"\x02" * 8,
        "user_id": user_id,
        "email": "user@example.com",
        "scope": ["read", "write"],
        "ttl": 600,
        "created_at": get_current_time(),
    }


def developer_row(developer_id: bytes, email: str):
    return {"developer_id": developer_id, "email": email, "created_at": get_current_time()}


class TestBackendPrimitives:
    """Primitive operations behave the same on every backend"""

    @pytest.mark.asyncio
    async def test_put_and_get(self, backend):
        row = code_row(b"a" * 32)
        await backend.put(CODES, row)

        stored = await backend.get(CODES, b"a" * 32)
        assert stored == row

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, backend):
        assert await backend.get(CODES, b"z" * 32) is None

    @pytest.mark.asyncio
    async def test_duplicate_key_conflicts(self, backend):
        await backend.put(CODES, code_row(b"a" * 32))

        with pytest.raises(ConflictError) as exc_info:
            await backend.put(CODES, code_row(b"a" * 32))
        assert exc_info.value.kind == CODES

    @pytest.mark.asyncio
    async def test_unique_field_conflicts(self, backend):
        await backend.put(DEVELOPERS, developer_row(b"1" * 16, "dev@example.com"))

        with pytest.raises(ConflictError):
            await backend.put(DEVELOPERS, developer_row(b"2" * 16, "dev@example.com"))

    @pytest.mark.asyncio
    async def test_unique_field_group_conflicts(self, backend):
        await backend.put(CLIENT_DEVELOPERS, {"row_id": b"r" * 8, "developer_id": b"1" * 16, "client_id": b"c" * 8})

        with pytest.raises(ConflictError):
            await backend.put(CLIENT_DEVELOPERS, {"row_id": b"s" * 8, "developer_id": b"1" * 16, "client_id": b"c" * 8})

        await backend.put(CLIENT_DEVELOPERS, {"row_id": b"t" * 8, "developer_id": b"2" * 16, "client_id": b"c" * 8})
        assert len(await backend.find(CLIENT_DEVELOPERS, client_id=b"c" * 8)) == 2

    @pytest.mark.asyncio
    async def test_find_by_criteria(self, backend):
        await backend.put(CODES, code_row(b"a" * 32, user_id=b"\x01" * 16))
        await backend.put(CODES, code_row(b"b" * 32, user_id=b"\x01" * 16))
        await backend.put(CODES, code_row(b"c" * 32, user_id=b"\x03" * 16))

        found = await backend.find(CODES, user_id=b"\x01" * 16)
        assert sorted(r["code"] for r in found) == [b"a" * 32, b"b" * 32]

    @pytest.mark.asyncio
    async def test_update(self, backend):
        await backend.put(DEVELOPERS, developer_row(b"1" * 16, "old@example.com"))

        updated = await backend.update(DEVELOPERS, b"1" * 16, {"email": "new@example.com"})
        assert updated["email"] == "new@example.com"
        assert (await backend.get(DEVELOPERS, b"1" * 16))["email"] == "new@example.com"

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self, backend):
        assert await backend.update(DEVELOPERS, b"9" * 16, {"email": "x@example.com"}) is None

    @pytest.mark.asyncio
    async def test_update_cannot_change_key(self, backend):
        await backend.put(DEVELOPERS, developer_row(b"1" * 16, "dev@example.com"))

        with pytest.raises(ValueError):
            await backend.update(DEVELOPERS, b"1" * 16, {"developer_id": b"2" * 16})

    @pytest.mark.asyncio
    async def test_update_into_unique_collision(self, backend):
        await backend.put(DEVELOPERS, developer_row(b"1" * 16, "one@example.com"))
        await backend.put(DEVELOPERS, developer_row(b"2" * 16, "two@example.com"))

        with pytest.raises(ConflictError):
            await backend.update(DEVELOPERS, b"2" * 16, {"email": "one@example.com"})
        assert (await backend.get(DEVELOPERS, b"2" * 16))["email"] == "two@example.com"

    @pytest.mark.asyncio
    async def test_delete(self, backend):
        await backend.put(CODES, code_row(b"a" * 32))

        assert await backend.delete(CODES, b"a" * 32) is True
        assert await backend.delete(CODES, b"a" * 32) is False
        assert await backend.get(CODES, b"a" * 32) is None

    @pytest.mark.asyncio
    async def test_delete_where(self, backend):
        await backend.put(CODES, code_row(b"a" * 32, user_id=b"\x01" * 16))
        await backend.put(CODES, code_row(b"b" * 32, user_id=b"\x01" * 16))
        await backend.put(CODES, code_row(b"c" * 32, user_id=b"\x03" * 16))

        assert await backend.delete_where(CODES, "user_id", b"\x01" * 16) == 2
        assert await backend.delete_where(CODES, "user_id", b"\x01" * 16) == 0
        assert await backend.get(CODES, b"c" * 32) is not None

    @pytest.mark.asyncio
    async def test_unknown_kind(self, backend):
        with pytest.raises(KeyError):
            await backend.get("sessions", b"x")

    @pytest.mark.asyncio
    async def test_unknown_field(self, backend):
        with pytest.raises(KeyError):
            await backend.find(CODES, color="blue")


class TestTransactions:
    """Changes become visible together or not at all"""

    @pytest.mark.asyncio
    async def test_commit(self, backend):
        async with backend.transaction() as txn:
            await txn.put(CODES, code_row(b"a" * 32))
            await txn.put(CODES, code_row(b"b" * 32))

        assert await backend.get(CODES, b"a" * 32) is not None
        assert await backend.get(CODES, b"b" * 32) is not None

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, backend):
        await backend.put(CODES, code_row(b"keep" * 8))
        await backend.put(DEVELOPERS, developer_row(b"1" * 16, "dev@example.com"))

        with pytest.raises(RuntimeError):
            async with backend.transaction() as txn:
                await txn.put(CODES, code_row(b"a" * 32))
                await txn.delete(CODES, b"keep" * 8)
                await txn.update(DEVELOPERS, b"1" * 16, {"email": "changed@example.com"})
                raise RuntimeError("abort")

        assert await backend.get(CODES, b"a" * 32) is None
        assert await backend.get(CODES, b"keep" * 8) is not None
        assert (await backend.get(DEVELOPERS, b"1" * 16))["email"] == "dev@example.com"

    @pytest.mark.asyncio
    async def test_rollback_after_delete_where(self, backend):
        await backend.put(CODES, code_row(b"a" * 32))
        await backend.put(CODES, code_row(b"b" * 32))

        with pytest.raises(RuntimeError):
            async with backend.transaction() as txn:
                assert await txn.delete_where(CODES, "user_id", b"\x01" * 16) == 2
                raise RuntimeError("abort")

        assert len(await backend.find(CODES)) == 2

    @pytest.mark.asyncio
    async def test_reads_inside_transaction_see_own_writes(self, backend):
        async with backend.transaction() as txn:
            await txn.put(CODES, code_row(b"a" * 32))
            assert await txn.get(CODES, b"a" * 32) is not None


class TestHealthAndEncoding:
    """Readiness probe and encoding description"""

    @pytest.mark.asyncio
    async def test_ping(self, backend):
        health = await backend.ping()
        assert health.status == HealthStatus.HEALTHY
        assert health.healthy

    @pytest.mark.asyncio
    async def test_memory_encoding_unsupported(self):
        backend = MemoryBackend()
        with pytest.raises(EncodingUnsupportedError):
            await backend.describe_encoding()

    @pytest.mark.asyncio
    async def test_sqlite_encoding(self, tmp_path):
        backend = SQLBackend(f"sqlite+aiosqlite:///{tmp_path / 'enc.sqlite'}")
        await backend.connect()
        try:
            info = await backend.describe_encoding()
        finally:
            await backend.close()

        assert info.is_utf8()
        assert info.connection_collation == "BINARY"
        assert info.storage_collation == "BINARY"

    @pytest.mark.asyncio
    async def test_closed_memory_backend_unavailable(self):
        backend = MemoryBackend()
        await backend.close()

        with pytest.raises(UnavailableError):
            await backend.ping()
        with pytest.raises(UnavailableError):
            await backend.get(CODES, b"a" * 32)

        await backend.connect()
        assert (await backend.ping()).healthy

    @pytest.mark.asyncio
    async def test_unconnected_sql_backend_unavailable(self, tmp_path):
        backend = SQLBackend(f"sqlite+aiosqlite:///{tmp_path / 'idle.sqlite'}")

        with pytest.raises(UnavailableError):
            await backend.ping()
        with pytest.raises(UnavailableError):
            await backend.get(CODES, b"a" * 32)

    @pytest.mark.asyncio
    async def test_sql_connect_failure_unavailable(self, tmp_path):
        backend = SQLBackend(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'db.sqlite'}")

        with pytest.raises(UnavailableError):
            await backend.connect()

    @pytest.mark.asyncio
    async def test_memory_clear(self):
        backend = MemoryBackend()
        await backend.put(DEVELOPERS, developer_row(b"1" * 16, "dev@example.com"))
        await backend.clear()

        assert await backend.find(DEVELOPERS) == []
        await backend.put(DEVELOPERS, developer_row(b"2" * 16, "dev@example.com"))


class TestSQLSchema:
    """Relational table definitions"""

    def test_mysql_tables_use_configured_charset(self):
        metadata = build_metadata("utf8mb4", "utf8mb4_unicode_ci")
        ddl = str(CreateTable(metadata.tables["clients"]).compile(dialect=mysql.dialect()))

        assert "utf8mb4" in ddl
        assert "utf8mb4_unicode_ci" in ddl
        assert "BINARY(8)" in ddl

    def test_mysql_developer_email_is_binary_collated(self):
        metadata = build_metadata("utf8mb4", "utf8mb4_unicode_ci")
        ddl = str(CreateTable(metadata.tables["developers"]).compile(dialect=mysql.dialect()))

        assert "utf8mb4_bin" in ddl

    def test_rejects_unsafe_collation_name(self):
        with pytest.raises(ValueError):
            SQLBackend("sqlite+aiosqlite:///x.sqlite", collation="utf8mb4; DROP TABLE clients")

    def test_requires_database_url(self):
        with pytest.raises(ValueError):
            SQLBackend("")


class TestFactory:
    """Backend construction from configuration"""

    def test_create_memory_backend(self):
        assert isinstance(create_backend(StoreConfig()), MemoryBackend)

    def test_create_sql_backend(self, tmp_path):
        config = StoreConfig(
            driver="sql",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'f.sqlite'}",
            charset="utf8mb4",
            collation="utf8mb4_general_ci",
        )
        backend = create_backend(config)

        assert isinstance(backend, SQLBackend)
        assert backend.collation == "utf8mb4_general_ci"
        assert backend.dialect == "sqlite"

    def test_unknown_driver(self):
        config = StoreConfig()
        config.driver = "cassandra"
        with pytest.raises(ValueError):
            create_backend(config)

    def test_register_backend(self):
        class RecordingBackend(MemoryBackend):
            name = "recording"

        register_backend("recording", RecordingBackend)

        assert "recording" in available_backends()
        config = StoreConfig(driver="recording")
        config.validate()
        assert isinstance(create_backend(config), RecordingBackend)

    def test_register_rejects_non_backend(self):
        with pytest.raises(TypeError):
            register_backend("bogus", dict)

    def test_backend_is_abstract(self):
        with pytest.raises(TypeError):
            Backend()

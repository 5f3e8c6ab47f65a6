# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Relational storage backend built on SQLAlchemy's asyncio extension.

MySQL (``mysql+aiomysql://``) is the production target; SQLite
(``sqlite+aiosqlite://``) is supported for local use and tests.
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import (
    BINARY,
    Boolean,
    Column,
    DateTime,
    Integer,
    JSON,
    LargeBinary,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    and_,
    delete,
    event,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from .base import Backend, Transaction
from .schema import CLIENTS, CODES, TOKENS, DEVELOPERS, CLIENT_DEVELOPERS, get_schema
from ..core.types import EncodingInfo
from ..errors import ConflictError, EncodingUnsupportedError, UnavailableError
from ..monitoring.health import ComponentHealth, HealthStatus, HealthTimer


logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r'^[A-Za-z0-9_]+$')


def build_metadata(charset: str = "utf8mb4", collation: str = "utf8mb4_unicode_ci") -> MetaData:
    """
    Declare the store's tables.

    On MySQL every table defaults to ``charset``/``collation``; the
    developer email column uses the binary collation so its uniqueness is
    case-sensitive.
    """
    metadata = MetaData()
    table_options = {"mysql_charset": charset, "mysql_collate": collation}
    email_type = String(255).with_variant(
        mysql.VARCHAR(255, charset=charset, collation=f"{charset}_bin"), "mysql"
    )

    Table(
        CLIENTS, metadata,
        Column("id", BINARY(8), primary_key=True),
        Column("name", String(256), nullable=False),
        Column("hashed_secret", LargeBinary, nullable=True),
        Column("image_uri", String(256), nullable=True),
        Column("redirect_uri", String(256), nullable=False),
        Column("trusted", Boolean, nullable=False, default=False),
        Column("created_at", DateTime, nullable=False),
        **table_options,
    )

    Table(
        CODES, metadata,
        Column("code", BINARY(32), primary_key=True),
        Column("client_id", BINARY(8), nullable=False),
        Column("user_id", BINARY(16), nullable=False, index=True),
        Column("email", String(256), nullable=False),
        Column("scope", JSON, nullable=False),
        Column("ttl", Integer, nullable=False, default=0),
        Column("created_at", DateTime, nullable=False),
        **table_options,
    )

    Table(
        TOKENS, metadata,
        Column("token", BINARY(32), primary_key=True),
        Column("client_id", BINARY(8), nullable=False),
        Column("user_id", BINARY(16), nullable=False, index=True),
        Column("email", String(256), nullable=False),
        Column("scope", JSON, nullable=False),
        Column("type", String(16), nullable=False, default="bearer"),
        Column("created_at", DateTime, nullable=False),
        **table_options,
    )

    Table(
        DEVELOPERS, metadata,
        Column("developer_id", BINARY(16), primary_key=True),
        Column("email", email_type, nullable=False, unique=True),
        Column("created_at", DateTime, nullable=False),
        **table_options,
    )

    Table(
        CLIENT_DEVELOPERS, metadata,
        Column("row_id", BINARY(8), primary_key=True),
        Column("developer_id", BINARY(16), nullable=False, index=True),
        Column("client_id", BINARY(8), nullable=False, index=True),
        UniqueConstraint("developer_id", "client_id", name="uq_client_developer"),
        **table_options,
    )

    return metadata


class SQLTransaction(Transaction):
    """Transaction bound to one ``AsyncConnection`` inside ``engine.begin()``."""

    def __init__(self, conn: AsyncConnection, tables: Dict[str, Table]):
        self._conn = conn
        self._tables = tables

    def _table(self, kind: str):
        return get_schema(kind), self._tables[kind]

    async def _execute(self, kind: str, statement):
        try:
            return await self._conn.execute(statement)
        except IntegrityError as e:
            raise ConflictError(f"Duplicate entry for {kind}: {e.orig}", kind=kind, cause=e) from e

    async def put(self, kind: str, record: Dict[str, Any]) -> Dict[str, Any]:
        schema, table = self._table(kind)
        schema.check_fields(record)
        row = {f: record.get(f) for f in schema.fields}

        await self._execute(kind, insert(table).values(**row))
        return row

    async def update(self, kind: str, key: Any, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        schema, table = self._table(kind)
        schema.check_fields(changes)
        if schema.key in changes and changes[schema.key] != key:
            raise ValueError(f"Primary key of {kind} cannot be changed")

        if changes:
            await self._execute(
                kind, update(table).where(table.c[schema.key] == key).values(**changes)
            )
        return await self.get(kind, key)

    async def get(self, kind: str, key: Any) -> Optional[Dict[str, Any]]:
        schema, table = self._table(kind)
        result = await self._conn.execute(select(table).where(table.c[schema.key] == key))
        row = result.mappings().first()
        return dict(row) if row is not None else None

    async def find(self, kind: str, **criteria: Any) -> List[Dict[str, Any]]:
        schema, table = self._table(kind)
        schema.check_fields(criteria)
        statement = select(table)
        if criteria:
            statement = statement.where(and_(*[table.c[f] == v for f, v in criteria.items()]))

        result = await self._conn.execute(statement)
        return [dict(row) for row in result.mappings().all()]

    async def delete(self, kind: str, key: Any) -> bool:
        schema, table = self._table(kind)
        result = await self._execute(kind, delete(table).where(table.c[schema.key] == key))
        return result.rowcount > 0

    async def delete_where(self, kind: str, field: str, value: Any) -> int:
        schema, table = self._table(kind)
        schema.check_fields({field: value})
        result = await self._execute(kind, delete(table).where(table.c[field] == value))
        return result.rowcount


class SQLBackend(Backend):
    """
    Durable backend on a relational engine.

    Each transaction runs in ``engine.begin()``, committing on normal exit
    and rolling back on error. Connectivity failures surface as
    ``UnavailableError``, constraint violations as ``ConflictError``.
    """

    name = "sql"
    transaction_class = SQLTransaction

    def __init__(self,
                 database_url: str,
                 charset: str = "utf8mb4",
                 collation: str = "utf8mb4_unicode_ci",
                 pool_size: int = 5,
                 echo: bool = False,
                 create_tables: bool = True):
        if not database_url:
            raise ValueError("database_url is required for the sql backend")
        for value in (charset, collation):
            if not _IDENTIFIER.match(value):
                raise ValueError(f"Invalid charset or collation name: {value}")

        self.url = make_url(database_url)
        self.charset = charset
        self.collation = collation
        self.pool_size = pool_size
        self.echo = echo
        self.create_tables = create_tables

        self.metadata = build_metadata(charset, collation)
        self._tables = {table.name: table for table in self.metadata.sorted_tables}
        self._engine: Optional[AsyncEngine] = None

    @classmethod
    def from_config(cls, config) -> "SQLBackend":
        return cls(
            database_url=config.database_url,
            charset=config.charset,
            collation=config.collation,
            pool_size=config.pool_size,
            echo=config.echo,
        )

    @property
    def dialect(self) -> str:
        return self.url.get_backend_name()

    def _configure_mysql_session(self, dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute(f"SET NAMES {self.charset} COLLATE {self.collation}")
        cursor.close()

    async def connect(self) -> None:
        """Create the engine and, if configured, the tables."""
        if self._engine is not None:
            return

        engine_kwargs: Dict[str, Any] = {"echo": self.echo, "pool_pre_ping": True}
        if self.dialect == "mysql":
            engine_kwargs["connect_args"] = {"charset": self.charset}
        if self.dialect != "sqlite":
            engine_kwargs["pool_size"] = self.pool_size

        engine = create_async_engine(self.url, **engine_kwargs)
        if self.dialect == "mysql":
            event.listen(engine.sync_engine, "connect", self._configure_mysql_session)

        try:
            if self.create_tables:
                async with engine.begin() as conn:
                    await conn.run_sync(self.metadata.create_all)
        except (OperationalError, InterfaceError) as e:
            await engine.dispose()
            raise UnavailableError(f"Cannot connect to database: {e.orig or e}", cause=e) from e

        self._engine = engine
        logger.info(f"SQL backend connected to {self.url.render_as_string(hide_password=True)}")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("SQL backend closed")

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise UnavailableError("SQL backend is not connected")
        return self._engine

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLTransaction]:
        engine = self._require_engine()
        try:
            async with engine.begin() as conn:
                yield self.transaction_class(conn, self._tables)
        except (OperationalError, InterfaceError) as e:
            raise UnavailableError(f"Database unavailable: {e.orig or e}", cause=e) from e

    async def ping(self) -> ComponentHealth:
        timer = HealthTimer()
        engine = self._require_engine()
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OperationalError, InterfaceError) as e:
            raise UnavailableError(f"Database ping failed: {e.orig or e}", cause=e) from e

        return ComponentHealth(
            name=self.name,
            status=HealthStatus.HEALTHY,
            message="Database reachable",
            details={"dialect": self.dialect},
            duration_ms=timer.elapsed_ms(),
        )

    async def describe_encoding(self) -> EncodingInfo:
        engine = self._require_engine()
        try:
            async with engine.connect() as conn:
                if self.dialect == "mysql":
                    row = (await conn.execute(text(
                        "SELECT @@character_set_connection, @@character_set_database, "
                        "@@collation_connection, @@collation_database"
                    ))).one()
                    return EncodingInfo(
                        connection_charset=row[0],
                        storage_charset=row[1],
                        connection_collation=row[2],
                        storage_collation=row[3],
                    )

                if self.dialect == "sqlite":
                    encoding = (await conn.execute(text("PRAGMA encoding"))).scalar_one()
                    return EncodingInfo(
                        connection_charset=encoding,
                        storage_charset=encoding,
                        connection_collation="BINARY",
                        storage_collation="BINARY",
                    )
        except (OperationalError, InterfaceError) as e:
            raise UnavailableError(f"Database unavailable: {e.orig or e}", cause=e) from e

        raise EncodingUnsupportedError(f"Encoding information is not supported for {self.dialect}")

# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
In-memory storage backend.

Suitable for tests and ephemeral single-process deployments. All data is
lost when the process terminates.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple

from .base import Backend, Transaction
from .schema import SCHEMAS, EntitySchema, get_schema
from ..common.utils import deep_copy_dict
from ..errors import ConflictError, UnavailableError
from ..monitoring.health import ComponentHealth, HealthStatus, HealthTimer


logger = logging.getLogger(__name__)


class MemoryTransaction(Transaction):
    """
    Transaction over the memory backend's tables.

    The backend lock is held for the whole transaction. Every change is
    recorded in an undo log that ``rollback`` replays in reverse.
    """

    def __init__(self, backend: "MemoryBackend"):
        self._backend = backend
        self._undo: List[Callable[[], None]] = []

    def _table(self, kind: str) -> Tuple[EntitySchema, Dict[Any, Dict[str, Any]]]:
        schema = get_schema(kind)
        return schema, self._backend._tables[kind]

    def _index_keys(self, schema: EntitySchema, record: Dict[str, Any]) -> List[Tuple[Tuple[str, ...], tuple]]:
        return [(fields, tuple(record.get(f) for f in fields)) for fields in schema.unique]

    def _insert_row(self, schema: EntitySchema, row: Dict[str, Any]) -> None:
        key = schema.key_of(row)
        self._backend._tables[schema.kind][key] = row
        for fields, values in self._index_keys(schema, row):
            self._backend._indexes[schema.kind][fields][values] = key

    def _remove_row(self, schema: EntitySchema, key: Any) -> Dict[str, Any]:
        row = self._backend._tables[schema.kind].pop(key)
        for fields, values in self._index_keys(schema, row):
            self._backend._indexes[schema.kind][fields].pop(values, None)
        return row

    def _check_unique(self, schema: EntitySchema, row: Dict[str, Any], own_key: Any = None) -> None:
        for fields, values in self._index_keys(schema, row):
            holder = self._backend._indexes[schema.kind][fields].get(values)
            if holder is not None and holder != own_key:
                raise ConflictError(
                    f"Duplicate entry for {schema.kind} ({', '.join(fields)})",
                    kind=schema.kind,
                )

    async def put(self, kind: str, record: Dict[str, Any]) -> Dict[str, Any]:
        schema, table = self._table(kind)
        schema.check_fields(record)
        row = {f: record.get(f) for f in schema.fields}
        key = schema.key_of(row)

        if key in table:
            raise ConflictError(f"Duplicate entry for {kind} primary key", kind=kind)
        self._check_unique(schema, row)

        self._insert_row(schema, deep_copy_dict(row))
        self._undo.append(lambda: self._remove_row(schema, key))
        return deep_copy_dict(row)

    async def update(self, kind: str, key: Any, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        schema, table = self._table(kind)
        schema.check_fields(changes)
        if schema.key in changes and changes[schema.key] != key:
            raise ValueError(f"Primary key of {kind} cannot be changed")

        current = table.get(key)
        if current is None:
            return None

        updated = dict(current)
        updated.update(deep_copy_dict(changes))
        self._check_unique(schema, updated, own_key=key)

        self._remove_row(schema, key)
        self._insert_row(schema, updated)

        def restore():
            self._remove_row(schema, key)
            self._insert_row(schema, current)

        self._undo.append(restore)
        return deep_copy_dict(updated)

    async def get(self, kind: str, key: Any) -> Optional[Dict[str, Any]]:
        _, table = self._table(kind)
        row = table.get(key)
        return deep_copy_dict(row) if row is not None else None

    async def find(self, kind: str, **criteria: Any) -> List[Dict[str, Any]]:
        schema, table = self._table(kind)
        schema.check_fields(criteria)
        return [
            deep_copy_dict(row) for row in table.values()
            if all(row.get(f) == v for f, v in criteria.items())
        ]

    async def delete(self, kind: str, key: Any) -> bool:
        schema, table = self._table(kind)
        if key not in table:
            return False

        row = self._remove_row(schema, key)
        self._undo.append(lambda: self._insert_row(schema, row))
        return True

    async def delete_where(self, kind: str, field: str, value: Any) -> int:
        schema, table = self._table(kind)
        schema.check_fields({field: value})
        keys = [key for key, row in table.items() if row.get(field) == value]
        for key in keys:
            await self.delete(kind, key)
        return len(keys)

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()


class MemoryBackend(Backend):
    """
    In-memory backend implementation.

    Tables are plain dictionaries keyed by primary key, with one index per
    unique field group. A single ``asyncio.Lock`` serializes transactions,
    so a multi-row change is never observed half-applied.
    """

    name = "memory"
    transaction_class = MemoryTransaction

    def __init__(self):
        self._tables: Dict[str, Dict[Any, Dict[str, Any]]] = {kind: {} for kind in SCHEMAS}
        self._indexes: Dict[str, Dict[Tuple[str, ...], Dict[tuple, Any]]] = {
            kind: {fields: {} for fields in schema.unique}
            for kind, schema in SCHEMAS.items()
        }
        self._lock = asyncio.Lock()
        self._closed = False

    async def connect(self) -> None:
        self._closed = False
        logger.info("Memory backend ready")

    async def close(self) -> None:
        self._closed = True
        logger.info("Memory backend closed")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MemoryTransaction]:
        if self._closed:
            raise UnavailableError("Memory backend is closed")

        async with self._lock:
            txn = self.transaction_class(self)
            try:
                yield txn
            except BaseException:
                txn.rollback()
                raise

    async def ping(self) -> ComponentHealth:
        timer = HealthTimer()
        if self._closed:
            raise UnavailableError("Memory backend is closed")

        return ComponentHealth(
            name=self.name,
            status=HealthStatus.HEALTHY,
            message="Memory backend available",
            details={kind: len(table) for kind, table in self._tables.items()},
            duration_ms=timer.elapsed_ms(),
        )

    async def clear(self) -> None:
        """Remove every record from every table."""
        async with self._lock:
            for kind in self._tables:
                self._tables[kind].clear()
                for index in self._indexes[kind].values():
                    index.clear()
            logger.info("Cleared memory backend")

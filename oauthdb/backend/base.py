# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Storage backend interfaces.

A backend executes primitive keyed operations against a storage medium.
All primitives run inside a ``Transaction``; the single-operation helpers
on ``Backend`` open a transaction of their own.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Dict, List, Optional

from ..core.types import EncodingInfo
from ..errors import EncodingUnsupportedError
from ..monitoring.health import ComponentHealth


class Transaction(ABC):
    """
    A unit of work against a backend.

    Changes become visible to other callers only when the enclosing
    ``Backend.transaction()`` block exits normally; an exception rolls
    every change back.
    """

    @abstractmethod
    async def put(self, kind: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new record.

        Raises:
            ConflictError: If the key or a unique field group already exists
        """
        pass

    @abstractmethod
    async def update(self, kind: str, key: Any, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update fields of an existing record.

        Returns:
            The updated record, or None if no record has that key
        """
        pass

    @abstractmethod
    async def get(self, kind: str, key: Any) -> Optional[Dict[str, Any]]:
        """Point lookup by primary key."""
        pass

    @abstractmethod
    async def find(self, kind: str, **criteria: Any) -> List[Dict[str, Any]]:
        """Return every record whose fields equal all ``criteria``."""
        pass

    @abstractmethod
    async def delete(self, kind: str, key: Any) -> bool:
        """
        Delete by primary key.

        Returns:
            True if a record was deleted, False if none existed
        """
        pass

    @abstractmethod
    async def delete_where(self, kind: str, field: str, value: Any) -> int:
        """
        Delete every record whose ``field`` equals ``value``.

        Returns:
            Number of records deleted
        """
        pass


class Backend(ABC):
    """
    Abstract base class for storage backends.

    Implementations must be safe for concurrent use by many tasks.
    """

    name = "backend"

    @classmethod
    def from_config(cls, config) -> "Backend":
        """Construct the backend from a ``StoreConfig``."""
        return cls()

    async def connect(self) -> None:
        """Acquire any resources the backend needs."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[Transaction]:
        """
        Open a transaction.

        Usage:
            async with backend.transaction() as txn:
                await txn.delete_where("codes", "user_id", user_id)
                await txn.delete_where("tokens", "user_id", user_id)
        """
        pass

    @abstractmethod
    async def ping(self) -> ComponentHealth:
        """
        Readiness probe.

        Raises:
            UnavailableError: If the storage medium cannot be reached
        """
        pass

    async def describe_encoding(self) -> EncodingInfo:
        """
        Report charset and collation for connection and storage.

        Raises:
            EncodingUnsupportedError: If encoding has no meaning for this backend
        """
        raise EncodingUnsupportedError(f"Encoding information is not applicable to the {self.name} backend")

    async def put(self, kind: str, record: Dict[str, Any]) -> Dict[str, Any]:
        async with self.transaction() as txn:
            return await txn.put(kind, record)

    async def update(self, kind: str, key: Any, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self.transaction() as txn:
            return await txn.update(kind, key, changes)

    async def get(self, kind: str, key: Any) -> Optional[Dict[str, Any]]:
        async with self.transaction() as txn:
            return await txn.get(kind, key)

    async def find(self, kind: str, **criteria: Any) -> List[Dict[str, Any]]:
        async with self.transaction() as txn:
            return await txn.find(kind, **criteria)

    async def delete(self, kind: str, key: Any) -> bool:
        async with self.transaction() as txn:
            return await txn.delete(kind, key)

    async def delete_where(self, kind: str, field: str, value: Any) -> int:
        async with self.transaction() as txn:
            return await txn.delete_where(kind, field, value)

# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Developer accounts and their association with clients.
"""

import logging
from typing import Any, Dict, List, Optional

from ..backend.base import Backend
from ..backend.schema import CLIENTS, DEVELOPERS, CLIENT_DEVELOPERS
from ..common.utils import generate_secure_bytes, get_current_time
from ..errors import ConflictError, InvalidArgumentError, require
from ..util.encoding import CLIENT_ID_BYTES, DEVELOPER_ID_BYTES, encode_identifier


logger = logging.getLogger(__name__)


class DeveloperRegistry:
    """
    Owns Developer records and the Developer/Client association.

    Emails are compared exactly unless ``email_case_sensitive`` is False,
    in which case they are lowercased on write and on lookup.
    """

    def __init__(self, backend: Backend, email_case_sensitive: bool = True):
        self._backend = backend
        self.email_case_sensitive = email_case_sensitive

    def _normalize_email(self, email: Optional[str]) -> str:
        require(email, "Email is required", "email")
        if not isinstance(email, str):
            raise InvalidArgumentError("Email must be a string", field="email")
        return email if self.email_case_sensitive else email.lower()

    async def activate_developer(self, email: Optional[str]) -> Dict[str, Any]:
        """
        Create a developer account.

        Raises:
            InvalidArgumentError: If email is empty
            ConflictError: If a developer with this email already exists
        """
        email = self._normalize_email(email)
        row = {
            "developer_id": generate_secure_bytes(DEVELOPER_ID_BYTES),
            "email": email,
            "created_at": get_current_time(),
        }

        try:
            stored = await self._backend.put(DEVELOPERS, row)
        except ConflictError as e:
            raise ConflictError("Developer is already registered", kind=DEVELOPERS, cause=e) from e

        logger.info(f"Activated developer {encode_identifier(row['developer_id'])}")
        return stored

    async def get_developer(self, email: Optional[str]) -> Optional[Dict[str, Any]]:
        email = self._normalize_email(email)
        rows = await self._backend.find(DEVELOPERS, email=email)
        return rows[0] if rows else None

    async def remove_developer(self, email: Optional[str]) -> bool:
        """Delete the developer and its client associations. Missing developers are not an error."""
        email = self._normalize_email(email)

        async with self._backend.transaction() as txn:
            rows = await txn.find(DEVELOPERS, email=email)
            if not rows:
                return False

            developer_id = rows[0]["developer_id"]
            await txn.delete_where(CLIENT_DEVELOPERS, "developer_id", developer_id)
            await txn.delete(DEVELOPERS, developer_id)

        logger.info(f"Removed developer {encode_identifier(developer_id)}")
        return True

    async def register_client_developer(self, developer_id: bytes, client_id: bytes) -> bool:
        """
        Associate a developer with a client.

        Returns:
            True if the association was created, False if it already existed
        """
        require(developer_id, "developer_id is required", "developer_id")
        require(client_id, "client_id is required", "client_id")

        try:
            async with self._backend.transaction() as txn:
                if await txn.find(CLIENT_DEVELOPERS, developer_id=developer_id, client_id=client_id):
                    return False
                await txn.put(CLIENT_DEVELOPERS, {
                    "row_id": generate_secure_bytes(CLIENT_ID_BYTES),
                    "developer_id": developer_id,
                    "client_id": client_id,
                })
        except ConflictError:
            logger.debug("Client developer association created concurrently")
            return False

        logger.info(
            f"Developer {encode_identifier(developer_id)} registered for client {encode_identifier(client_id)}"
        )
        return True

    async def get_client_developers(self, client_id: bytes) -> List[Dict[str, Any]]:
        """Developers associated with ``client_id``, ordered by email."""
        require(client_id, "client_id is required", "client_id")

        developers = []
        async with self._backend.transaction() as txn:
            for link in await txn.find(CLIENT_DEVELOPERS, client_id=client_id):
                developer = await txn.get(DEVELOPERS, link["developer_id"])
                if developer is not None:
                    developers.append(developer)

        return sorted(developers, key=lambda d: d["email"])

    async def developer_owns_client(self, email: Optional[str], client_id: bytes) -> bool:
        developer = await self.get_developer(email)
        if developer is None:
            return False

        links = await self._backend.find(
            CLIENT_DEVELOPERS, developer_id=developer["developer_id"], client_id=client_id
        )
        return bool(links)

    async def get_developer_clients(self, email: Optional[str]) -> List[Dict[str, Any]]:
        """Clients the developer is associated with, ordered by name."""
        email = self._normalize_email(email)

        clients = []
        async with self._backend.transaction() as txn:
            rows = await txn.find(DEVELOPERS, email=email)
            if not rows:
                return []
            for link in await txn.find(CLIENT_DEVELOPERS, developer_id=rows[0]["developer_id"]):
                client = await txn.get(CLIENTS, link["client_id"])
                if client is not None:
                    clients.append(client)

        return sorted(clients, key=lambda c: c["name"])

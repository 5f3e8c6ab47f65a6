# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Client registration and configuration sync.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from ..backend.base import Backend
from ..backend.schema import CLIENTS, get_schema
from ..common.utils import get_current_time
from ..errors import ConflictError, InvalidArgumentError, require
from ..util.encoding import CLIENT_ID_BYTES, encode_identifier


logger = logging.getLogger(__name__)

INSERTED = "inserted"
UPDATED = "updated"
UNCHANGED = "unchanged"

SYNC_FIELDS = ("name", "image_uri", "redirect_uri", "trusted")


class ClientRegistry:
    """
    Owns Client records.

    Identifiers are handled in binary form; hex conversion happens in the
    store facade.
    """

    def __init__(self, backend: Backend):
        self._backend = backend

    def _build_row(self, data: Dict[str, Any]) -> Dict[str, Any]:
        client_id = require(data.get("id"), "Client id is required", "id")
        if not isinstance(client_id, bytes) or len(client_id) != CLIENT_ID_BYTES:
            raise InvalidArgumentError(f"Client id must be {CLIENT_ID_BYTES} bytes", field="id")

        hashed_secret = data.get("hashed_secret")
        if hashed_secret is not None and not isinstance(hashed_secret, bytes):
            raise InvalidArgumentError("hashed_secret must be bytes", field="hashed_secret")

        return {
            "id": client_id,
            "name": require(data.get("name"), "Client name is required", "name"),
            "hashed_secret": hashed_secret,
            "image_uri": data.get("image_uri") or "",
            "redirect_uri": require(data.get("redirect_uri"), "Client redirect_uri is required", "redirect_uri"),
            "trusted": bool(data.get("trusted", False)),
        }

    async def register_client(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new client.

        Raises:
            InvalidArgumentError: If a required field is missing
            ConflictError: If a client with the same id exists
        """
        row = self._build_row(data)
        row["created_at"] = get_current_time()

        try:
            stored = await self._backend.put(CLIENTS, row)
        except ConflictError as e:
            raise ConflictError(
                f"Client {encode_identifier(row['id'])} already exists", kind=CLIENTS, cause=e
            ) from e

        logger.info(f"Registered client {encode_identifier(row['id'])}")
        return stored

    async def get_client(self, client_id: bytes) -> Optional[Dict[str, Any]]:
        return await self._backend.get(CLIENTS, client_id)

    async def update_client(self, client_id: bytes, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update mutable fields of an existing client; None if it does not exist."""
        mutable = get_schema(CLIENTS).mutable
        unknown = set(changes) - set(mutable)
        if unknown:
            raise InvalidArgumentError(
                f"Client fields cannot be updated: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )
        for name in ("name", "redirect_uri"):
            if name in changes:
                require(changes[name], f"Client {name} is required", name)
        if "trusted" in changes:
            changes = dict(changes, trusted=bool(changes["trusted"]))

        updated = await self._backend.update(CLIENTS, client_id, changes)
        if updated is not None:
            logger.info(f"Updated client {encode_identifier(client_id)}")
        return updated

    async def remove_client(self, client_id: bytes) -> bool:
        """Delete the client row only. Codes and tokens issued to it are kept."""
        removed = await self._backend.delete(CLIENTS, client_id)
        if removed:
            logger.info(f"Removed client {encode_identifier(client_id)}")
        return removed

    async def sync_configured_clients(self, descriptors: Iterable[Dict[str, Any]]) -> Dict[bytes, str]:
        """
        Reconcile stored clients with configured descriptors.

        Absent clients are inserted. Existing ones get their mutable fields
        (and ``hashed_secret``, when the descriptor carries one) brought in
        line with the descriptor, each client in its own transaction.

        Returns:
            Outcome per client id, in descriptor order
        """
        rows = [self._build_row(data) for data in descriptors]

        outcomes: Dict[bytes, str] = {}
        for row in rows:
            outcomes[row["id"]] = await self._sync_one(row)

        counts = {o: list(outcomes.values()).count(o) for o in (INSERTED, UPDATED, UNCHANGED)}
        logger.info(
            f"Synced {len(outcomes)} configured clients "
            f"({counts[INSERTED]} inserted, {counts[UPDATED]} updated, {counts[UNCHANGED]} unchanged)"
        )
        return outcomes

    async def _sync_one(self, row: Dict[str, Any]) -> str:
        fields = SYNC_FIELDS + (("hashed_secret",) if row["hashed_secret"] is not None else ())

        # A concurrent sync may insert between our lookup and insert; the
        # second pass then sees the row and updates it.
        for attempt in range(2):
            try:
                async with self._backend.transaction() as txn:
                    current = await txn.get(CLIENTS, row["id"])
                    if current is None:
                        await txn.put(CLIENTS, dict(row, created_at=get_current_time()))
                        return INSERTED

                    changes = {f: row[f] for f in fields if current.get(f) != row[f]}
                    if not changes:
                        return UNCHANGED

                    await txn.update(CLIENTS, row["id"], changes)
                    logger.debug(
                        f"Client {encode_identifier(row['id'])} changed: {', '.join(sorted(changes))}"
                    )
                    return UPDATED
            except ConflictError:
                if attempt:
                    raise
                logger.warning(f"Client {encode_identifier(row['id'])} inserted concurrently; retrying sync")

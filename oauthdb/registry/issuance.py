# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Authorization code and token issuance.

Code and token values are random hex strings handed to the caller once.
Only their SHA-256 digest is persisted, so lookups hash the presented
value before reading.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..backend.base import Backend
from ..backend.schema import CODES, TOKENS
from ..common.utils import generate_secure_hex, get_current_time, hash_value
from ..errors import (
    ConflictError,
    ErrorSource,
    InternalError,
    InvalidArgumentError,
    UnavailableError,
    require,
)
from ..resilience.patterns import Retry, RetryConfig
from ..util.encoding import encode_identifier
from .clients import ClientRegistry


logger = logging.getLogger(__name__)

ScopeInput = Union[str, List[str], Tuple[str, ...], None]


def _normalize_scope(scope: ScopeInput) -> List[str]:
    if scope is None:
        return []
    if isinstance(scope, str):
        return scope.split()
    if not all(isinstance(s, str) for s in scope):
        raise InvalidArgumentError("Scope entries must be strings", field="scope")
    return list(scope)


def _require_value(value: Any, field: str) -> str:
    require(value, f"{field} is required", field)
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field} must be a string", field=field)
    return value


class IssuanceStore:
    """
    Owns AuthorizationCode and Token records.

    Args:
        backend: Storage backend
        clients: Registry used to check that the issuing client exists
        token_bytes: Random bytes per generated value
        generation_attempts: Insert attempts before generation gives up
        removal_retry: Retry policy for the cascading user removal
        generator: Produces a candidate value from a byte count
    """

    def __init__(self,
                 backend: Backend,
                 clients: ClientRegistry,
                 token_bytes: int = 32,
                 generation_attempts: int = 5,
                 removal_retry: Optional[RetryConfig] = None,
                 generator: Callable[[int], str] = generate_secure_hex):
        self._backend = backend
        self._clients = clients
        self.token_bytes = token_bytes
        self.generation_attempts = generation_attempts
        self.removal_retry = removal_retry or RetryConfig(retryable_exceptions=[UnavailableError])
        self._generator = generator

    async def _check_grant(self, client_id: bytes, user_id: bytes) -> None:
        require(client_id, "client_id is required", "client_id")
        require(user_id, "user_id is required", "user_id")
        if await self._clients.get_client(client_id) is None:
            raise InvalidArgumentError(
                f"Unknown client {encode_identifier(client_id)}", field="client_id"
            )

    async def _issue(self, kind: str, key: str, record: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        """Insert ``record`` under a freshly generated value, regenerating on collision."""
        for attempt in range(1, self.generation_attempts + 1):
            value = self._generator(self.token_bytes)
            row = dict(record, **{key: hash_value(value)})
            try:
                stored = await self._backend.put(kind, row)
                return value, stored
            except ConflictError:
                logger.warning(
                    f"Generated {key} collided (attempt {attempt}/{self.generation_attempts}); regenerating"
                )

        logger.error(f"Could not generate a unique {key} after {self.generation_attempts} attempts")
        raise InternalError(
            f"Could not generate a unique {key} after {self.generation_attempts} attempts",
            source=ErrorSource.GENERATION,
        )

    async def generate_code(self,
                            client_id: bytes,
                            user_id: bytes,
                            email: str,
                            scope: ScopeInput = None,
                            ttl: int = 0) -> Tuple[str, Dict[str, Any]]:
        """
        Issue an authorization code.

        ``ttl`` is a whole number of seconds; integral floats such as
        ``600.0`` are accepted.

        Returns:
            The code value for the caller and the stored row
        """
        await self._check_grant(client_id, user_id)
        if isinstance(ttl, float) and ttl.is_integer():
            ttl = int(ttl)
        if not isinstance(ttl, int) or isinstance(ttl, bool) or ttl < 0:
            raise InvalidArgumentError("ttl must be a non-negative whole number of seconds", field="ttl")

        value, stored = await self._issue(CODES, "code", {
            "client_id": client_id,
            "user_id": user_id,
            "email": email or "",
            "scope": _normalize_scope(scope),
            "ttl": ttl,
            "created_at": get_current_time(),
        })
        logger.debug(f"Issued code for client {encode_identifier(client_id)}, user {encode_identifier(user_id)}")
        return value, stored

    async def get_code(self, code: str) -> Optional[Dict[str, Any]]:
        return await self._backend.get(CODES, hash_value(_require_value(code, "code")))

    async def remove_code(self, code: str) -> bool:
        return await self._backend.delete(CODES, hash_value(_require_value(code, "code")))

    async def generate_token(self,
                             client_id: bytes,
                             user_id: bytes,
                             email: str,
                             scope: ScopeInput = None) -> Tuple[str, Dict[str, Any]]:
        """Issue a bearer token. Returns the token value and the stored row."""
        await self._check_grant(client_id, user_id)

        value, stored = await self._issue(TOKENS, "token", {
            "client_id": client_id,
            "user_id": user_id,
            "email": email or "",
            "scope": _normalize_scope(scope),
            "type": "bearer",
            "created_at": get_current_time(),
        })
        logger.debug(f"Issued token for client {encode_identifier(client_id)}, user {encode_identifier(user_id)}")
        return value, stored

    async def get_token(self, token: str) -> Optional[Dict[str, Any]]:
        return await self._backend.get(TOKENS, hash_value(_require_value(token, "token")))

    async def remove_token(self, token: str) -> bool:
        return await self._backend.delete(TOKENS, hash_value(_require_value(token, "token")))

    async def _remove_user_once(self, user_id: bytes) -> Dict[str, int]:
        async with self._backend.transaction() as txn:
            codes = await txn.delete_where(CODES, "user_id", user_id)
            tokens = await txn.delete_where(TOKENS, "user_id", user_id)
        return {"codes": codes, "tokens": tokens}

    async def remove_user(self, user_id: bytes) -> Dict[str, int]:
        """
        Delete every code and token of ``user_id`` in one transaction.

        The transaction is retried while the backend is unavailable. When
        the retry budget runs out, or anything else fails, the transaction
        has been rolled back and ``InternalError`` is raised.

        Returns:
            Number of codes and tokens removed
        """
        require(user_id, "user_id is required", "user_id")
        retry = Retry(self.removal_retry)

        try:
            counts = await retry.execute(self._remove_user_once, user_id)
        except Exception as e:
            logger.error(
                f"Removing user {encode_identifier(user_id)} failed after {retry.attempts} attempts: {e}"
            )
            raise InternalError(
                f"Could not remove codes and tokens of user {encode_identifier(user_id)}", cause=e
            ) from e

        logger.info(
            f"Removed user {encode_identifier(user_id)}: "
            f"{counts['codes']} codes, {counts['tokens']} tokens"
        )
        return counts

"""
Store facade for the OAuth persistence core.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.
"""

from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from .config import StoreConfig
from .types import AuthorizationCode, Client, Developer, EncodingInfo, Token
from ..backend.base import Backend
from ..backend.factory import create_backend
from ..errors import InvalidArgumentError, UnavailableError
from ..monitoring.health import ComponentHealth
from ..registry.clients import ClientRegistry
from ..registry.developers import DeveloperRegistry
from ..registry.issuance import IssuanceStore, ScopeInput
from ..resilience.patterns import RetryConfig
from ..util.config import normalize_config_keys
from ..util.encoding import (
    CLIENT_ID_BYTES,
    DEVELOPER_ID_BYTES,
    USER_ID_BYTES,
    decode_identifier,
    encode_identifier,
)

Identifier = Union[str, bytes]

CLIENT_FIELDS = ("id", "name", "hashed_secret", "image_uri", "redirect_uri", "trusted")


class OAuthDB:
    """
    Single entry point to clients, codes, tokens and developers.

    Identifiers cross this boundary as lowercase hex text and are stored as
    fixed-length bytes. Use OAuthDB.new() to construct an instance, then
    ``await connect()`` before serving traffic.
    """

    def __init__(self, config: StoreConfig, backend: Backend):
        """
        Initialize the store.

        Args:
            config: Store configuration
            backend: Storage backend, connected by ``connect()``
        """
        self.config = config
        self.backend = backend
        self.clients = ClientRegistry(backend)
        self.issuance = IssuanceStore(
            backend,
            self.clients,
            token_bytes=config.token_bytes,
            generation_attempts=config.generation_attempts,
            removal_retry=RetryConfig(
                max_attempts=config.removal_attempts,
                initial_delay=config.removal_initial_delay,
                retryable_exceptions=[UnavailableError],
            ),
        )
        self.developers = DeveloperRegistry(backend, email_case_sensitive=config.email_case_sensitive)
        self.logger = logging.getLogger(__name__)
        self._ready = False

    @classmethod
    def new(cls, config: Optional[StoreConfig] = None, backend: Optional[Backend] = None) -> "OAuthDB":
        """
        Create a store from configuration.

        Args:
            config: Store configuration (defaults to the memory driver)
            backend: Backend to use instead of the one ``config.driver`` names

        Raises:
            ValueError: If configuration is invalid

        Example:
            async with OAuthDB.new(StoreConfig(driver="sql", database_url=url)) as db:
                client = await db.get_client("0123456789abcdef")
        """
        config = config or StoreConfig()
        config.validate()
        return cls(config, backend or create_backend(config))

    @property
    def ready(self) -> bool:
        return self._ready

    async def connect(self) -> None:
        """Connect the backend, probe it and sync configured clients."""
        await self.backend.connect()
        await self.ping()
        outcomes = await self.sync_configured_clients(self.config.clients)
        self._ready = True
        self.logger.info(f"Store ready on {self.backend.name} backend with {len(outcomes)} configured clients")

    async def close(self) -> None:
        self._ready = False
        await self.backend.close()

    async def __aenter__(self) -> "OAuthDB":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _client_descriptor(self, data: Dict[str, Any]) -> Dict[str, Any]:
        values = normalize_config_keys(data)
        unknown = set(values) - set(CLIENT_FIELDS)
        if unknown:
            raise InvalidArgumentError(
                f"Unknown client fields: {', '.join(sorted(unknown))}", field=sorted(unknown)[0]
            )

        values["id"] = decode_identifier(values.get("id"), "id", CLIENT_ID_BYTES)
        if values.get("hashed_secret") is not None:
            values["hashed_secret"] = decode_identifier(values["hashed_secret"], "hashed_secret")
        return values

    # Clients

    async def register_client(self, data: Dict[str, Any]) -> Client:
        stored = await self.clients.register_client(self._client_descriptor(data))
        return Client.from_row(stored)

    async def get_client(self, client_id: Identifier) -> Optional[Client]:
        row = await self.clients.get_client(decode_identifier(client_id, "client_id", CLIENT_ID_BYTES))
        return Client.from_row(row) if row else None

    async def update_client(self, client_id: Identifier, changes: Dict[str, Any]) -> Optional[Client]:
        changes = normalize_config_keys(changes)
        if changes.get("hashed_secret") is not None:
            changes["hashed_secret"] = decode_identifier(changes["hashed_secret"], "hashed_secret")

        row = await self.clients.update_client(
            decode_identifier(client_id, "client_id", CLIENT_ID_BYTES), changes
        )
        return Client.from_row(row) if row else None

    async def remove_client(self, client_id: Identifier) -> bool:
        return await self.clients.remove_client(decode_identifier(client_id, "client_id", CLIENT_ID_BYTES))

    async def sync_configured_clients(self, descriptors: Iterable[Dict[str, Any]]) -> Dict[str, str]:
        """
        Insert or update configured clients.

        Returns:
            Mapping of hex client id to ``inserted``, ``updated`` or ``unchanged``
        """
        outcomes = await self.clients.sync_configured_clients(
            [self._client_descriptor(d) for d in descriptors]
        )
        return {encode_identifier(k): v for k, v in outcomes.items()}

    # Codes and tokens

    async def generate_code(self,
                            client_id: Identifier,
                            user_id: Identifier,
                            email: str,
                            scope: ScopeInput = None,
                            ttl: int = 0) -> str:
        """Issue an authorization code and return its value."""
        value, _ = await self.issuance.generate_code(
            decode_identifier(client_id, "client_id", CLIENT_ID_BYTES),
            decode_identifier(user_id, "user_id", USER_ID_BYTES),
            email,
            scope,
            ttl,
        )
        return value

    async def get_code(self, code: str) -> Optional[AuthorizationCode]:
        row = await self.issuance.get_code(code)
        return AuthorizationCode.from_row(row, value=code) if row else None

    async def remove_code(self, code: str) -> bool:
        return await self.issuance.remove_code(code)

    async def generate_token(self, data: Dict[str, Any]) -> Token:
        """
        Issue a bearer token.

        Args:
            data: ``client_id``, ``user_id``, ``email`` and ``scope`` (camelCase keys accepted)

        Returns:
            The stored token, carrying the token value
        """
        values = normalize_config_keys(data)
        value, row = await self.issuance.generate_token(
            decode_identifier(values.get("client_id"), "client_id", CLIENT_ID_BYTES),
            decode_identifier(values.get("user_id"), "user_id", USER_ID_BYTES),
            values.get("email"),
            values.get("scope"),
        )
        return Token.from_row(row, value=value)

    async def get_token(self, token: str) -> Optional[Token]:
        row = await self.issuance.get_token(token)
        return Token.from_row(row, value=token) if row else None

    async def remove_token(self, token: str) -> bool:
        return await self.issuance.remove_token(token)

    async def remove_user(self, user_id: Identifier) -> Dict[str, int]:
        return await self.issuance.remove_user(decode_identifier(user_id, "user_id", USER_ID_BYTES))

    # Developers

    async def activate_developer(self, email: Optional[str] = None) -> Developer:
        return Developer.from_row(await self.developers.activate_developer(email))

    async def get_developer(self, email: Optional[str] = None) -> Optional[Developer]:
        row = await self.developers.get_developer(email)
        return Developer.from_row(row) if row else None

    async def remove_developer(self, email: Optional[str] = None) -> bool:
        return await self.developers.remove_developer(email)

    async def register_client_developer(self, developer_id: Identifier, client_id: Identifier) -> bool:
        return await self.developers.register_client_developer(
            decode_identifier(developer_id, "developer_id", DEVELOPER_ID_BYTES),
            decode_identifier(client_id, "client_id", CLIENT_ID_BYTES),
        )

    async def get_client_developers(self, client_id: Identifier) -> List[Developer]:
        rows = await self.developers.get_client_developers(
            decode_identifier(client_id, "client_id", CLIENT_ID_BYTES)
        )
        return [Developer.from_row(row) for row in rows]

    async def developer_owns_client(self, email: str, client_id: Identifier) -> bool:
        return await self.developers.developer_owns_client(
            email, decode_identifier(client_id, "client_id", CLIENT_ID_BYTES)
        )

    async def get_developer_clients(self, email: str) -> List[Client]:
        return [Client.from_row(row) for row in await self.developers.get_developer_clients(email)]

    # Backend

    async def ping(self) -> ComponentHealth:
        """
        Readiness probe.

        Raises:
            UnavailableError: If the backend cannot be reached
        """
        return await self.backend.ping()

    async def get_encoding_info(self) -> EncodingInfo:
        """
        Report the backend's charset and collation.

        Raises:
            EncodingUnsupportedError: For backends without a text encoding
        """
        return await self.backend.describe_encoding()

# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Record types returned by the store facade.

Identifier fields hold lowercase hex text; the binary forms only exist
below the facade, inside the registries and backends.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..common.utils import get_current_time
from ..util.encoding import encode_identifier


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Client:
    """A registered OAuth relying-party application."""

    id: str
    name: str
    hashed_secret: Optional[str] = None
    image_uri: str = ""
    redirect_uri: str = ""
    trusted: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Client":
        return cls(
            id=encode_identifier(row["id"]),
            name=row["name"],
            hashed_secret=encode_identifier(row.get("hashed_secret")),
            image_uri=row.get("image_uri") or "",
            redirect_uri=row["redirect_uri"],
            trusted=bool(row.get("trusted")),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _iso(self.created_at)
        return data


@dataclass
class AuthorizationCode:
    """
    A short-lived code exchanged for a token.

    ``ttl`` is metadata only; whether a code is still usable is decided
    by the caller, for example with ``is_expired()``.
    """

    code: str
    client_id: str
    user_id: str
    email: str
    scope: List[str] = field(default_factory=list)
    ttl: int = 0
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any], value: Optional[str] = None) -> "AuthorizationCode":
        return cls(
            code=value or encode_identifier(row["code"]),
            client_id=encode_identifier(row["client_id"]),
            user_id=encode_identifier(row["user_id"]),
            email=row["email"],
            scope=list(row.get("scope") or []),
            ttl=int(row.get("ttl") or 0),
            created_at=row.get("created_at"),
        )

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.created_at is None:
            return None
        return self.created_at + timedelta(seconds=self.ttl)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        expires_at = self.expires_at
        if expires_at is None:
            return False
        return (now or get_current_time()) >= expires_at

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _iso(self.created_at)
        return data


@dataclass
class Token:
    """An access grant issued to a client on behalf of a user."""

    token: str
    client_id: str
    user_id: str
    email: str
    scope: List[str] = field(default_factory=list)
    type: str = "bearer"
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any], value: Optional[str] = None) -> "Token":
        return cls(
            token=value or encode_identifier(row["token"]),
            client_id=encode_identifier(row["client_id"]),
            user_id=encode_identifier(row["user_id"]),
            email=row["email"],
            scope=list(row.get("scope") or []),
            type=row.get("type") or "bearer",
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _iso(self.created_at)
        return data


@dataclass
class Developer:
    """An account owning one or more clients."""

    developer_id: str
    email: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Developer":
        return cls(
            developer_id=encode_identifier(row["developer_id"]),
            email=row["email"],
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "developer_id": self.developer_id,
            "email": self.email,
            "created_at": _iso(self.created_at),
        }


@dataclass
class EncodingInfo:
    """Text encoding and collation in effect for a relational backend."""

    connection_charset: str
    storage_charset: str
    connection_collation: str
    storage_collation: str

    def is_utf8(self) -> bool:
        """True when both connection and storage use a UTF-8 charset."""
        return all(
            charset.lower().replace("-", "").startswith("utf8")
            for charset in (self.connection_charset, self.storage_charset)
        )

    def is_case_insensitive_unicode(self) -> bool:
        """True when both collations are case-insensitive Unicode collations."""
        return all(
            "unicode" in collation.lower() and collation.lower().endswith("_ci")
            for collation in (self.connection_collation, self.storage_collation)
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "character_set_connection": self.connection_charset,
            "character_set_database": self.storage_charset,
            "collation_connection": self.connection_collation,
            "collation_database": self.storage_collation,
        }

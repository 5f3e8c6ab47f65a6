# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Entity kinds shared by every backend implementation.

Each kind names its primary key, the field groups that must be unique and
the fields it carries. Backends enforce the same rules from this table.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple


CLIENTS = "clients"
CODES = "codes"
TOKENS = "tokens"
DEVELOPERS = "developers"
CLIENT_DEVELOPERS = "client_developers"


@dataclass(frozen=True)
class EntitySchema:
    """Key and uniqueness rules for one entity kind."""
    kind: str
    key: str
    fields: Tuple[str, ...]
    unique: Tuple[Tuple[str, ...], ...] = ()
    mutable: Tuple[str, ...] = ()

    def key_of(self, record: Dict[str, Any]) -> Any:
        return record[self.key]

    def check_fields(self, values: Dict[str, Any]) -> None:
        unknown = set(values) - set(self.fields)
        if unknown:
            raise KeyError(f"Unknown fields for {self.kind}: {', '.join(sorted(unknown))}")


SCHEMAS: Dict[str, EntitySchema] = {
    CLIENTS: EntitySchema(
        kind=CLIENTS,
        key="id",
        fields=("id", "name", "hashed_secret", "image_uri", "redirect_uri", "trusted", "created_at"),
        mutable=("name", "hashed_secret", "image_uri", "redirect_uri", "trusted"),
    ),
    CODES: EntitySchema(
        kind=CODES,
        key="code",
        fields=("code", "client_id", "user_id", "email", "scope", "ttl", "created_at"),
    ),
    TOKENS: EntitySchema(
        kind=TOKENS,
        key="token",
        fields=("token", "client_id", "user_id", "email", "scope", "type", "created_at"),
    ),
    DEVELOPERS: EntitySchema(
        kind=DEVELOPERS,
        key="developer_id",
        fields=("developer_id", "email", "created_at"),
        unique=(("email",),),
    ),
    CLIENT_DEVELOPERS: EntitySchema(
        kind=CLIENT_DEVELOPERS,
        key="row_id",
        fields=("row_id", "developer_id", "client_id"),
        unique=(("developer_id", "client_id"),),
    ),
}


def get_schema(kind: str) -> EntitySchema:
    """Look up the schema for ``kind``."""
    try:
        return SCHEMAS[kind]
    except KeyError:
        raise KeyError(f"Unknown entity kind: {kind}")

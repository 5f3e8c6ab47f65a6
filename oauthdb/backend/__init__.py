# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package backend provides the storage capability interface and its
in-memory and relational implementations.
"""

from .base import Backend, Transaction
from .schema import (
    CLIENTS,
    CODES,
    TOKENS,
    DEVELOPERS,
    CLIENT_DEVELOPERS,
    SCHEMAS,
    EntitySchema,
    get_schema,
)
from .memory import MemoryBackend, MemoryTransaction
from .sql import SQLBackend, SQLTransaction, build_metadata
from .factory import available_backends, create_backend, register_backend

__all__ = [
    "Backend",
    "Transaction",
    "CLIENTS",
    "CODES",
    "TOKENS",
    "DEVELOPERS",
    "CLIENT_DEVELOPERS",
    "SCHEMAS",
    "EntitySchema",
    "get_schema",
    "MemoryBackend",
    "MemoryTransaction",
    "SQLBackend",
    "SQLTransaction",
    "build_metadata",
    "available_backends",
    "create_backend",
    "register_backend",
]

# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Common utilities and helper functions for the store.
"""

import copy
import hashlib
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Union


def generate_secure_bytes(length: int = 16) -> bytes:
    """Generate ``length`` cryptographically secure random bytes."""
    return secrets.token_bytes(length)


def generate_secure_hex(length: int = 32) -> str:
    """Generate a lowercase hex string encoding ``length`` random bytes."""
    return secrets.token_hex(length)


def hash_value(data: Union[str, bytes]) -> bytes:
    """
    SHA-256 digest of an opaque value.

    Codes and tokens are persisted only in this form; lookups hash the
    presented value the same way.
    """
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).digest()


def get_current_time() -> datetime:
    """
    Current UTC time as a naive datetime truncated to whole seconds.

    Relational engines differ in sub-second and timezone support, so
    timestamps are normalized before they are written.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def deep_copy_dict(original: Dict[str, Any]) -> Dict[str, Any]:
    """Create a deep copy of a dictionary."""
    return copy.deepcopy(original)

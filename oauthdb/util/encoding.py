# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Encoding utilities for binary identifiers.

Identifiers are stored as fixed-length bytes and exchanged with callers as
lowercase hexadecimal text.
"""

import re
from typing import Optional, Union

from ..errors import InvalidArgumentError


CLIENT_ID_BYTES = 8
USER_ID_BYTES = 16
DEVELOPER_ID_BYTES = 16

_LOWER_HEX = re.compile(r"(?:[0-9a-f]{2})+")


def hex_encode(data: Union[str, bytes]) -> str:
    """Encode data to a lowercase hexadecimal string."""
    if isinstance(data, str):
        data = data.encode('utf-8')

    return data.hex()


def hex_decode(encoded: str) -> bytes:
    """Decode hexadecimal string to bytes."""
    try:
        return bytes.fromhex(encoded)
    except ValueError as e:
        raise ValueError(f"Invalid hexadecimal data: {e}")


def decode_identifier(value: Union[str, bytes, None], field: str,
                      length: Optional[int] = None) -> bytes:
    """
    Convert a caller-supplied identifier into its binary form.

    Args:
        value: Hex text, or bytes already in binary form
        field: Name used in error messages
        length: Required byte length, if fixed

    Returns:
        The identifier as bytes

    Raises:
        InvalidArgumentError: If the value is empty, not hex, or the wrong length
    """
    if value is None or value == "" or value == b"":
        raise InvalidArgumentError(f"{field} is required", field=field)

    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        if not _LOWER_HEX.fullmatch(value):
            raise InvalidArgumentError(f"{field} must be lowercase hexadecimal", field=field)
        raw = hex_decode(value)
    else:
        raise InvalidArgumentError(f"{field} must be a hex string", field=field)

    if length is not None and len(raw) != length:
        raise InvalidArgumentError(
            f"{field} must be {length} bytes ({length * 2} hex characters)",
            field=field,
        )

    return raw


def encode_identifier(raw: Optional[bytes]) -> Optional[str]:
    """Convert a stored binary identifier into lowercase hex text."""
    if raw is None:
        return None
    return hex_encode(bytes(raw))

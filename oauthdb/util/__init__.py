# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Utility package providing helpers for the store.

This package includes:
- Encoding utilities for hex/binary identifier conversion
- Configuration utilities for environment and file based settings
- Logging setup for command-line use
"""

from .encoding import (
    CLIENT_ID_BYTES, USER_ID_BYTES, DEVELOPER_ID_BYTES,
    hex_encode, hex_decode, decode_identifier, encode_identifier
)
from .config import (
    ENV_PREFIX, get_config_value, parse_duration_string,
    normalize_config_key, normalize_config_keys, load_config_file
)
from .logging_config import setup_logging

__all__ = [
    # Encoding utilities
    'CLIENT_ID_BYTES', 'USER_ID_BYTES', 'DEVELOPER_ID_BYTES',
    'hex_encode', 'hex_decode', 'decode_identifier', 'encode_identifier',

    # Configuration utilities
    'ENV_PREFIX', 'get_config_value', 'parse_duration_string',
    'normalize_config_key', 'normalize_config_keys', 'load_config_file',

    # Logging
    'setup_logging',
]

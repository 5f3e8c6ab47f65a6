# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Shared helpers used across the store packages.
"""

from .utils import (
    generate_secure_bytes,
    generate_secure_hex,
    hash_value,
    get_current_time,
    deep_copy_dict,
)

__all__ = [
    'generate_secure_bytes',
    'generate_secure_hex',
    'hash_value',
    'get_current_time',
    'deep_copy_dict',
]

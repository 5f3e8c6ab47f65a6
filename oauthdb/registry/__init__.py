# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package registry provides the per-entity stores composed by the facade:
clients, issued codes and tokens, and developers.
"""

from .clients import ClientRegistry, INSERTED, UPDATED, UNCHANGED
from .issuance import IssuanceStore
from .developers import DeveloperRegistry

__all__ = [
    "ClientRegistry",
    "IssuanceStore",
    "DeveloperRegistry",
    "INSERTED",
    "UPDATED",
    "UNCHANGED",
]

# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Backend construction from configuration.
"""

import logging
from typing import Dict, List, Type

from .base import Backend
from .memory import MemoryBackend
from .sql import SQLBackend


logger = logging.getLogger(__name__)

_BACKENDS: Dict[str, Type[Backend]] = {
    "memory": MemoryBackend,
    "sql": SQLBackend,
}


def register_backend(name: str, backend_class: Type[Backend]) -> None:
    """
    Make a backend type available to ``create_backend``.

    Args:
        name: Driver name as it appears in ``StoreConfig.driver``
        backend_class: ``Backend`` subclass; built through ``from_config``
    """
    if not issubclass(backend_class, Backend):
        raise TypeError(f"{backend_class!r} is not a Backend subclass")

    _BACKENDS[name.lower()] = backend_class
    logger.debug(f"Registered backend driver {name}")


def available_backends() -> List[str]:
    """Names of the registered backend drivers."""
    return sorted(_BACKENDS)


def create_backend(config) -> Backend:
    """Create an unconnected backend for ``config.driver``."""
    driver = config.driver.lower()
    if driver not in _BACKENDS:
        raise ValueError(f"Unknown backend driver: {config.driver}")

    return _BACKENDS[driver].from_config(config)

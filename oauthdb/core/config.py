# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Configuration module for the OAuth persistence store.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from ..util.config import (
    get_config_value,
    load_config_file,
    normalize_config_keys,
    parse_duration_string,
)


def _as_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(milliseconds=value)
    return parse_duration_string(value)


@dataclass
class StoreConfig:
    """Configuration for the store and its backend"""
    driver: str = "memory"
    database_url: Optional[str] = None
    charset: str = "utf8mb4"
    collation: str = "utf8mb4_unicode_ci"
    pool_size: int = 5
    echo: bool = False
    clients: List[Dict[str, Any]] = field(default_factory=list)
    token_bytes: int = 32
    generation_attempts: int = 5
    removal_attempts: int = 3
    removal_initial_delay: timedelta = field(default_factory=lambda: timedelta(milliseconds=50))
    email_case_sensitive: bool = True

    def __post_init__(self):
        self.driver = (self.driver or "memory").lower()
        self.removal_initial_delay = _as_duration(self.removal_initial_delay)
        self.clients = [normalize_config_keys(dict(c)) for c in self.clients]

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Create configuration from ``OAUTHDB_*`` environment variables"""
        defaults = cls()
        return cls(
            driver=get_config_value("driver", defaults.driver),
            database_url=get_config_value("database_url", defaults.database_url),
            charset=get_config_value("charset", defaults.charset),
            collation=get_config_value("collation", defaults.collation),
            pool_size=get_config_value("pool_size", defaults.pool_size, int),
            echo=get_config_value("echo", defaults.echo, bool),
            token_bytes=get_config_value("token_bytes", defaults.token_bytes, int),
            generation_attempts=get_config_value("generation_attempts", defaults.generation_attempts, int),
            removal_attempts=get_config_value("removal_attempts", defaults.removal_attempts, int),
            removal_initial_delay=get_config_value("removal_initial_delay", defaults.removal_initial_delay),
            email_case_sensitive=get_config_value("email_case_sensitive", defaults.email_case_sensitive, bool),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        """
        Build configuration from a mapping.

        Keys may be snake_case or camelCase; unknown keys are rejected.
        """
        values = normalize_config_keys(data)
        known = set(cls.__dataclass_fields__)
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        if values.get("clients") is None:
            values.pop("clients", None)
        return cls(**values)

    @classmethod
    def from_file(cls, path: str) -> "StoreConfig":
        """Load configuration from a JSON or YAML file"""
        return cls.from_dict(load_config_file(path))

    def validate(self) -> bool:
        """Validate the configuration"""
        from ..backend.factory import available_backends

        if self.driver not in available_backends():
            raise ValueError(f"Unknown driver: {self.driver}")
        if self.driver == "sql" and not self.database_url:
            raise ValueError("database_url is required for the sql driver")
        if self.pool_size < 1:
            raise ValueError("pool_size must be positive")
        if self.token_bytes < 16:
            raise ValueError("token_bytes must be at least 16")
        if self.generation_attempts < 1:
            raise ValueError("generation_attempts must be positive")
        if self.removal_attempts < 1:
            raise ValueError("removal_attempts must be positive")
        if self.removal_initial_delay < timedelta(0):
            raise ValueError("removal_initial_delay must not be negative")
        if not isinstance(self.clients, list):
            raise ValueError("clients must be a list of client descriptors")
        return True

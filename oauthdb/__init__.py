"""
oauthdb Python Package

Persistence core for an OAuth authorization server: clients, authorization
codes, tokens and developer accounts over in-memory or relational storage.
"""

__version__ = "0.1.0"

from .core.types import AuthorizationCode, Client, Developer, EncodingInfo, Token
from .core.config import StoreConfig
from .core.store import OAuthDB
from .errors import (
    OAuthDBError,
    InvalidArgumentError,
    ConflictError,
    UnavailableError,
    InternalError,
    EncodingUnsupportedError,
)

__all__ = [
    "OAuthDB",
    "StoreConfig",
    "Client",
    "AuthorizationCode",
    "Token",
    "Developer",
    "EncodingInfo",
    "OAuthDBError",
    "InvalidArgumentError",
    "ConflictError",
    "UnavailableError",
    "InternalError",
    "EncodingUnsupportedError",
]

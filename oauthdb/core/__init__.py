"""
Core module initialization
"""

from .types import AuthorizationCode, Client, Developer, EncodingInfo, Token
from .config import StoreConfig
from .store import OAuthDB

__all__ = [
    "OAuthDB",
    "StoreConfig",
    "Client",
    "AuthorizationCode",
    "Token",
    "Developer",
    "EncodingInfo",
]

# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Structured error handling for the OAuth persistence store.

Every failure surfaced by the store is an ``OAuthDBError`` carrying an
``ErrorCode`` so callers can tell "already exists" apart from
"backend unreachable" without parsing messages. "Not found" is never an
error: point lookups return ``None``.
"""

from enum import Enum
from datetime import datetime
from typing import Dict, Any, Optional
from dataclasses import dataclass


class ErrorCode(Enum):
    """Structured error codes for store operations."""

    INVALID_ARGUMENT = "invalid_argument"
    ALREADY_EXISTS = "already_exists"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"
    UNSUPPORTED = "unsupported"


class ErrorSource(Enum):
    """Sources where errors can originate."""

    CLIENT = "client"
    STORAGE = "storage"
    VALIDATION = "validation"
    GENERATION = "generation"
    TRANSACTION = "transaction"


@dataclass
class ErrorContext:
    """Additional context for errors."""

    timestamp: datetime = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()
        if self.metadata is None:
            self.metadata = {}


class OAuthDBError(Exception):
    """
    Base exception class for all store errors.

    Provides the error code, the source that raised it, optional context
    metadata and the underlying cause, if any.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        source: ErrorSource = ErrorSource.STORAGE,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None
    ):
        self.code = code
        self.message = message
        self.source = source
        self.context = context or ErrorContext()
        self.cause = cause

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "error": self.code.value,
            "error_description": self.message,
            "error_source": self.source.value,
            "timestamp": self.context.timestamp.isoformat(),
        }

        if self.context.metadata:
            result["metadata"] = self.context.metadata

        if self.cause:
            result["caused_by"] = str(self.cause)

        return result

    def is_retryable(self) -> bool:
        """Check if this error might be resolved by retrying."""
        return self.code == ErrorCode.UNAVAILABLE


class InvalidArgumentError(OAuthDBError):
    """A required argument is missing or malformed."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", ErrorContext())
        if field:
            context.metadata["field"] = field

        super().__init__(
            code=ErrorCode.INVALID_ARGUMENT,
            message=message,
            source=ErrorSource.VALIDATION,
            context=context,
            **kwargs
        )
        self.field = field


class ConflictError(OAuthDBError):
    """A uniqueness constraint was violated."""

    def __init__(self, message: str, kind: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", ErrorContext())
        if kind:
            context.metadata["kind"] = kind

        super().__init__(
            code=ErrorCode.ALREADY_EXISTS,
            message=message,
            source=kwargs.pop("source", ErrorSource.STORAGE),
            context=context,
            **kwargs
        )
        self.kind = kind


class UnavailableError(OAuthDBError):
    """The storage medium cannot be reached."""

    def __init__(self, message: str = "Backend unavailable", **kwargs):
        super().__init__(
            code=ErrorCode.UNAVAILABLE,
            message=message,
            source=ErrorSource.STORAGE,
            **kwargs
        )


class InternalError(OAuthDBError):
    """A retry budget was exhausted or a transaction could not complete."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            code=ErrorCode.INTERNAL,
            message=message,
            source=kwargs.pop("source", ErrorSource.TRANSACTION),
            **kwargs
        )


class EncodingUnsupportedError(OAuthDBError):
    """Encoding information has no meaning for the backend."""

    def __init__(self, message: str = "Encoding information is not applicable", **kwargs):
        super().__init__(
            code=ErrorCode.UNSUPPORTED,
            message=message,
            source=ErrorSource.STORAGE,
            **kwargs
        )


def require(value: Any, message: str, field: Optional[str] = None) -> Any:
    """Return ``value`` or raise ``InvalidArgumentError`` when it is empty."""
    if value is None or value == "" or value == b"":
        raise InvalidArgumentError(message, field=field)
    return value


__all__ = [
    "ErrorCode",
    "ErrorSource",
    "ErrorContext",
    "OAuthDBError",
    "InvalidArgumentError",
    "ConflictError",
    "UnavailableError",
    "InternalError",
    "EncodingUnsupportedError",
    "require",
]

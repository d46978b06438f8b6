# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Structured error handling for grant storage.

Every storage operation either returns a result or raises exactly one
GrantStoreError subclass. Errors carry a code, the component they came
from, and the underlying cause where one exists.
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from dataclasses import dataclass


class ErrorCode(Enum):
    """Structured error codes for grant storage."""

    NOT_FOUND = "not_found"
    DUPLICATE_KEY = "duplicate_key"
    REFERENCE_INCONSISTENT = "reference_inconsistent"
    TRANSACTION_FAILED = "transaction_failed"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    STORAGE_ERROR = "storage_error"
    INVALID_CONFIGURATION = "invalid_configuration"


class ErrorSource(Enum):
    """Components where errors can originate."""

    CLIENT_REGISTRY = "client_registry"
    AUTHORIZE_STORE = "authorize_store"
    ACCESS_STORE = "access_store"
    REFRESH_STORE = "refresh_store"
    TRANSACTION = "transaction"
    STORAGE = "storage"
    CONFIGURATION = "configuration"


@dataclass
class ErrorContext:
    """Additional context for errors."""

    operation: Optional[str] = None
    record_type: Optional[str] = None
    key: Optional[str] = None
    timestamp: datetime = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)
        if self.metadata is None:
            self.metadata = {}


class GrantStoreError(Exception):
    """
    Base exception class for all grant storage errors.

    Provides structured error information with an error code, the
    originating component, context about the record involved and the
    underlying cause.
    """

    code = ErrorCode.STORAGE_ERROR

    def __init__(
        self,
        message: str,
        source: ErrorSource = ErrorSource.STORAGE,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
        code: Optional[ErrorCode] = None,
    ):
        if code is not None:
            self.code = code
        self.message = message
        self.source = source
        self.context = context or ErrorContext()
        self.cause = cause

        super().__init__(self.message)

    @property
    def key(self) -> Optional[str]:
        return self.context.key

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "error": self.code.value,
            "error_description": self.message,
            "error_source": self.source.value,
            "timestamp": self.context.timestamp.isoformat(),
        }

        if self.context.operation:
            result["operation"] = self.context.operation

        if self.context.record_type:
            result["record_type"] = self.context.record_type

        if self.context.metadata:
            result["metadata"] = self.context.metadata

        if self.cause:
            result["caused_by"] = str(self.cause)

        return result

    def is_retryable(self) -> bool:
        """Check if this error might be resolved by the caller retrying."""
        return self.code in [
            ErrorCode.STORAGE_UNAVAILABLE,
            ErrorCode.TRANSACTION_FAILED,
        ]


class NotFoundError(GrantStoreError):
    """No record matches the requested key."""

    code = ErrorCode.NOT_FOUND


class ReferenceInconsistentError(NotFoundError):
    """A referenced client, authorization code or prior access grant could not be resolved."""

    code = ErrorCode.REFERENCE_INCONSISTENT


class DuplicateKeyError(GrantStoreError):
    """An insert collided with an existing primary key."""

    code = ErrorCode.DUPLICATE_KEY


class TransactionFailureError(GrantStoreError):
    """
    Commit or rollback failed inside an atomic unit.

    When the rollback itself fails, ``cause`` holds the error that
    triggered the rollback and ``rollback_error`` the rollback failure,
    so neither is lost.
    """

    code = ErrorCode.TRANSACTION_FAILED

    def __init__(self, message: str, rollback_error: Optional[BaseException] = None, **kwargs):
        kwargs.setdefault("source", ErrorSource.TRANSACTION)
        super().__init__(message, **kwargs)
        self.rollback_error = rollback_error

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.rollback_error:
            result["rollback_error"] = str(self.rollback_error)
        return result


class StorageError(GrantStoreError):
    """The storage engine rejected or failed an operation."""

    code = ErrorCode.STORAGE_ERROR


class StorageUnavailableError(StorageError):
    """The storage engine could not be reached."""

    code = ErrorCode.STORAGE_UNAVAILABLE


class ConfigurationError(GrantStoreError):
    """Invalid storage configuration."""

    code = ErrorCode.INVALID_CONFIGURATION

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", ErrorContext())
        if field:
            context.metadata["field"] = field
        kwargs.setdefault("source", ErrorSource.CONFIGURATION)
        super().__init__(message, context=context, **kwargs)


def not_found(record_type: str, key: str, source: ErrorSource, operation: str = "load") -> NotFoundError:
    """Create a not-found error for a record."""
    return NotFoundError(
        f"{record_type} not found",
        source=source,
        context=ErrorContext(operation=operation, record_type=record_type, key=key),
    )


def duplicate_key(record_type: str, key: str, source: ErrorSource,
                  cause: Optional[BaseException] = None) -> DuplicateKeyError:
    """Create a duplicate-key error for a record."""
    return DuplicateKeyError(
        f"{record_type} already exists",
        source=source,
        context=ErrorContext(operation="save", record_type=record_type, key=key),
        cause=cause,
    )


def reference_inconsistent(record_type: str, key: str, source: ErrorSource, reason: str,
                           cause: Optional[BaseException] = None) -> ReferenceInconsistentError:
    """Create an error for a reference that could not be resolved during a load."""
    return ReferenceInconsistentError(
        f"{record_type} reference could not be resolved: {reason}",
        source=source,
        context=ErrorContext(operation="load", record_type=record_type, key=key),
        cause=cause,
    )


__all__ = [
    "ErrorCode",
    "ErrorSource",
    "ErrorContext",
    "GrantStoreError",
    "NotFoundError",
    "ReferenceInconsistentError",
    "DuplicateKeyError",
    "TransactionFailureError",
    "StorageError",
    "StorageUnavailableError",
    "ConfigurationError",
    "not_found",
    "duplicate_key",
    "reference_inconsistent",
]

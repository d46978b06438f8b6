"""
grantstore Python Package

Persistence and lineage layer for OAuth2-style grants: clients,
authorization codes, access tokens and refresh tokens.
"""

__version__ = "0.1.0"

from .core.config import StoreConfig
from .core.types import (
    Client,
    AuthorizationGrant,
    AccessGrant,
)
from .errors import (
    GrantStoreError,
    NotFoundError,
    DuplicateKeyError,
    ReferenceInconsistentError,
    TransactionFailureError,
    StorageError,
    StorageUnavailableError,
    ConfigurationError,
)
from .store import (
    GrantStorage,
    MemoryGrantStorage,
    SqlGrantStorage,
    create_storage,
)

__all__ = [
    "StoreConfig",
    "Client",
    "AuthorizationGrant",
    "AccessGrant",
    "GrantStoreError",
    "NotFoundError",
    "DuplicateKeyError",
    "ReferenceInconsistentError",
    "TransactionFailureError",
    "StorageError",
    "StorageUnavailableError",
    "ConfigurationError",
    "GrantStorage",
    "MemoryGrantStorage",
    "SqlGrantStorage",
    "create_storage",
]

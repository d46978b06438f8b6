"""
SQLAlchemy-backed grant storage.
"""

from .schema import metadata, create_schemas
from .transaction import UnitOfWork
from .clients import ClientRegistry
from .authorize import AuthorizationCodeStore
from .refresh import RefreshTokenStore
from .access import AccessTokenStore
from .storage import SqlGrantStorage

__all__ = [
    "metadata",
    "create_schemas",
    "UnitOfWork",
    "ClientRegistry",
    "AuthorizationCodeStore",
    "RefreshTokenStore",
    "AccessTokenStore",
    "SqlGrantStorage",
]

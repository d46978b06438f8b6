"""
Core record types and configuration for grant storage.
"""

from .types import Client, AuthorizationGrant, AccessGrant
from .config import StoreConfig

__all__ = [
    "Client",
    "AuthorizationGrant",
    "AccessGrant",
    "StoreConfig",
]

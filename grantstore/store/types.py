"""
Storage interface for grant persistence.
Defines the capability surface the protocol engine depends on.
"""

from abc import ABC, abstractmethod
from enum import Enum

from ..core.types import Client, AuthorizationGrant, AccessGrant


class StorageStatus(Enum):
    """Status of a storage backend."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class GrantStorage(ABC):
    """
    Abstract base class for grant storage backends.

    Backends must reject duplicate keys, write an access grant and its
    refresh token atomically, and resolve references on load. Removal
    of an absent record is not an error.
    """

    @abstractmethod
    async def get_client(self, client_id: str) -> Client:
        """
        Retrieve a client by id.

        Raises:
            NotFoundError: If the client does not exist
        """
        pass

    @abstractmethod
    async def create_client(self, client_id: str, secret: str, redirect_uri: str) -> Client:
        """
        Register a new client.

        Raises:
            DuplicateKeyError: If a client with this id exists
        """
        pass

    @abstractmethod
    async def update_client(self, client_id: str, secret: str, redirect_uri: str) -> Client:
        """
        Replace the secret and redirect URI of an existing client.

        Raises:
            NotFoundError: If the client does not exist
        """
        pass

    @abstractmethod
    async def save_authorize(self, grant: AuthorizationGrant) -> None:
        """
        Persist a new authorization code.

        Raises:
            DuplicateKeyError: If the code already exists
        """
        pass

    @abstractmethod
    async def load_authorize(self, code: str) -> AuthorizationGrant:
        """
        Load an authorization code with its client resolved.

        Raises:
            NotFoundError: If the code does not exist
            ReferenceInconsistentError: If its client is gone
        """
        pass

    @abstractmethod
    async def remove_authorize(self, code: str) -> None:
        """Delete an authorization code."""
        pass

    @abstractmethod
    async def save_access(self, grant: AccessGrant) -> None:
        """
        Persist an access grant and, if it carries one, its refresh token
        as a single atomic unit.

        Raises:
            DuplicateKeyError: If the access or refresh token exists
            TransactionFailureError: If commit or rollback fails
        """
        pass

    @abstractmethod
    async def load_access(self, access_token: str) -> AccessGrant:
        """
        Load an access grant with client, authorization and lineage resolved.

        Raises:
            NotFoundError: If the access token does not exist
            ReferenceInconsistentError: If any referenced record is gone,
                or the rotation chain is cyclic or too long
        """
        pass

    @abstractmethod
    async def remove_access(self, access_token: str) -> None:
        """Delete an access grant. Its refresh token mapping is kept."""
        pass

    @abstractmethod
    async def load_refresh(self, token: str) -> AccessGrant:
        """
        Load the access grant a refresh token was issued with.

        Raises:
            NotFoundError: If the refresh token or its access grant does not exist
        """
        pass

    @abstractmethod
    async def remove_refresh(self, token: str) -> None:
        """Delete a refresh token mapping. The access grant is kept."""
        pass

    async def health_check(self) -> StorageStatus:
        """Check the health of the storage backend."""
        return StorageStatus.HEALTHY

    async def close(self) -> None:
        """Close the storage connection and cleanup resources."""
        pass

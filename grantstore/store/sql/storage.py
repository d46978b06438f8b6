"""
Relational grant storage.
Composes the per-record stores behind the GrantStorage interface.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ...core.config import DEFAULT_MAX_LINEAGE_DEPTH
from ...core.types import Client, AuthorizationGrant, AccessGrant
from ...errors import ConfigurationError
from ..types import GrantStorage, StorageStatus
from .access import AccessTokenStore
from .authorize import AuthorizationCodeStore
from .clients import ClientRegistry
from .schema import create_schemas


logger = logging.getLogger(__name__)


class SqlGrantStorage(GrantStorage):
    """
    Grant storage on any SQLAlchemy async engine.

    Uniqueness and isolation come from the database; this class does no
    locking of its own. Run ``create_schemas()`` once at startup before
    serving requests.
    """

    def __init__(self, engine: AsyncEngine, max_lineage_depth: int = DEFAULT_MAX_LINEAGE_DEPTH):
        self.engine = engine
        self.clients = ClientRegistry(engine)
        self.authorization_codes = AuthorizationCodeStore(engine, self.clients)
        self.access_tokens = AccessTokenStore(
            engine, self.clients, self.authorization_codes, max_lineage_depth
        )
        self.refresh_tokens = self.access_tokens.refresh_tokens

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False,
                 max_lineage_depth: int = DEFAULT_MAX_LINEAGE_DEPTH) -> "SqlGrantStorage":
        """Create storage with its own engine, e.g. ``postgresql+asyncpg://...``."""
        try:
            engine = create_async_engine(database_url, echo=echo)
        except ArgumentError as e:
            raise ConfigurationError(
                f"invalid database_url: {e}", field="database_url", cause=e
            ) from e
        return cls(engine, max_lineage_depth)

    async def create_schemas(self) -> None:
        await create_schemas(self.engine)

    async def get_client(self, client_id: str) -> Client:
        return await self.clients.get(client_id)

    async def create_client(self, client_id: str, secret: str, redirect_uri: str) -> Client:
        return await self.clients.create(client_id, secret, redirect_uri)

    async def update_client(self, client_id: str, secret: str, redirect_uri: str) -> Client:
        return await self.clients.update(client_id, secret, redirect_uri)

    async def save_authorize(self, grant: AuthorizationGrant) -> None:
        await self.authorization_codes.save(grant)

    async def load_authorize(self, code: str) -> AuthorizationGrant:
        return await self.authorization_codes.load(code)

    async def remove_authorize(self, code: str) -> None:
        await self.authorization_codes.remove(code)

    async def save_access(self, grant: AccessGrant) -> None:
        await self.access_tokens.save(grant)

    async def load_access(self, access_token: str) -> AccessGrant:
        return await self.access_tokens.load(access_token)

    async def remove_access(self, access_token: str) -> None:
        await self.access_tokens.remove(access_token)

    async def load_refresh(self, token: str) -> AccessGrant:
        return await self.refresh_tokens.load(token)

    async def remove_refresh(self, token: str) -> None:
        await self.refresh_tokens.remove(token)

    async def health_check(self) -> StorageStatus:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Grant storage health check failed: {e}")
            return StorageStatus.UNHEALTHY
        return StorageStatus.HEALTHY

    async def close(self) -> None:
        await self.engine.dispose()

"""
Access grant storage backed by the access_grants table.

Saving writes the access grant and its refresh token mapping in one
unit of work. Loading resolves the client, the authorization code and
every predecessor in the rotation chain, one round trip per hop.
"""

import logging
from typing import Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncEngine

from ...core.config import DEFAULT_MAX_LINEAGE_DEPTH
from ...core.types import AccessGrant
from ...errors import ErrorSource
from ..resolve import access_row, build_access_grant
from .authorize import AuthorizationCodeStore
from .clients import ClientRegistry
from .errors import storage_errors
from .refresh import RefreshTokenStore
from .schema import access_grants
from .transaction import UnitOfWork


logger = logging.getLogger(__name__)

SOURCE = ErrorSource.ACCESS_STORE


class AccessTokenStore:
    """Save, load and remove access grants and their lineage."""

    def __init__(self, engine: AsyncEngine, clients: ClientRegistry,
                 authorization_codes: AuthorizationCodeStore,
                 max_lineage_depth: int = DEFAULT_MAX_LINEAGE_DEPTH):
        self._engine = engine
        self._clients = clients
        self._authorization_codes = authorization_codes
        self.max_lineage_depth = max_lineage_depth
        self.refresh_tokens = RefreshTokenStore(engine, self)

    async def save(self, grant: AccessGrant) -> None:
        """
        Write an access grant and its refresh token atomically.

        The predecessor key comes from ``grant.previous``, which the
        caller sets to the grant being rotated.

        Raises:
            DuplicateKeyError: If the access or refresh token exists
            TransactionFailureError: If commit or rollback fails
        """
        statement = insert(access_grants).values(**access_row(grant))
        async with UnitOfWork(self._engine) as unit:
            await unit.execute(statement, SOURCE, "access grant", grant.access_token)
            if grant.refresh_token:
                await self.refresh_tokens.save(unit, grant.refresh_token, grant.access_token)
        logger.debug(
            f"Saved access grant for client {grant.client.id}"
            f" (refresh={bool(grant.refresh_token)}, rotated={bool(grant.previous)})"
        )

    async def _fetch_row(self, access_token: str) -> Optional[RowMapping]:
        statement = select(access_grants).where(access_grants.c.access_token == access_token).limit(1)
        with storage_errors("load", SOURCE, "access grant", access_token):
            async with self._engine.connect() as conn:
                return (await conn.execute(statement)).mappings().first()

    async def load(self, access_token: str) -> AccessGrant:
        return await build_access_grant(
            access_token,
            self._fetch_row,
            self._clients.get,
            self._authorization_codes.load,
            self.max_lineage_depth,
        )

    async def remove(self, access_token: str) -> None:
        statement = delete(access_grants).where(access_grants.c.access_token == access_token)
        with storage_errors("remove", SOURCE, "access grant", access_token):
            async with self._engine.begin() as conn:
                await conn.execute(statement)

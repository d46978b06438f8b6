"""
Refresh token index backed by the refresh_grants table.
"""

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncEngine

from ...core.types import AccessGrant
from ...errors import ErrorSource, not_found
from .errors import storage_errors
from .schema import refresh_grants
from .transaction import UnitOfWork

if TYPE_CHECKING:
    from .access import AccessTokenStore


logger = logging.getLogger(__name__)

SOURCE = ErrorSource.REFRESH_STORE


class RefreshTokenStore:
    """
    Map refresh tokens to the access grant they were issued with.

    Loading a refresh token loads that access grant with its lineage.
    Removing one deletes only the mapping.
    """

    def __init__(self, engine: AsyncEngine, access_tokens: "AccessTokenStore"):
        self._engine = engine
        self._access_tokens = access_tokens

    async def save(self, unit: UnitOfWork, token: str, access_token: str) -> None:
        """Insert a mapping as part of an access grant's unit of work."""
        statement = insert(refresh_grants).values(token=token, access_token=access_token)
        await unit.execute(statement, SOURCE, "refresh token", token)

    async def load(self, token: str) -> AccessGrant:
        statement = select(refresh_grants.c.access_token).where(refresh_grants.c.token == token).limit(1)
        with storage_errors("load", SOURCE, "refresh token", token):
            async with self._engine.connect() as conn:
                access_token = (await conn.execute(statement)).scalar_one_or_none()
        if access_token is None:
            raise not_found("refresh token", token, SOURCE)
        return await self._access_tokens.load(access_token)

    async def remove(self, token: str) -> None:
        statement = delete(refresh_grants).where(refresh_grants.c.token == token)
        with storage_errors("remove", SOURCE, "refresh token", token):
            async with self._engine.begin() as conn:
                await conn.execute(statement)

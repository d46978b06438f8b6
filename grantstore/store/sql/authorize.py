"""
Authorization code storage backed by the authorization_grants table.
"""

import logging

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncEngine

from ...core.types import AuthorizationGrant
from ...errors import ErrorSource, not_found
from ..resolve import authorize_row, build_authorization
from .clients import ClientRegistry
from .errors import storage_errors
from .schema import authorization_grants


logger = logging.getLogger(__name__)

SOURCE = ErrorSource.AUTHORIZE_STORE


class AuthorizationCodeStore:
    """
    Save, load and remove authorization codes.

    The store neither expires codes nor enforces single use; the caller
    checks ``is_expired()`` and removes a code once it is redeemed.
    """

    def __init__(self, engine: AsyncEngine, clients: ClientRegistry):
        self._engine = engine
        self._clients = clients

    async def save(self, grant: AuthorizationGrant) -> None:
        statement = insert(authorization_grants).values(**authorize_row(grant))
        with storage_errors("save", SOURCE, "authorization code", grant.code):
            async with self._engine.begin() as conn:
                await conn.execute(statement)
        logger.debug(f"Saved authorization code for client {grant.client.id}")

    async def load(self, code: str) -> AuthorizationGrant:
        statement = select(authorization_grants).where(authorization_grants.c.code == code).limit(1)
        with storage_errors("load", SOURCE, "authorization code", code):
            async with self._engine.connect() as conn:
                row = (await conn.execute(statement)).mappings().first()
        if row is None:
            raise not_found("authorization code", code, SOURCE)
        return await build_authorization(row, self._clients.get)

    async def remove(self, code: str) -> None:
        statement = delete(authorization_grants).where(authorization_grants.c.code == code)
        with storage_errors("remove", SOURCE, "authorization code", code):
            async with self._engine.begin() as conn:
                await conn.execute(statement)

"""
Client registry backed by the clients table.
"""

import logging

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncEngine

from ...core.types import Client
from ...errors import ErrorSource, not_found
from .errors import storage_errors
from .schema import clients


logger = logging.getLogger(__name__)

SOURCE = ErrorSource.CLIENT_REGISTRY


class ClientRegistry:
    """Create, read and update registered clients."""

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def get(self, client_id: str) -> Client:
        statement = (
            select(clients.c.id, clients.c.secret, clients.c.redirect_uri)
            .where(clients.c.id == client_id)
            .limit(1)
        )
        with storage_errors("get", SOURCE, "client", client_id):
            async with self._engine.connect() as conn:
                row = (await conn.execute(statement)).first()
        if row is None:
            raise not_found("client", client_id, SOURCE, "get")
        return Client(id=row.id, secret=row.secret, redirect_uri=row.redirect_uri)

    async def create(self, client_id: str, secret: str, redirect_uri: str) -> Client:
        statement = insert(clients).values(id=client_id, secret=secret, redirect_uri=redirect_uri)
        with storage_errors("create", SOURCE, "client", client_id):
            async with self._engine.begin() as conn:
                await conn.execute(statement)
        logger.info(f"Created client {client_id}")
        return Client(id=client_id, secret=secret, redirect_uri=redirect_uri)

    async def update(self, client_id: str, secret: str, redirect_uri: str) -> Client:
        """
        Replace a client's secret and redirect URI.

        Raises:
            NotFoundError: If no client has this id
        """
        statement = (
            update(clients)
            .where(clients.c.id == client_id)
            .values(secret=secret, redirect_uri=redirect_uri)
        )
        with storage_errors("update", SOURCE, "client", client_id):
            async with self._engine.begin() as conn:
                matched = (await conn.execute(statement)).rowcount
        if matched == 0:
            raise not_found("client", client_id, SOURCE, "update")
        logger.info(f"Updated client {client_id}")
        return Client(id=client_id, secret=secret, redirect_uri=redirect_uri)

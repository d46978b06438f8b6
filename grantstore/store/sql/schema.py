"""
Relational layout of grant storage.

Tables:
  - clients: client id, secret and redirect URI
  - authorization_grants: one-time authorization codes
  - access_grants: access tokens with their authorization code,
    predecessor and refresh token keys
  - refresh_grants: refresh token to access token index

References are plain key columns without foreign keys; a reference may
dangle and is reported when the referring record is loaded.
"""

import logging

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncEngine

from ...core.types import as_utc
from ...errors import ErrorSource
from .errors import storage_errors


logger = logging.getLogger(__name__)


class UTCDateTime(sa.TypeDecorator):
    """Timezone-aware timestamp that always round-trips as UTC."""

    impl = sa.DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = as_utc(value)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)


metadata = sa.MetaData()

clients = sa.Table(
    "clients",
    metadata,
    sa.Column("id", sa.Text, primary_key=True),
    sa.Column("secret", sa.Text, nullable=False),
    sa.Column("redirect_uri", sa.Text, nullable=False),
)

authorization_grants = sa.Table(
    "authorization_grants",
    metadata,
    sa.Column("code", sa.Text, primary_key=True),
    sa.Column("client_id", sa.Text, nullable=False),
    sa.Column("expires_in", sa.Integer, nullable=False),
    sa.Column("scope", sa.Text, nullable=False),
    sa.Column("redirect_uri", sa.Text, nullable=False),
    sa.Column("state", sa.Text, nullable=False),
    sa.Column("created_at", UTCDateTime, nullable=False),
)

access_grants = sa.Table(
    "access_grants",
    metadata,
    sa.Column("access_token", sa.Text, primary_key=True),
    sa.Column("client_id", sa.Text, nullable=False),
    sa.Column("authorization_code", sa.Text, nullable=False),
    sa.Column("previous_access_token", sa.Text, nullable=False),
    sa.Column("refresh_token", sa.Text, nullable=False),
    sa.Column("expires_in", sa.Integer, nullable=False),
    sa.Column("scope", sa.Text, nullable=False),
    sa.Column("redirect_uri", sa.Text, nullable=False),
    sa.Column("created_at", UTCDateTime, nullable=False),
)

refresh_grants = sa.Table(
    "refresh_grants",
    metadata,
    sa.Column("token", sa.Text, primary_key=True),
    sa.Column("access_token", sa.Text, nullable=False),
)


async def create_schemas(engine: AsyncEngine) -> None:
    """
    Create the four grant tables if they are absent.

    Safe to run against an already initialised database. Meant to run
    once at startup; a failure here should stop the process.

    Raises:
        StorageError: If any table cannot be created
    """
    with storage_errors("create_schemas", ErrorSource.STORAGE):
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all, checkfirst=True)
    logger.info(f"Grant storage schema ready ({', '.join(metadata.tables)})")

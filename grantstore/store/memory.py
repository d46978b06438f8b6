"""
In-memory grant storage.
Provides a dictionary-backed backend for development and testing.
"""

import logging
import threading
from typing import Any, Dict, Optional

from ..core.config import DEFAULT_MAX_LINEAGE_DEPTH
from ..core.types import Client, AuthorizationGrant, AccessGrant
from ..errors import ErrorSource, duplicate_key, not_found
from .resolve import access_row, authorize_row, build_access_grant, build_authorization
from .types import GrantStorage


logger = logging.getLogger(__name__)


class MemoryGrantStorage(GrantStorage):
    """
    In-memory grant storage implementation.

    Records are kept as rows keyed exactly like the relational tables, so
    references are resolved on load the same way the SQL backend does.

    Note: All data is lost when the process terminates.
    """

    def __init__(self, max_lineage_depth: int = DEFAULT_MAX_LINEAGE_DEPTH):
        self.max_lineage_depth = max_lineage_depth

        self._clients: Dict[str, Client] = {}
        self._authorize: Dict[str, Dict[str, Any]] = {}
        self._access: Dict[str, Dict[str, Any]] = {}
        self._refresh: Dict[str, str] = {}

        self._lock = threading.RLock()

    async def get_client(self, client_id: str) -> Client:
        with self._lock:
            client = self._clients.get(client_id)
        if client is None:
            raise not_found("client", client_id, ErrorSource.CLIENT_REGISTRY, "get")
        return Client(client.id, client.secret, client.redirect_uri)

    async def create_client(self, client_id: str, secret: str, redirect_uri: str) -> Client:
        with self._lock:
            if client_id in self._clients:
                raise duplicate_key("client", client_id, ErrorSource.CLIENT_REGISTRY)
            self._clients[client_id] = Client(client_id, secret, redirect_uri)
        logger.info(f"Created client {client_id}")
        return Client(client_id, secret, redirect_uri)

    async def update_client(self, client_id: str, secret: str, redirect_uri: str) -> Client:
        with self._lock:
            if client_id not in self._clients:
                raise not_found("client", client_id, ErrorSource.CLIENT_REGISTRY, "update")
            self._clients[client_id] = Client(client_id, secret, redirect_uri)
        logger.info(f"Updated client {client_id}")
        return Client(client_id, secret, redirect_uri)

    async def save_authorize(self, grant: AuthorizationGrant) -> None:
        with self._lock:
            if grant.code in self._authorize:
                raise duplicate_key("authorization code", grant.code, ErrorSource.AUTHORIZE_STORE)
            self._authorize[grant.code] = authorize_row(grant)
        logger.debug(f"Saved authorization code for client {grant.client.id}")

    async def load_authorize(self, code: str) -> AuthorizationGrant:
        with self._lock:
            row = self._authorize.get(code)
        if row is None:
            raise not_found("authorization code", code, ErrorSource.AUTHORIZE_STORE)
        return await build_authorization(row, self.get_client)

    async def remove_authorize(self, code: str) -> None:
        with self._lock:
            self._authorize.pop(code, None)

    async def save_access(self, grant: AccessGrant) -> None:
        row = access_row(grant)
        with self._lock:
            # both keys are checked before either write
            if grant.access_token in self._access:
                raise duplicate_key("access grant", grant.access_token, ErrorSource.ACCESS_STORE)
            if grant.refresh_token and grant.refresh_token in self._refresh:
                raise duplicate_key("refresh token", grant.refresh_token, ErrorSource.REFRESH_STORE)
            self._access[grant.access_token] = row
            if grant.refresh_token:
                self._refresh[grant.refresh_token] = grant.access_token
        logger.debug(f"Saved access grant for client {grant.client.id}")

    async def _fetch_access_row(self, access_token: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._access.get(access_token)

    async def load_access(self, access_token: str) -> AccessGrant:
        return await build_access_grant(
            access_token,
            self._fetch_access_row,
            self.get_client,
            self.load_authorize,
            self.max_lineage_depth,
        )

    async def remove_access(self, access_token: str) -> None:
        with self._lock:
            self._access.pop(access_token, None)

    async def load_refresh(self, token: str) -> AccessGrant:
        with self._lock:
            access_token = self._refresh.get(token)
        if access_token is None:
            raise not_found("refresh token", token, ErrorSource.REFRESH_STORE)
        return await self.load_access(access_token)

    async def remove_refresh(self, token: str) -> None:
        with self._lock:
            self._refresh.pop(token, None)

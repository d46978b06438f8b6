"""
Reference resolution shared by all storage backends.

Stored records hold their references as keys. These helpers turn rows
into loaded records, walking an access grant's rotation chain with an
explicit loop bounded by a hop limit and a visited set.
"""

import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Set

from ..core.types import Client, AuthorizationGrant, AccessGrant, as_utc
from ..errors import ErrorSource, NotFoundError, not_found, reference_inconsistent


logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
RowFetcher = Callable[[str], Awaitable[Optional[Row]]]
ClientLoader = Callable[[str], Awaitable[Client]]
AuthorizeLoader = Callable[[str], Awaitable[AuthorizationGrant]]


async def _resolve(loader: Callable[[str], Awaitable[Any]], key: str, record_type: str,
                   source: ErrorSource, referrer: str) -> Any:
    try:
        return await loader(key)
    except NotFoundError as e:
        raise reference_inconsistent(
            record_type, key, source, f"referenced by {referrer}: {e.message}", cause=e
        ) from e


async def build_authorization(row: Row, load_client: ClientLoader) -> AuthorizationGrant:
    """Turn an authorization row into a grant with its client resolved."""
    client = await _resolve(
        load_client, row["client_id"], "client", ErrorSource.AUTHORIZE_STORE, "authorization code"
    )
    return AuthorizationGrant(
        code=row["code"],
        client=client,
        expires_in=row["expires_in"],
        scope=row["scope"],
        redirect_uri=row["redirect_uri"],
        state=row["state"],
        created_at=as_utc(row["created_at"]),
    )


async def collect_chain(access_token: str, fetch_row: RowFetcher, max_depth: int) -> List[Row]:
    """
    Fetch the rows of a rotation chain, newest first.

    Raises NotFoundError if the head is missing and
    ReferenceInconsistentError if a predecessor is missing, the chain
    revisits a token, or it is longer than ``max_depth``.
    """
    rows: List[Row] = []
    visited: Set[str] = set()
    token = access_token

    while token:
        if token in visited:
            logger.warning(f"Rotation chain of {access_token[:8]}... revisits a token")
            raise reference_inconsistent(
                "access grant", token, ErrorSource.ACCESS_STORE, "rotation chain contains a cycle"
            )
        if len(rows) >= max_depth:
            logger.warning(f"Rotation chain of {access_token[:8]}... exceeds {max_depth} grants")
            raise reference_inconsistent(
                "access grant", token, ErrorSource.ACCESS_STORE,
                f"rotation chain longer than {max_depth} grants"
            )

        row = await fetch_row(token)
        if row is None:
            if not rows:
                raise not_found("access grant", token, ErrorSource.ACCESS_STORE)
            raise reference_inconsistent(
                "access grant", token, ErrorSource.ACCESS_STORE, "predecessor grant is missing"
            )

        visited.add(token)
        rows.append(row)
        token = row["previous_access_token"]

    return rows


async def build_access_grant(access_token: str, fetch_row: RowFetcher, load_client: ClientLoader,
                             load_authorize: AuthorizeLoader, max_depth: int) -> AccessGrant:
    """Load an access grant and its whole resolved lineage."""
    rows = await collect_chain(access_token, fetch_row, max_depth)

    # oldest first so each grant can point at its already built predecessor
    grant: Optional[AccessGrant] = None
    for row in reversed(rows):
        client = await _resolve(
            load_client, row["client_id"], "client", ErrorSource.ACCESS_STORE, "access grant"
        )
        authorization = None
        if row["authorization_code"]:
            authorization = await _resolve(
                load_authorize, row["authorization_code"], "authorization code",
                ErrorSource.ACCESS_STORE, "access grant"
            )
        grant = AccessGrant(
            access_token=row["access_token"],
            client=client,
            authorization=authorization,
            previous=grant,
            refresh_token=row["refresh_token"],
            expires_in=row["expires_in"],
            scope=row["scope"],
            redirect_uri=row["redirect_uri"],
            created_at=as_utc(row["created_at"]),
        )

    logger.debug(f"Resolved access grant {access_token[:8]}... with {len(rows)} grant(s) in lineage")
    return grant


def access_row(grant: AccessGrant) -> dict:
    """Flatten an access grant into the columns it is stored as."""
    return {
        "access_token": grant.access_token,
        "client_id": grant.client.id,
        "authorization_code": grant.authorization_code,
        "previous_access_token": grant.previous_access_token,
        "refresh_token": grant.refresh_token,
        "expires_in": grant.expires_in,
        "scope": grant.scope,
        "redirect_uri": grant.redirect_uri,
        "created_at": as_utc(grant.created_at),
    }


def authorize_row(grant: AuthorizationGrant) -> dict:
    """Flatten an authorization grant into the columns it is stored as."""
    return {
        "code": grant.code,
        "client_id": grant.client.id,
        "expires_in": grant.expires_in,
        "scope": grant.scope,
        "redirect_uri": grant.redirect_uri,
        "state": grant.state,
        "created_at": as_utc(grant.created_at),
    }

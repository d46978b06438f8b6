# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Core record types for grant storage.

Clients, authorization grants and access grants are plain dataclasses.
References between them are held by value once loaded; in storage they
are kept as keys and resolved on load.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, Optional
from dataclasses import dataclass, field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalise a datetime to aware UTC, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Client:
    """A registered client application"""
    id: str
    secret: str
    redirect_uri: str

    def to_dict(self) -> Dict[str, Any]:
        # the secret never leaves through serialisation
        return {"id": self.id, "redirect_uri": self.redirect_uri}


@dataclass
class AuthorizationGrant:
    """
    A one-time authorization code bound to a client.

    Expiry is advisory: the store keeps expired codes until the caller
    removes them, and single use is enforced by the caller.
    """
    code: str
    client: Client
    expires_in: int
    scope: str = ""
    redirect_uri: str = ""
    state: str = ""
    created_at: datetime = field(default_factory=utc_now)

    def expire_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.expires_in)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utc_now()) > self.expire_at()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "client_id": self.client.id,
            "expires_in": self.expires_in,
            "scope": self.scope,
            "redirect_uri": self.redirect_uri,
            "state": self.state,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class AccessGrant:
    """
    An issued access token, its optional refresh token and its lineage.

    ``previous`` is the access grant this one replaced on refresh. A
    loaded grant carries its whole resolved chain.
    """
    access_token: str
    client: Client
    authorization: Optional[AuthorizationGrant] = None
    previous: Optional["AccessGrant"] = field(default=None, repr=False)
    refresh_token: str = ""
    expires_in: int = 3600
    scope: str = ""
    redirect_uri: str = ""
    created_at: datetime = field(default_factory=utc_now)

    @property
    def authorization_code(self) -> str:
        return self.authorization.code if self.authorization else ""

    @property
    def previous_access_token(self) -> str:
        return self.previous.access_token if self.previous else ""

    def expire_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.expires_in)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utc_now()) > self.expire_at()

    def lineage(self) -> Iterator["AccessGrant"]:
        """Yield this grant followed by each resolved predecessor, newest first."""
        grant: Optional[AccessGrant] = self
        while grant is not None:
            yield grant
            grant = grant.previous

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "client_id": self.client.id,
            "authorization_code": self.authorization_code,
            "previous_access_token": self.previous_access_token,
            "has_refresh_token": bool(self.refresh_token),
            "expires_in": self.expires_in,
            "scope": self.scope,
            "redirect_uri": self.redirect_uri,
            "created_at": self.created_at.isoformat(),
        }

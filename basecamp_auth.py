"""
Authentication strategies for the Basecamp Classic API.

A strategy produces the headers added to every request and reports whether it
can still be used. Strategies are immutable: refreshing an OAuth token means
building a new ``OAuth2Authentication`` and assigning it to the client.
"""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional


class AuthenticationInterface(ABC):
    """Interface for authentication strategies."""

    @abstractmethod
    def get_headers(self) -> Dict[str, str]:
        """Return the headers to add to each request."""

    @abstractmethod
    def is_valid(self) -> bool:
        """Return True if the credentials can be used right now."""


@dataclass(frozen=True)
class BasicAuthentication(AuthenticationInterface):
    """
    HTTP Basic Authentication with a username (email) and password.

    Basic credentials carry no expiry, so they are always valid locally; the
    server may still reject them with a 401.
    """

    username: str
    password: str = field(repr=False)

    def is_valid(self) -> bool:
        return True

    def get_headers(self) -> Dict[str, str]:
        credentials = f"{self.username}:{self.password}".encode("utf-8")
        return {"Authorization": "Basic " + base64.b64encode(credentials).decode("ascii")}


def _utc(moment: datetime) -> datetime:
    # naive datetimes are taken to be UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class OAuth2Authentication(AuthenticationInterface):
    """
    OAuth 2.0 bearer token authentication.

    Args:
        access_token (str): The Launchpad access token
        expires_at (datetime, optional): When the token stops working. None
            means the token never expires locally.
    """

    access_token: str = field(repr=False)
    expires_at: Optional[datetime] = None

    def get_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    def is_valid(self) -> bool:
        if self.expires_at is None:
            return True
        return _utc(self.expires_at) > datetime.now(timezone.utc)

    @classmethod
    def from_token_response(cls, token_data: Dict[str, Any], now: Optional[datetime] = None):
        """Build a strategy from a Launchpad token response.

        ``expires_in`` is a number of seconds relative to ``now``; when absent
        the token gets no expiry.
        """
        expires_in = token_data.get("expires_in")
        expires_at = None
        if expires_in is not None:
            now = _utc(now) if now is not None else datetime.now(timezone.utc)
            expires_at = now + timedelta(seconds=int(expires_in))
        return cls(access_token=token_data["access_token"], expires_at=expires_at)

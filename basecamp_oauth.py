"""
OAuth 2.0 helpers for 37signals Launchpad.

Covers the web-server flow used by Basecamp Classic: build the authorization
URL, exchange the callback code for tokens, refresh an expired access token
and look up the accounts a token can reach. Tokens are returned as the raw
Launchpad responses; turn them into a strategy with
``OAuth2Authentication.from_token_response``. Storing tokens is up to the
caller.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import requests

from basecamp_exceptions import OAuthError

logger = logging.getLogger('basecamp_oauth')
logger.addHandler(logging.NullHandler())

LAUNCHPAD_URL = "https://launchpad.37signals.com"
AUTHORIZATION_URL = f"{LAUNCHPAD_URL}/authorization/new"
TOKEN_URL = f"{LAUNCHPAD_URL}/authorization/token"
AUTHORIZATION_INFO_URL = f"{LAUNCHPAD_URL}/authorization.json"
USER_AGENT = "basecamp-classic-client OAuth (python-requests)"
TIMEOUT = (10, 30)


def build_authorization_url(client_id: str, redirect_uri: str) -> str:
    """Return the URL to send the user to for granting access."""
    query = urlencode({
        "type": "web_server",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
    })
    return f"{AUTHORIZATION_URL}?{query}"


def _send(session, method, url, **kwargs):
    kwargs.setdefault("timeout", TIMEOUT)
    try:
        if session is None:
            response = requests.request(method, url, **kwargs)
        else:
            response = session.request(method, url, **kwargs)
    except requests.RequestException as e:
        logger.error(f"Launchpad request to {url} failed: {e}")
        raise OAuthError(f"Launchpad request failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"Launchpad returned {response.status_code} for {url}: {response.text}")
        raise OAuthError(
            f"Launchpad request failed (HTTP {response.status_code}): {response.text}",
            response.status_code,
            response.text,
        )

    try:
        return response.json()
    except ValueError as e:
        raise OAuthError(f"Invalid JSON from Launchpad: {e}", response.status_code, response.text) from e


def _request_token(form: Dict[str, str], session=None) -> Dict[str, Any]:
    token_data = _send(
        session, "POST", TOKEN_URL,
        data=form,
        headers={"User-Agent": USER_AGENT, "Content-Type": "application/x-www-form-urlencoded"},
    )
    if not isinstance(token_data, dict) or "access_token" not in token_data:
        raise OAuthError(f"Invalid token response: {token_data}")
    return token_data


def exchange_code(client_id: str, client_secret: str, redirect_uri: str, code: str,
                  session: Optional[requests.Session] = None) -> Dict[str, Any]:
    """
    Exchange an authorization code for tokens.

    Args:
        client_id (str): Integration client ID
        client_secret (str): Integration client secret
        redirect_uri (str): Redirect URI registered for the integration
        code (str): The ``code`` parameter received on the redirect URI
        session (requests.Session, optional): HTTP transport to use

    Returns:
        dict: ``access_token``, ``refresh_token`` and ``expires_in`` (seconds)
    """
    logger.info("Exchanging authorization code for access token")
    return _request_token({
        "type": "web_server",
        "client_id": client_id,
        "client_secret": client_secret,
        "redirect_uri": redirect_uri,
        "code": code,
    }, session)


def refresh_access_token(client_id: str, client_secret: str, refresh_token: str,
                         session: Optional[requests.Session] = None) -> Dict[str, Any]:
    """Get a new access token using a refresh token."""
    logger.info("Refreshing access token")
    return _request_token({
        "type": "refresh",
        "client_id": client_id,
        "client_secret": client_secret,
        "refresh_token": refresh_token,
    }, session)


def get_authorization(access_token: str, session: Optional[requests.Session] = None) -> Dict[str, Any]:
    """
    Get the identity and accounts an access token belongs to.

    Returns:
        dict: ``identity`` and ``accounts`` as returned by Launchpad
    """
    info = _send(
        session, "GET", AUTHORIZATION_INFO_URL,
        headers={"User-Agent": USER_AGENT, "Authorization": f"Bearer {access_token}"},
    )
    if not isinstance(info, dict) or "accounts" not in info:
        raise OAuthError(f"Invalid account info response: {info}")
    return info


def bcx_accounts(authorization: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Filter the accounts of an authorization down to Basecamp Classic ones."""
    return [account for account in authorization.get("accounts", []) if account.get("product") == "bcx"]

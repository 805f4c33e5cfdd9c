"""Shared fixtures for the Basecamp Classic client tests."""

from unittest.mock import MagicMock

import pytest
import requests

from basecamp_auth import OAuth2Authentication
from basecamp_client import BasecampClient

ACCOUNT_ID = "999999999"
API_BASE = f"https://basecamp.com/{ACCOUNT_ID}/api/v1"


def make_response(status_code=200, body=b"", reason=None, url=API_BASE):
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode("utf-8") if isinstance(body, str) else body
    response.reason = reason
    response.url = url
    response.encoding = "utf-8"
    return response


@pytest.fixture
def session():
    session = MagicMock(spec=requests.Session)
    session.request.return_value = make_response(200, b'{"id": 1}')
    return session


@pytest.fixture
def client(session):
    return BasecampClient(ACCOUNT_ID, OAuth2Authentication("test-token"), session=session)

"""
Exceptions raised by the Basecamp Classic client.

Callers only ever see these types; raw ``requests`` exceptions are translated
by the request engine in ``basecamp_client``.
"""

from typing import Optional


class BasecampApiError(Exception):
    """Base exception for all Basecamp API errors."""


class AuthenticationError(BasecampApiError):
    """Authentication is missing, expired or was rejected by the server."""

    def __init__(self, message, status_code=0):
        super().__init__(message)
        self.status_code = status_code


class RequestError(BasecampApiError):
    """An HTTP request failed with a non-success response."""

    def __init__(self, message: str, status_code: int = 0, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class TransportError(RequestError):
    """The request never produced a response (DNS, connection, timeout)."""


class ResponseParseError(BasecampApiError):
    """A successful response carried a body that is not valid JSON."""

    def __init__(self, message, status_code=0, response_body=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class OAuthError(BasecampApiError):
    """The Launchpad authorization flow failed."""

    def __init__(self, message, status_code=0, response_body=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

import logging
import os
import threading
from datetime import datetime
from typing import Any, Dict, Optional, Union

import requests
from dotenv import load_dotenv

from basecamp_auth import AuthenticationInterface, BasicAuthentication, OAuth2Authentication
from basecamp_exceptions import (
    AuthenticationError,
    BasecampApiError,
    RequestError,
    ResponseParseError,
    TransportError,
)
from basecamp_resources import (
    CalendarEventsResource,
    CommentsResource,
    DocumentsResource,
    EventsResource,
    GroupsResource,
    MessagesResource,
    PeopleResource,
    ProjectsResource,
    TodolistsResource,
    TodosResource,
    TopicsResource,
    UploadsResource,
)

logger = logging.getLogger('basecamp_client')
logger.addHandler(logging.NullHandler())

BASE_URL = "https://basecamp.com"
API_VERSION = "/api/v1"
DEFAULT_USER_AGENT = "basecamp-classic-client (python-requests)"
DEFAULT_TIMEOUT = (10, 30)

JsonBody = Union[Dict[str, Any], list]


def _redact(headers: Dict[str, str]) -> Dict[str, str]:
    return {key: ("***" if key.lower() == "authorization" else value) for key, value in headers.items()}


def _read_body(response) -> Optional[str]:
    """Best-effort read of a response body; None when it cannot be read."""
    try:
        return response.text
    except (requests.RequestException, RuntimeError, UnicodeDecodeError):
        return None


def _parse_expires_at(value: str) -> datetime:
    # fromisoformat only accepts a trailing Z from Python 3.11 on
    if value.endswith(('Z', 'z')):
        value = value[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise ValueError(f"Invalid BASECAMP_TOKEN_EXPIRES_AT {value!r}: expected an ISO 8601 timestamp") from e


class BasecampClient:
    """
    Client for the Basecamp Classic (BCX) API.

    Every resource class goes through the four verb methods below, which
    handle authentication, headers, JSON encoding and error translation.
    """

    def __init__(self, account_id: str, authentication: AuthenticationInterface,
                 session: Optional[requests.Session] = None, logger: Optional[logging.Logger] = None,
                 user_agent: Optional[str] = None, timeout=DEFAULT_TIMEOUT):
        """
        Initialize the Basecamp client.

        Args:
            account_id (str): Basecamp account ID, inserted verbatim into the URL
            authentication (AuthenticationInterface): Basic or OAuth2 strategy
            session (requests.Session, optional): HTTP transport to use
            logger (logging.Logger, optional): Logger for request/error records
            user_agent (str, optional): User agent for API requests
            timeout (float or tuple, optional): (connect, read) timeout passed to requests
        """
        self._account_id = account_id
        self._authentication = authentication
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.logger = logger if logger is not None else logging.getLogger('basecamp_client')
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.timeout = timeout

        self._resources = {}
        self._resources_lock = threading.Lock()

    @classmethod
    def from_env(cls, session=None, logger=None):
        """
        Build a client from environment variables (a .env file is loaded first).

        Reads BASECAMP_ACCOUNT_ID, BASECAMP_AUTH_MODE, BASECAMP_USERNAME,
        BASECAMP_PASSWORD, BASECAMP_ACCESS_TOKEN, BASECAMP_TOKEN_EXPIRES_AT,
        USER_AGENT, BASECAMP_CONNECT_TIMEOUT and BASECAMP_READ_TIMEOUT.
        """
        load_dotenv()

        account_id = os.getenv('BASECAMP_ACCOUNT_ID')
        access_token = os.getenv('BASECAMP_ACCESS_TOKEN')
        auth_mode = (os.getenv('BASECAMP_AUTH_MODE') or ('oauth' if access_token else 'basic')).lower()

        if auth_mode == 'basic':
            username = os.getenv('BASECAMP_USERNAME')
            password = os.getenv('BASECAMP_PASSWORD')
            if not all([username, password, account_id]):
                raise ValueError("Missing required credentials for Basic Auth. Set BASECAMP_USERNAME, "
                                 "BASECAMP_PASSWORD and BASECAMP_ACCOUNT_ID in .env or the environment.")
            authentication = BasicAuthentication(username, password)

        elif auth_mode == 'oauth':
            if not all([access_token, account_id]):
                raise ValueError("Missing required credentials for OAuth. Set BASECAMP_ACCESS_TOKEN "
                                 "and BASECAMP_ACCOUNT_ID in .env or the environment.")
            expires_at = os.getenv('BASECAMP_TOKEN_EXPIRES_AT')
            authentication = OAuth2Authentication(
                access_token,
                _parse_expires_at(expires_at) if expires_at else None,
            )

        else:
            raise ValueError("Invalid BASECAMP_AUTH_MODE. Must be 'basic' or 'oauth'")

        timeout = (
            float(os.getenv('BASECAMP_CONNECT_TIMEOUT', DEFAULT_TIMEOUT[0])),
            float(os.getenv('BASECAMP_READ_TIMEOUT', DEFAULT_TIMEOUT[1])),
        )
        return cls(account_id, authentication, session=session, logger=logger,
                   user_agent=os.getenv('USER_AGENT'), timeout=timeout)

    @property
    def account_id(self) -> str:
        return self._account_id

    @property
    def authentication(self) -> AuthenticationInterface:
        return self._authentication

    @authentication.setter
    def authentication(self, authentication: AuthenticationInterface):
        """Swap in a new strategy, e.g. after refreshing an OAuth token."""
        self._authentication = authentication

    def close(self):
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def test_connection(self):
        """Test the connection to Basecamp API."""
        try:
            self.people().me()
        except BasecampApiError as e:
            return False, f"Connection failed: {e}"
        return True, "Connection successful"

    # Resource accessors
    def _resource(self, name, resource_class):
        resource = self._resources.get(name)
        if resource is None:
            with self._resources_lock:
                resource = self._resources.get(name)
                if resource is None:
                    resource = resource_class(self)
                    self._resources[name] = resource
        return resource

    def projects(self) -> ProjectsResource:
        """Get Projects resource client."""
        return self._resource('projects', ProjectsResource)

    def todolists(self) -> TodolistsResource:
        """Get Todolists resource client."""
        return self._resource('todolists', TodolistsResource)

    def todos(self) -> TodosResource:
        """Get Todos resource client."""
        return self._resource('todos', TodosResource)

    def people(self) -> PeopleResource:
        """Get People resource client."""
        return self._resource('people', PeopleResource)

    def messages(self) -> MessagesResource:
        """Get Messages resource client."""
        return self._resource('messages', MessagesResource)

    def comments(self) -> CommentsResource:
        """Get Comments resource client."""
        return self._resource('comments', CommentsResource)

    def documents(self) -> DocumentsResource:
        """Get Documents resource client."""
        return self._resource('documents', DocumentsResource)

    def uploads(self) -> UploadsResource:
        """Get Uploads (attachments) resource client."""
        return self._resource('uploads', UploadsResource)

    def events(self) -> EventsResource:
        """Get Events resource client."""
        return self._resource('events', EventsResource)

    def calendar_events(self) -> CalendarEventsResource:
        """Get Calendar Events resource client."""
        return self._resource('calendar_events', CalendarEventsResource)

    def topics(self) -> TopicsResource:
        """Get Topics resource client."""
        return self._resource('topics', TopicsResource)

    def groups(self) -> GroupsResource:
        """Get Groups resource client."""
        return self._resource('groups', GroupsResource)

    # Verb methods
    def get(self, endpoint: str, query: Optional[Dict[str, Any]] = None) -> JsonBody:
        """Make a GET request to the Basecamp API."""
        return self._request('GET', endpoint, params=query)

    def post(self, endpoint: str, data: Union[JsonBody, str, bytes, None] = None,
             headers: Optional[Dict[str, str]] = None) -> JsonBody:
        """
        Make a POST request to the Basecamp API.

        Args:
            endpoint (str): Path below the API base, e.g. '/projects.json'
            data (dict, list, str or bytes, optional): JSON payload, or a raw
                body (file upload) sent verbatim
            headers (dict, optional): Headers overriding the defaults, e.g.
                Content-Type for raw uploads
        """
        if isinstance(data, (str, bytes)):
            return self._request('POST', endpoint, body=data, headers=headers)
        return self._request('POST', endpoint, json_data=data if data is not None else {}, headers=headers)

    def put(self, endpoint: str, data: Optional[JsonBody] = None) -> JsonBody:
        """Make a PUT request to the Basecamp API."""
        return self._request('PUT', endpoint, json_data=data if data is not None else {})

    def delete(self, endpoint: str) -> None:
        """Make a DELETE request to the Basecamp API."""
        self._request('DELETE', endpoint)

    def _build_url(self, endpoint):
        return f"{BASE_URL}/{self._account_id}{API_VERSION}{endpoint}"

    def _build_headers(self, headers=None):
        request_headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        request_headers.update(self._authentication.get_headers())
        if headers:
            request_headers.update(headers)
        return request_headers

    def _request(self, method, endpoint, params=None, json_data=None, body=None, headers=None):
        """
        Make an HTTP request to the Basecamp API.

        Returns:
            dict or list: Decoded JSON, or {} for 204 and DELETE responses

        Raises:
            AuthenticationError: Token invalid/expired locally, or a 401 response
            RequestError: Any other non-2xx response
            TransportError: No response at all
            ResponseParseError: A 2xx response whose body is not JSON
        """
        if not self._authentication.is_valid():
            raise AuthenticationError("Authentication token is invalid or expired")

        url = self._build_url(endpoint)
        options = {
            "headers": self._build_headers(headers),
            "timeout": self.timeout,
        }
        if params:
            options["params"] = params
        if json_data is not None:
            options["json"] = json_data
        if body is not None:
            options["data"] = body

        logged_options = dict(options, headers=_redact(options["headers"]))
        if body is not None:
            logged_options["data"] = f"<{len(body)} bytes>"
        self.logger.debug(f"Basecamp API request: {method} {url}",
                          extra={"method": method, "url": url, "options": logged_options})

        try:
            response = self.session.request(method, url, **options)
        except requests.RequestException as e:
            self.logger.error(f"Basecamp API transport error: {e}",
                              extra={"status_code": 0, "response_body": None, "error": str(e)})
            raise TransportError(f"Request failed: {e}") from e

        status_code = response.status_code
        if not 200 <= status_code < 300:
            raise self._error_for(response)

        self.logger.debug(f"Basecamp API response: {status_code}", extra={"status_code": status_code})

        # DELETE responses are usually 204 No Content and never carry JSON we need
        if status_code == 204 or method == 'DELETE':
            return {}

        try:
            return response.json()
        except ValueError as e:
            response_body = _read_body(response)
            message = f"Invalid JSON in response with status {status_code}: {e}"
            self.logger.error(f"Basecamp API error: {message}",
                              extra={"status_code": status_code, "response_body": response_body, "error": message})
            raise ResponseParseError(message, status_code, response_body) from e

    def _error_for(self, response):
        status_code = response.status_code
        response_body = _read_body(response)
        status_line = " ".join(filter(None, [str(status_code), response.reason]))
        message = f"{status_line} for url: {response.url}"

        self.logger.error(f"Basecamp API error: {message}",
                          extra={"status_code": status_code, "response_body": response_body, "error": message})

        if status_code == 401:
            return AuthenticationError("Authentication failed", status_code)

        return RequestError(f"Request failed with status {status_code}: {message}", status_code, response_body)

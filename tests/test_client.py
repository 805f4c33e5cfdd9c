"""Tests for the Basecamp Classic request engine."""

import logging
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, PropertyMock, patch

import pytest
import requests

from basecamp_auth import AuthenticationInterface, BasicAuthentication, OAuth2Authentication
from basecamp_client import BasecampClient
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
from conftest import ACCOUNT_ID, API_BASE, make_response


def expired_auth():
    return OAuth2Authentication("expired-token", datetime.now(timezone.utc) - timedelta(hours=1))


class StaticHeaderAuth(AuthenticationInterface):
    def __init__(self, headers, valid=True):
        self.headers = headers
        self.valid = valid

    def get_headers(self):
        return dict(self.headers)

    def is_valid(self):
        return self.valid


class TestClientBasics:
    def test_account_id(self, client):
        assert client.account_id == ACCOUNT_ID

    def test_default_session_is_requests_session(self):
        assert isinstance(BasecampClient(ACCOUNT_ID, BasicAuthentication("a", "b")).session, requests.Session)

    def test_swap_authentication(self, session):
        client = BasecampClient(ACCOUNT_ID, expired_auth(), session=session)
        with pytest.raises(AuthenticationError):
            client.get('/projects.json')

        client.authentication = OAuth2Authentication("fresh-token")
        assert client.get('/projects.json') == {"id": 1}
        headers = session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer fresh-token"

    def test_close_closes_owned_session(self):
        with patch("basecamp_client.requests.Session") as session_class:
            client = BasecampClient(ACCOUNT_ID, BasicAuthentication("a", "b"))
            client.close()
        session_class.return_value.close.assert_called_once_with()

    def test_close_leaves_injected_session_open(self, client, session):
        client.close()
        session.close.assert_not_called()

    def test_context_manager_closes_owned_session(self):
        with patch("basecamp_client.requests.Session") as session_class:
            with BasecampClient(ACCOUNT_ID, BasicAuthentication("a", "b")) as client:
                assert client.session is session_class.return_value
            session_class.return_value.close.assert_called_once_with()


class TestResourceAccessors:
    @pytest.mark.parametrize("accessor,resource_class", [
        ("projects", ProjectsResource),
        ("todolists", TodolistsResource),
        ("todos", TodosResource),
        ("people", PeopleResource),
        ("messages", MessagesResource),
        ("comments", CommentsResource),
        ("documents", DocumentsResource),
        ("uploads", UploadsResource),
        ("events", EventsResource),
        ("calendar_events", CalendarEventsResource),
        ("topics", TopicsResource),
        ("groups", GroupsResource),
    ])
    def test_accessor_returns_cached_resource(self, client, accessor, resource_class):
        resource = getattr(client, accessor)()
        assert isinstance(resource, resource_class)
        assert resource.client is client
        assert getattr(client, accessor)() is resource

    def test_clients_do_not_share_resources(self, session):
        first = BasecampClient("1", OAuth2Authentication("a"), session=session)
        second = BasecampClient("2", OAuth2Authentication("b"), session=session)
        assert first.projects() is not second.projects()

    def test_concurrent_first_access_creates_one_instance(self, client):
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(client.todos())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(result is results[0] for result in results)


class TestRequests:
    def test_get_returns_decoded_json(self, client, session):
        assert client.get('/projects.json') == {"id": 1}

        args, kwargs = session.request.call_args
        assert args == ('GET', f"{API_BASE}/projects.json")
        assert kwargs["timeout"] == (10, 30)
        assert "json" not in kwargs
        assert "data" not in kwargs

    def test_get_returns_list(self, client, session):
        session.request.return_value = make_response(200, b'[{"id": 1}, {"id": 2}]')
        assert client.get('/projects.json') == [{"id": 1}, {"id": 2}]

    def test_get_passes_query(self, client, session):
        client.get('/events.json', {"since": "2026-01-01T00:00:00Z", "page": 2})
        assert session.request.call_args.kwargs["params"] == {"since": "2026-01-01T00:00:00Z", "page": 2}

    def test_get_without_query_sends_no_params(self, client, session):
        client.get('/projects.json')
        assert "params" not in session.request.call_args.kwargs

    def test_account_id_is_inserted_verbatim(self, session):
        client = BasecampClient("acct-42", BasicAuthentication("a", "b"), session=session)
        client.get('/people/me.json')
        assert session.request.call_args.args[1] == "https://basecamp.com/acct-42/api/v1/people/me.json"

    def test_default_headers(self, client, session):
        client.get('/projects.json')
        headers = session.request.call_args.kwargs["headers"]
        assert headers["Accept"] == "application/json"
        assert headers["Content-Type"] == "application/json"
        assert headers["User-Agent"]
        assert headers["Authorization"] == "Bearer test-token"

    def test_custom_user_agent(self, session):
        client = BasecampClient(ACCOUNT_ID, OAuth2Authentication("t"), session=session,
                                user_agent="MyApp (me@example.com)")
        client.get('/projects.json')
        assert session.request.call_args.kwargs["headers"]["User-Agent"] == "MyApp (me@example.com)"

    def test_basic_auth_header(self, session):
        client = BasecampClient(ACCOUNT_ID, BasicAuthentication("user", "pass"), session=session)
        client.get('/projects.json')
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Basic dXNlcjpwYXNz"

    def test_strategy_headers_override_defaults(self, session):
        auth = StaticHeaderAuth({"Authorization": "Token x", "Accept": "application/vnd.custom+json"})
        client = BasecampClient(ACCOUNT_ID, auth, session=session)
        client.get('/projects.json')
        headers = session.request.call_args.kwargs["headers"]
        assert headers["Accept"] == "application/vnd.custom+json"
        assert headers["Authorization"] == "Token x"

    def test_timeout_is_passed_through(self, session):
        client = BasecampClient(ACCOUNT_ID, OAuth2Authentication("t"), session=session, timeout=(3, 7))
        client.get('/projects.json')
        assert session.request.call_args.kwargs["timeout"] == (3, 7)

    def test_post_sends_json(self, client, session):
        session.request.return_value = make_response(201, b'{"id": 5, "name": "New"}')
        assert client.post('/projects.json', {"name": "New"}) == {"id": 5, "name": "New"}

        args, kwargs = session.request.call_args
        assert args[0] == 'POST'
        assert kwargs["json"] == {"name": "New"}
        assert "data" not in kwargs

    def test_post_raw_body_with_custom_headers(self, client, session):
        session.request.return_value = make_response(200, b'{"token": "abc"}')
        payload = b"\x89PNG\r\n"

        result = client.post('/attachments.json', payload, {"Content-Type": "image/png", "Content-Length": "6"})

        assert result == {"token": "abc"}
        kwargs = session.request.call_args.kwargs
        assert kwargs["data"] == payload
        assert "json" not in kwargs
        assert kwargs["headers"]["Content-Type"] == "image/png"
        assert kwargs["headers"]["Content-Length"] == "6"
        assert kwargs["headers"]["Authorization"] == "Bearer test-token"

    def test_post_string_body_is_sent_verbatim(self, client, session):
        client.post('/attachments.json', "plain text", {"Content-Type": "text/plain"})
        assert session.request.call_args.kwargs["data"] == "plain text"

    def test_put_sends_json(self, client, session):
        client.put('/projects/1/todos/2.json', {"completed": True})
        args, kwargs = session.request.call_args
        assert args == ('PUT', f"{API_BASE}/projects/1/todos/2.json")
        assert kwargs["json"] == {"completed": True}

    def test_delete_returns_none(self, client, session):
        session.request.return_value = make_response(204)
        assert client.delete('/projects/1.json') is None
        assert session.request.call_args.args[0] == 'DELETE'

    def test_delete_does_not_parse_body(self, client, session):
        response = MagicMock(status_code=200)
        session.request.return_value = response
        assert client.delete('/projects/1.json') is None
        response.json.assert_not_called()

    def test_204_returns_empty_result_without_parsing(self, client, session):
        response = MagicMock(status_code=204)
        session.request.return_value = response
        assert client.put('/projects/1.json', {"archived": True}) == {}
        response.json.assert_not_called()

    def test_invalid_json_is_a_parse_error(self, client, session):
        session.request.return_value = make_response(200, b"<html>not json</html>")
        with pytest.raises(ResponseParseError) as exc_info:
            client.get('/projects.json')
        assert exc_info.value.status_code == 200
        assert exc_info.value.response_body == "<html>not json</html>"
        assert isinstance(exc_info.value, BasecampApiError)

    def test_no_retry_on_failure(self, client, session):
        session.request.return_value = make_response(500, b"oops")
        with pytest.raises(RequestError):
            client.get('/projects.json')
        assert session.request.call_count == 1


class TestErrors:
    @pytest.mark.parametrize("call", [
        lambda c: c.get('/projects.json'),
        lambda c: c.post('/projects.json', {"name": "x"}),
        lambda c: c.put('/projects/1.json', {"name": "x"}),
        lambda c: c.delete('/projects/1.json'),
    ])
    def test_invalid_authentication_fails_before_network(self, session, call):
        client = BasecampClient(ACCOUNT_ID, expired_auth(), session=session)
        with pytest.raises(AuthenticationError, match="Authentication token is invalid or expired"):
            call(client)
        session.request.assert_not_called()

    @pytest.mark.parametrize("call", [
        lambda c: c.get('/projects.json'),
        lambda c: c.post('/projects.json', {"name": "x"}),
        lambda c: c.put('/projects/1.json', {"name": "x"}),
        lambda c: c.delete('/projects/1.json'),
    ])
    def test_401_is_authentication_error(self, client, session, call):
        session.request.return_value = make_response(401, b"HTTP Basic: Access denied.", "Unauthorized")
        with pytest.raises(AuthenticationError, match="Authentication failed") as exc_info:
            call(client)
        assert exc_info.value.status_code == 401
        assert not isinstance(exc_info.value, RequestError)

    def test_400_is_request_error(self, client, session):
        session.request.return_value = make_response(400, b'{"error":"Bad Request"}', "Bad Request",
                                                     url=f"{API_BASE}/projects.json")
        with pytest.raises(RequestError) as exc_info:
            client.get('/projects.json')

        error = exc_info.value
        assert error.status_code == 400
        assert error.response_body == '{"error":"Bad Request"}'
        assert str(error).startswith("Request failed with status 400: 400 Bad Request")
        assert f"{API_BASE}/projects.json" in str(error)

    def test_404_and_500_are_request_errors(self, client, session):
        for status in (403, 404, 422, 500, 503):
            session.request.return_value = make_response(status, b"nope")
            with pytest.raises(RequestError) as exc_info:
                client.get('/projects/1.json')
            assert exc_info.value.status_code == status

    def test_unreadable_error_body_does_not_mask_error(self, client, session):
        response = MagicMock(status_code=500, reason="Internal Server Error", url=API_BASE)
        type(response).text = PropertyMock(side_effect=requests.exceptions.ChunkedEncodingError("closed"))
        session.request.return_value = response

        with pytest.raises(RequestError) as exc_info:
            client.get('/projects.json')
        assert exc_info.value.status_code == 500
        assert exc_info.value.response_body is None

    def test_transport_failure_is_transport_error(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError("Name or service not known")
        with pytest.raises(TransportError) as exc_info:
            client.get('/projects.json')

        error = exc_info.value
        assert isinstance(error, RequestError)
        assert error.status_code == 0
        assert error.response_body is None
        assert "Name or service not known" in str(error)
        assert isinstance(error.__cause__, requests.exceptions.ConnectionError)

    def test_timeout_is_transport_error(self, client, session):
        session.request.side_effect = requests.exceptions.ReadTimeout("read timed out")
        with pytest.raises(TransportError, match="read timed out"):
            client.get('/projects.json')


class TestLogging:
    def test_request_is_logged_with_redacted_authorization(self, client, caplog):
        caplog.set_level(logging.DEBUG, logger="basecamp_client")
        client.get('/projects.json', {"page": 1})

        record = next(r for r in caplog.records if r.getMessage().startswith("Basecamp API request"))
        assert record.method == "GET"
        assert record.url == f"{API_BASE}/projects.json"
        assert record.options["params"] == {"page": 1}
        assert record.options["headers"]["Authorization"] == "***"
        assert "test-token" not in caplog.text

    def test_raw_body_is_not_logged(self, client, caplog):
        caplog.set_level(logging.DEBUG, logger="basecamp_client")
        client.post('/attachments.json', b"binary-content", {"Content-Type": "application/octet-stream"})
        record = next(r for r in caplog.records if r.getMessage().startswith("Basecamp API request"))
        assert record.options["data"] == "<14 bytes>"

    def test_error_is_logged(self, client, session, caplog):
        caplog.set_level(logging.DEBUG, logger="basecamp_client")
        session.request.return_value = make_response(422, b'{"name":["is missing"]}', "Unprocessable Entity")

        with pytest.raises(RequestError):
            client.post('/projects.json', {})

        record = next(r for r in caplog.records if r.levelno == logging.ERROR)
        assert record.status_code == 422
        assert record.response_body == '{"name":["is missing"]}'

    def test_parse_error_is_logged(self, client, session, caplog):
        caplog.set_level(logging.DEBUG, logger="basecamp_client")
        session.request.return_value = make_response(200, b"<html>not json</html>")

        with pytest.raises(ResponseParseError):
            client.get('/projects.json')

        record = next(r for r in caplog.records if r.levelno == logging.ERROR)
        assert record.status_code == 200
        assert record.response_body == "<html>not json</html>"
        assert record.error.startswith("Invalid JSON in response with status 200")

    def test_injected_logger(self, session):
        logger = MagicMock()
        client = BasecampClient(ACCOUNT_ID, OAuth2Authentication("t"), session=session, logger=logger)
        assert client.get('/projects.json') == {"id": 1}
        assert logger.debug.called

        session.request.return_value = make_response(500, b"boom")
        with pytest.raises(RequestError):
            client.get('/projects.json')
        assert logger.error.called


class TestFromEnv:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("BASECAMP_ACCOUNT_ID", "BASECAMP_AUTH_MODE", "BASECAMP_USERNAME", "BASECAMP_PASSWORD",
                     "BASECAMP_ACCESS_TOKEN", "BASECAMP_TOKEN_EXPIRES_AT", "USER_AGENT",
                     "BASECAMP_CONNECT_TIMEOUT", "BASECAMP_READ_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)
        with patch("basecamp_client.load_dotenv"):
            yield

    def test_basic_mode(self, monkeypatch):
        monkeypatch.setenv("BASECAMP_ACCOUNT_ID", "123")
        monkeypatch.setenv("BASECAMP_USERNAME", "me@example.com")
        monkeypatch.setenv("BASECAMP_PASSWORD", "secret")

        client = BasecampClient.from_env()
        assert client.account_id == "123"
        assert client.authentication == BasicAuthentication("me@example.com", "secret")

    def test_oauth_mode_is_picked_from_access_token(self, monkeypatch):
        monkeypatch.setenv("BASECAMP_ACCOUNT_ID", "123")
        monkeypatch.setenv("BASECAMP_ACCESS_TOKEN", "tok")
        monkeypatch.setenv("BASECAMP_TOKEN_EXPIRES_AT", "2030-01-01T00:00:00+00:00")
        monkeypatch.setenv("USER_AGENT", "Tests (tests@example.com)")

        client = BasecampClient.from_env()
        assert client.authentication == OAuth2Authentication(
            "tok", datetime(2030, 1, 1, tzinfo=timezone.utc))
        assert client.user_agent == "Tests (tests@example.com)"

    def test_expiry_with_z_suffix(self, monkeypatch):
        monkeypatch.setenv("BASECAMP_ACCOUNT_ID", "123")
        monkeypatch.setenv("BASECAMP_ACCESS_TOKEN", "tok")
        monkeypatch.setenv("BASECAMP_TOKEN_EXPIRES_AT", "2030-01-01T00:00:00Z")

        client = BasecampClient.from_env()
        assert client.authentication.expires_at == datetime(2030, 1, 1, tzinfo=timezone.utc)

    def test_invalid_expiry_names_the_variable(self, monkeypatch):
        monkeypatch.setenv("BASECAMP_ACCOUNT_ID", "123")
        monkeypatch.setenv("BASECAMP_ACCESS_TOKEN", "tok")
        monkeypatch.setenv("BASECAMP_TOKEN_EXPIRES_AT", "next tuesday")
        with pytest.raises(ValueError, match="BASECAMP_TOKEN_EXPIRES_AT"):
            BasecampClient.from_env()

    def test_timeouts(self, monkeypatch):
        monkeypatch.setenv("BASECAMP_ACCOUNT_ID", "123")
        monkeypatch.setenv("BASECAMP_ACCESS_TOKEN", "tok")
        monkeypatch.setenv("BASECAMP_CONNECT_TIMEOUT", "2.5")
        monkeypatch.setenv("BASECAMP_READ_TIMEOUT", "60")
        assert BasecampClient.from_env().timeout == (2.5, 60.0)

    def test_missing_basic_credentials(self, monkeypatch):
        monkeypatch.setenv("BASECAMP_ACCOUNT_ID", "123")
        monkeypatch.setenv("BASECAMP_USERNAME", "me@example.com")
        with pytest.raises(ValueError, match="Basic Auth"):
            BasecampClient.from_env()

    def test_missing_account_for_oauth(self, monkeypatch):
        monkeypatch.setenv("BASECAMP_AUTH_MODE", "oauth")
        monkeypatch.setenv("BASECAMP_ACCESS_TOKEN", "tok")
        with pytest.raises(ValueError, match="OAuth"):
            BasecampClient.from_env()

    def test_invalid_mode(self, monkeypatch):
        monkeypatch.setenv("BASECAMP_AUTH_MODE", "kerberos")
        with pytest.raises(ValueError, match="Invalid BASECAMP_AUTH_MODE"):
            BasecampClient.from_env()


class TestConnection:
    def test_success(self, client, session):
        session.request.return_value = make_response(200, b'{"id": 7, "name": "Me"}')
        assert client.test_connection() == (True, "Connection successful")
        assert session.request.call_args.args[1] == f"{API_BASE}/people/me.json"

    def test_failure(self, client, session):
        session.request.return_value = make_response(401, b"denied")
        ok, message = client.test_connection()
        assert ok is False
        assert "Authentication failed" in message

"""Tests for the Jira client using httpx.MockTransport."""

import base64

import httpx
import pytest

from grove.config import JiraConfig
from grove.exceptions import ErrorKind, ProviderAuthError, ProviderNotConfiguredError, ProviderNotFoundError
from grove.jira import JiraClient, ticket_url
from grove.result import Err, Ok

BASE_URL = "https://acme.atlassian.net"


def _issue(key: str, summary: str = "Fix login", status: str = "In Progress") -> dict:
    return {"id": "10001", "key": key, "fields": {"summary": summary, "status": {"name": status}}}


def make_client(routes: dict[str, object], seen: list[httpx.Request] | None = None) -> JiraClient:
    """Client answering from *routes* (path -> JSON body or status code)."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        body = routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"errorMessages": ["Issue does not exist"]})
        if isinstance(body, int):
            return httpx.Response(body)
        return httpx.Response(200, json=body)

    return JiraClient(BASE_URL + "/", "dev@acme.io", "secret", transport=httpx.MockTransport(handler))


class TestGetTicket:
    def test_maps_issue_and_authenticates(self) -> None:
        seen: list[httpx.Request] = []
        client = make_client({"/rest/api/3/issue/PROJ-1": _issue("PROJ-1")}, seen)

        ticket = client.get_ticket("PROJ-1").unwrap()

        assert ticket.key == "PROJ-1"
        assert ticket.summary == "Fix login"
        assert ticket.status == "In Progress"
        assert ticket.url == f"{BASE_URL}/browse/PROJ-1"
        expected = base64.b64encode(b"dev@acme.io:secret").decode()
        assert seen[0].headers["Authorization"] == f"Basic {expected}"

    def test_not_found(self) -> None:
        result = make_client({}).get_ticket("PROJ-9")

        assert isinstance(result, Err)
        assert isinstance(result.error, ProviderNotFoundError)
        assert result.message == 'Ticket "PROJ-9" not found'

    def test_auth_failure(self) -> None:
        result = make_client({"/rest/api/3/issue/PROJ-1": 401}).get_ticket("PROJ-1")

        assert isinstance(result.error, ProviderAuthError)
        assert result.message == "Jira authentication failed."

    def test_malformed_issue(self) -> None:
        result = make_client({"/rest/api/3/issue/PROJ-1": {"key": "PROJ-1"}}).get_ticket("PROJ-1")

        assert isinstance(result, Err)
        assert "KeyError" in result.message

    def test_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("name resolution failed", request=request)

        client = JiraClient(BASE_URL, "dev@acme.io", "secret", transport=httpx.MockTransport(handler))

        assert client.get_ticket("PROJ-1").kind == ErrorKind.CONNECTIVITY


class TestMultipleTickets:
    def test_partial_failure_keeps_found_tickets(self) -> None:
        client = make_client({"/rest/api/3/issue/PROJ-1": _issue("PROJ-1")})

        result = client.get_tickets(["PROJ-1", "PROJ-2"])

        assert [t.key for t in result.unwrap()] == ["PROJ-1"]

    def test_all_failed(self) -> None:
        result = make_client({}).get_tickets(["PROJ-1", "PROJ-2"])

        assert isinstance(result, Err)
        assert result.message.startswith("Failed to fetch all tickets: PROJ-1:")

    def test_search(self) -> None:
        seen: list[httpx.Request] = []
        issues = [_issue("PROJ-1"), _issue("PROJ-2", status="Done")]
        client = make_client({"/rest/api/3/search": {"issues": issues}}, seen)

        result = client.search("assignee = currentUser()", max_results=10)

        assert [t.status for t in result.unwrap()] == ["In Progress", "Done"]
        assert seen[0].url.params["jql"] == "assignee = currentUser()"
        assert seen[0].url.params["maxResults"] == "10"

    def test_connection(self) -> None:
        assert make_client({"/rest/api/3/myself": {"accountId": "x"}}).test_connection() == Ok(True)
        assert isinstance(make_client({"/rest/api/3/myself": 401}).test_connection(), Err)


class TestFromConfig:
    def test_not_configured(self) -> None:
        with pytest.raises(ProviderNotConfiguredError, match="Jira"):
            JiraClient.from_config(None)
        with pytest.raises(ProviderNotConfiguredError):
            JiraClient.from_config(JiraConfig(base_url=BASE_URL))

    def test_token_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JIRA_API_TOKEN", "tok")

        with JiraClient.from_config(JiraConfig(base_url=BASE_URL, email="dev@acme.io")) as client:
            assert client.get_ticket_url("PROJ-1") == f"{BASE_URL}/browse/PROJ-1"

    def test_missing_token(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("JIRA_API_TOKEN", raising=False)
        monkeypatch.setattr("grove.jira.get_token", lambda env_var, key: None)

        with pytest.raises(ProviderAuthError, match="No Jira API token"):
            JiraClient.from_config(JiraConfig(base_url=BASE_URL, email="dev@acme.io"))


def test_ticket_url_strips_slash() -> None:
    assert ticket_url(BASE_URL + "/", "PROJ-1") == f"{BASE_URL}/browse/PROJ-1"

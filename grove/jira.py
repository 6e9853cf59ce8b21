"""Jira Cloud REST client for the tickets attached to a task."""

from typing import Any

import httpx

from grove.config import JiraConfig
from grove.constants import JIRA_SEARCH_LIMIT, PROVIDER_TIMEOUT_SECONDS
from grove.exceptions import (
    ConnectivityError,
    GroveError,
    ProviderAuthError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderNotFoundError,
)
from grove.logging import get_logger
from grove.models import JiraTicket
from grove.result import Err, Ok, Result
from grove.secrets import get_token

logger = get_logger("jira")

_JIRA_AUTH_HINT = "Check jira.email in the Grove config and set JIRA_API_TOKEN."


def ticket_url(base_url: str, key: str) -> str:
    return f"{base_url.rstrip('/')}/browse/{key}"


def parse_issue(issue: dict[str, Any], base_url: str) -> JiraTicket:
    fields = issue["fields"]
    return JiraTicket(
        id=str(issue["id"]),
        key=issue["key"],
        summary=fields["summary"],
        status=fields["status"]["name"],
        url=ticket_url(base_url, issue["key"]),
    )


class JiraClient:
    """Read-only access to Jira issues.

    Like the GitHub client, every public call returns a Result.
    """

    def __init__(
        self,
        base_url: str,
        email: str,
        token: str,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=(email, token),
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={"Accept": "application/json", "User-Agent": "grove-cli"},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: JiraConfig | None) -> "JiraClient":
        """Build a client from the ``jira`` config section and the stored API token.

        Raises:
            ProviderNotConfiguredError: No base URL or email configured
            ProviderAuthError: No API token available
        """
        if config is None or not config.base_url or not config.email:
            raise ProviderNotConfiguredError(
                "Jira is not configured.",
                suggestion="Run `grove config set jira.base_url <url>` and `grove config set jira.email <email>`.",
            )
        token = get_token(config.token_env, config.token_key)
        if not token:
            raise ProviderAuthError("No Jira API token available.", suggestion=_JIRA_AUTH_HINT)
        return cls(config.base_url, config.email, token)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "JiraClient":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise ConnectivityError(f"Cannot reach {self.base_url}: {e}") from e

        if response.status_code == 401:
            raise ProviderAuthError("Jira authentication failed.", suggestion=_JIRA_AUTH_HINT)
        if response.status_code == 404:
            raise ProviderNotFoundError(f"Jira resource not found: {path}")
        if not response.is_success:
            raise ProviderError(
                f"Jira request failed: HTTP {response.status_code} {response.reason_phrase}".rstrip(),
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from Jira for {path}", status_code=response.status_code) from e

    def get_ticket(self, ticket_id: str) -> Result[JiraTicket]:
        try:
            return Ok(parse_issue(self._get(f"/rest/api/3/issue/{ticket_id}"), self.base_url))
        except ProviderNotFoundError:
            return Err.from_error(ProviderNotFoundError(f'Ticket "{ticket_id}" not found'))
        except GroveError as e:
            return Err.from_error(e)
        except (KeyError, TypeError) as e:
            return Err.from_error(ProviderError(f"Unexpected Jira response for {ticket_id}: {type(e).__name__}: {e}"))

    def get_tickets(self, ticket_ids: list[str]) -> Result[list[JiraTicket]]:
        """Fetch several tickets; fails only when none of them could be read."""
        tickets: list[JiraTicket] = []
        errors: list[str] = []
        for ticket_id in ticket_ids:
            result = self.get_ticket(ticket_id)
            if isinstance(result, Ok):
                tickets.append(result.value)
            else:
                errors.append(f"{ticket_id}: {result.message}")
                logger.debug(f"Jira lookup failed: {errors[-1]}")

        if errors and not tickets:
            return Err.from_error(ProviderError(f"Failed to fetch all tickets: {', '.join(errors)}"))
        return Ok(tickets)

    def search(self, jql: str, max_results: int = JIRA_SEARCH_LIMIT) -> Result[list[JiraTicket]]:
        try:
            data = self._get("/rest/api/3/search", {"jql": jql, "maxResults": max_results})
            return Ok([parse_issue(issue, self.base_url) for issue in data["issues"]])
        except GroveError as e:
            return Err.from_error(e)
        except (KeyError, TypeError) as e:
            return Err.from_error(ProviderError(f"Unexpected Jira search response: {type(e).__name__}: {e}"))

    def test_connection(self) -> Result[bool]:
        try:
            self._get("/rest/api/3/myself")
        except GroveError as e:
            return Err.from_error(e)
        return Ok(True)

    def get_ticket_url(self, key: str) -> str:
        return ticket_url(self.base_url, key)

"""GitHub REST client for pull request, review and check-run state."""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar
from urllib.parse import quote

import httpx

from grove.constants import GITHUB_API_BASE, GITHUB_WEB_BASE, PROVIDER_TIMEOUT_SECONDS, CIStatus, PRState, ReviewStatus
from grove.exceptions import (
    ConnectivityError,
    GroveError,
    ProviderAuthError,
    ProviderError,
    ProviderNotFoundError,
)
from grove.logging import get_logger
from grove.models import PRStatus
from grove.result import Err, Ok, Result

logger = get_logger("github")

T = TypeVar("T")

_FAILED_CONCLUSIONS = frozenset({"failure", "timed_out", "cancelled", "action_required"})

# Raised while reading a payload whose shape is not what the API documents
_PAYLOAD_ERRORS = (KeyError, TypeError, AttributeError, ValueError)


def aggregate_reviews(reviews: list[dict[str, Any]]) -> ReviewStatus:
    """Collapse individual reviews into one state.

    Any CHANGES_REQUESTED wins, then any APPROVED; otherwise the PR is
    pending review. No reviews at all is NONE.
    """
    if not reviews:
        return ReviewStatus.NONE
    states = {review.get("state") for review in reviews}
    if "CHANGES_REQUESTED" in states:
        return ReviewStatus.CHANGES_REQUESTED
    if "APPROVED" in states:
        return ReviewStatus.APPROVED
    return ReviewStatus.PENDING


def aggregate_check_runs(check_runs: list[dict[str, Any]]) -> CIStatus:
    if not check_runs:
        return CIStatus.NONE
    if any(run.get("status") != "completed" for run in check_runs):
        return CIStatus.PENDING
    if any(run.get("conclusion") in _FAILED_CONCLUSIONS for run in check_runs):
        return CIStatus.FAILED
    return CIStatus.PASSED


def pr_state(pr: dict[str, Any]) -> PRState:
    if pr.get("merged") or pr.get("merged_at"):
        return PRState.MERGED
    if pr.get("state") == "closed":
        return PRState.CLOSED
    return PRState.OPEN


def web_base_url(api_base: str = GITHUB_API_BASE) -> str:
    """Browser base URL for an API base (``https://ghe.corp/api/v3`` -> ``https://ghe.corp``)."""
    api_base = api_base.rstrip("/")
    if api_base == GITHUB_API_BASE:
        return GITHUB_WEB_BASE
    return api_base.removesuffix("/api/v3")


def actions_url(owner: str, repo: str, branch: str, api_base: str = GITHUB_API_BASE) -> str:
    """GitHub Actions runs filtered to *branch*."""
    return f"{web_base_url(api_base)}/{owner}/{repo}/actions?query={quote(f'branch:{branch}', safe='')}"


def checks_url(pr: PRStatus) -> str:
    return f"{pr.url.rstrip('/')}/checks"


def _error_detail(response: httpx.Response) -> str:
    """GitHub's own message for a failed request, if the body carries one."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if not isinstance(body, dict):
        return ""
    messages = [str(body.get("message", ""))]
    for item in body.get("errors") or []:
        if isinstance(item, dict) and item.get("message"):
            messages.append(str(item["message"]))
    return "; ".join(m for m in messages if m)


class GitHubClient:
    """Thin wrapper over the GitHub REST API.

    Every public call returns a Result. HTTP, transport and payload failures
    are mapped onto the provider/connectivity error kinds so callers can keep
    going on a per-project basis.
    """

    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API_BASE,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "grove-cli",
            },
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and decode JSON, raising the mapped GroveError on failure."""
        try:
            response = self._client.request(method, path, params=params, json=json_body)
        except httpx.TransportError as e:
            raise ConnectivityError(f"Cannot reach {self.base_url}: {e}") from e
        except httpx.HTTPError as e:
            raise ConnectivityError(f"Request to {self.base_url} failed: {e}") from e

        if response.status_code == 401:
            raise ProviderAuthError("GitHub rejected the API token (HTTP 401).")
        if response.status_code == 404:
            raise ProviderNotFoundError(f"GitHub resource not found: {path}")
        if not response.is_success:
            detail = _error_detail(response)
            raise ProviderError(
                f"GitHub request failed: HTTP {response.status_code}" + (f" ({detail})" if detail else ""),
                status_code=response.status_code,
                details={"path": path},
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from GitHub for {path}", status_code=response.status_code) from e

    def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        return self._request("GET", path, params=params)

    def _guarded(self, what: str, call: Callable[..., T], *args: Any) -> Result[T]:
        """Run *call*, turning GroveErrors and malformed payloads into an Err."""
        try:
            return Ok(call(*args))
        except GroveError as e:
            logger.debug(f"GitHub call failed for {what}: {e}")
            return Err.from_error(e)
        except _PAYLOAD_ERRORS as e:
            error = ProviderError(f"Unexpected GitHub response for {what}: {type(e).__name__}: {e}")
            logger.debug(error.message)
            return Err.from_error(error)

    def _find_pr(self, owner: str, repo: str, branch: str) -> dict[str, Any] | None:
        prs = self._get(f"/repos/{owner}/{repo}/pulls", {"head": f"{owner}:{branch}", "state": "all"})
        if not prs:
            return None
        for pr in prs:
            if pr.get("state") == "open":
                return pr
        return prs[0]

    def _review_status(self, owner: str, repo: str, number: int) -> ReviewStatus:
        return aggregate_reviews(self._get(f"/repos/{owner}/{repo}/pulls/{number}/reviews"))

    def _ci_status(self, owner: str, repo: str, ref: str) -> CIStatus:
        data = self._get(f"/repos/{owner}/{repo}/commits/{ref}/check-runs")
        return aggregate_check_runs(data.get("check_runs", []))

    def _pr_status(self, owner: str, repo: str, branch: str) -> PRStatus | None:
        pr = self._find_pr(owner, repo, branch)
        if pr is None:
            return None

        number = pr["number"]
        ref = (pr.get("head") or {}).get("sha") or branch
        with ThreadPoolExecutor(max_workers=2) as pool:
            review_future = pool.submit(self._review_status, owner, repo, number)
            ci_future = pool.submit(self._ci_status, owner, repo, ref)
            review_status = review_future.result()
            ci_status = ci_future.result()

        return PRStatus(
            number=number,
            url=pr.get("html_url", ""),
            status=pr_state(pr),
            review_status=review_status,
            ci_status=ci_status,
            title=pr.get("title"),
            updated_at=pr.get("updated_at"),
        )

    def _create_pr(self, owner: str, repo: str, payload: dict[str, Any]) -> PRStatus:
        pr = self._request("POST", f"/repos/{owner}/{repo}/pulls", json_body=payload)
        return PRStatus(
            number=pr["number"],
            url=pr["html_url"],
            status=pr_state(pr),
            review_status=ReviewStatus.NONE,
            ci_status=CIStatus.NONE,
            title=pr.get("title"),
            updated_at=pr.get("updated_at"),
        )

    def find_pr_by_branch(self, owner: str, repo: str, branch: str) -> Result[dict[str, Any] | None]:
        """Raw PR payload for *branch*, preferring an open PR over closed ones."""
        return self._guarded(f"{owner}/{repo}@{branch}", self._find_pr, owner, repo, branch)

    def get_review_status(self, owner: str, repo: str, number: int) -> Result[ReviewStatus]:
        return self._guarded(f"{owner}/{repo}#{number}", self._review_status, owner, repo, number)

    def get_ci_status(self, owner: str, repo: str, ref: str) -> Result[CIStatus]:
        return self._guarded(f"{owner}/{repo}@{ref}", self._ci_status, owner, repo, ref)

    def fetch_pr_status(self, owner: str, repo: str, branch: str) -> Result[PRStatus | None]:
        """Current PR snapshot for *branch*, or Ok(None) when no PR exists.

        Reviews and check runs are fetched concurrently once the PR number is
        known.
        """
        return self._guarded(f"{owner}/{repo}@{branch}", self._pr_status, owner, repo, branch)

    def create_pr(
        self,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str = "",
        draft: bool = False,
    ) -> Result[PRStatus]:
        """Open a pull request from *head* into *base*.

        The snapshot starts with review and CI at NONE; the next
        reconciliation cycle fills them in.
        """
        payload = {"title": title, "body": body, "head": head, "base": base, "draft": draft}
        result = self._guarded(f"{owner}/{repo}@{head}", self._create_pr, owner, repo, payload)
        if isinstance(result, Ok):
            logger.info(f"Created PR #{result.value.number} for {owner}/{repo}@{head}")
        return result

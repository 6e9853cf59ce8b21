"""Tests for the CLI commands and the main() error boundary."""

import json
from pathlib import Path

import click
import httpx
import pytest
from click.testing import CliRunner

from grove import __version__
from grove.cli import cli, main
from grove.commands._utils import Services
from grove.config import GitProviderConfig, GroveConfig, JiraConfig
from grove.constants import TaskStatus
from grove.exceptions import ProviderNotConfiguredError, ValidationError
from grove.github import GitHubClient
from grove.jira import JiraClient
from grove.models import PRStatus, WorktreeSetup
from grove.projects import ProjectRegistry
from grove.result import Ok
from grove.store import TaskStore
from grove.tasks import TaskOrchestrator
from grove.worktree import WorktreeManager


@pytest.fixture
def services(config: GroveConfig, store: TaskStore, registry: ProjectRegistry, orchestrator: TaskOrchestrator):
    return Services(config, store, registry, orchestrator.worktrees, orchestrator)


@pytest.fixture
def invoke(services: Services):
    runner = CliRunner()

    def _invoke(*args: str):
        return runner.invoke(cli, list(args), obj={"services": services})

    return _invoke


class TestCommands:
    @pytest.mark.smoke
    def test_new_with_project(self, invoke, register_repo, store: TaskStore) -> None:
        register_repo("api")

        result = invoke("new", "T-1", "Fix login", "-p", "api")

        assert result.exit_code == 0, result.output
        assert "Created task" in result.output
        assert [p.name for p in store.require("T-1").projects] == ["api"]

    def test_list_json(self, invoke, orchestrator: TaskOrchestrator) -> None:
        orchestrator.create_task("T-1", "One")
        orchestrator.create_task("T-2", "Two")
        orchestrator.archive_task("T-2")

        active = json.loads(invoke("list", "--json").output)
        everything = json.loads(invoke("list", "--all", "--json").output)

        assert [t["id"] for t in active] == ["T-1"]
        assert [t["id"] for t in everything] == ["T-1", "T-2"]
        assert "createdAt" in active[0]

    def test_list_empty(self, invoke) -> None:
        result = invoke("list")
        assert result.exit_code == 0
        assert "No tasks" in result.output

    def test_project_add_and_list(self, invoke, make_repo, registry: ProjectRegistry) -> None:
        repo = make_repo("svc")

        result = invoke("project", "add", str(repo), "--name", "svc")

        assert result.exit_code == 0, result.output
        assert registry.require("svc").remote_url == "git@github.com:acme/svc.git"
        assert "svc" in invoke("project", "list").output

    def test_link_and_archive(self, invoke, orchestrator: TaskOrchestrator, store: TaskStore) -> None:
        orchestrator.create_task("T-1", "One")

        result = invoke("link", "add", "https://github.com/acme/api/pull/1", "-t", "T-1")
        assert result.exit_code == 0, result.output
        assert "GitHub" in result.output

        assert invoke("archive", "T-1").exit_code == 0
        assert store.require("T-1").status == TaskStatus.ARCHIVED

    def test_grove_error_propagates_from_command(self, invoke) -> None:
        result = invoke("status", "NOPE")
        assert result.exit_code != 0
        assert result.exception is not None

    def test_init_writes_config(self, invoke, tmp_path: Path) -> None:
        result = invoke("init", "--workspace-dir", str(tmp_path / "ws"), "--no-github")

        assert result.exit_code == 0, result.output
        assert GroveConfig.default_path().exists()
        loaded = GroveConfig.load()
        assert loaded.workspace_dir == str(tmp_path / "ws")
        assert loaded.git is None

    def test_new_reports_setup_failure(self, invoke, register_repo, store: TaskStore) -> None:
        register_repo("api", setup=WorktreeSetup(post_create_commands=["exit 3"]))

        result = invoke("new", "T-1", "Fix login", "-p", "api")

        assert result.exit_code == 0, result.output
        assert "Setup: 0 file(s), 1 command(s)" in result.output
        assert "Warning:" in result.output
        assert "exit 3" in result.output
        assert store.require("T-1").has_project("api")


@pytest.fixture
def launched(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    urls: list[str] = []
    monkeypatch.setattr(click, "launch", lambda url, **kwargs: urls.append(url))
    return urls


class TestPullRequestCommands:
    """Tests for pr create / pr open / ci."""

    def test_pr_create(
        self,
        invoke,
        services: Services,
        orchestrator: TaskOrchestrator,
        register_repo,
        store: TaskStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        register_repo("api")
        orchestrator.create_task("T-1", "Fix login", project_names=["api"])
        pushed: list[str] = []

        def push_branch(self, worktree_path, branch, remote="origin"):
            pushed.append(branch)
            return Ok(None)

        monkeypatch.setattr(WorktreeManager, "push_branch", push_branch)
        posted: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            posted.append(json.loads(request.content))
            return httpx.Response(201, json={"number": 7, "html_url": "https://github.com/acme/api/pull/7"})

        monkeypatch.setattr(
            Services, "github_client", lambda self: GitHubClient("tok", transport=httpx.MockTransport(handler))
        )

        result = invoke("pr", "create", "-t", "T-1", "--draft")

        assert result.exit_code == 0, result.output
        assert "Opened PR #7" in result.output
        assert pushed == ["T-1-fix-login"]
        assert posted[0]["title"] == "T-1: Fix login"
        assert posted[0]["head"] == "T-1-fix-login"
        assert posted[0]["draft"] is True
        assert store.require("T-1").get_project("api").pr.number == 7

    def test_pr_create_requires_github(self, invoke, orchestrator: TaskOrchestrator, register_repo) -> None:
        register_repo("api")
        orchestrator.create_task("T-1", "Fix login", project_names=["api"])

        result = invoke("pr", "create", "api", "-t", "T-1")

        assert result.exit_code != 0
        assert isinstance(result.exception, ProviderNotConfiguredError)

    def test_pr_open_and_ci_with_pr(
        self, invoke, store: TaskStore, pr_status: PRStatus, make_task, launched: list[str]
    ) -> None:
        store.add(make_task("T-1", projects=["api"], pr=pr_status))

        assert invoke("pr", "open", "-t", "T-1").exit_code == 0
        assert invoke("ci", "-t", "T-1").exit_code == 0

        assert launched == [pr_status.url, f"{pr_status.url}/checks"]

    def test_ci_without_pr_uses_org(
        self, invoke, services: Services, store: TaskStore, make_task, launched: list[str]
    ) -> None:
        services.config.git = GitProviderConfig(org="acme")
        store.add(make_task("T-1", projects=["api"]))

        result = invoke("ci", "api", "-t", "T-1")

        assert result.exit_code == 0, result.output
        assert launched == ["https://github.com/acme/api/actions?query=branch%3AT-1-title"]

    def test_pr_open_without_pr(self, invoke, store: TaskStore, make_task, launched: list[str]) -> None:
        store.add(make_task("T-1", projects=["api", "web"]))

        result = invoke("pr", "open", "web", "-t", "T-1")

        assert result.exit_code != 0
        assert launched == []

    def test_ambiguous_project(self, invoke, store: TaskStore, make_task) -> None:
        store.add(make_task("T-1", projects=["api", "web"]))

        result = invoke("pr", "open", "-t", "T-1")

        assert isinstance(result.exception, ValidationError)
        assert "--project" in str(result.exception)


class TestJiraCommands:
    def test_open_single_ticket(self, invoke, services: Services, store: TaskStore, make_task, launched) -> None:
        services.config.jira = JiraConfig(base_url="https://acme.atlassian.net", email="dev@acme.io")
        store.add(make_task("PROJ-1"))

        result = invoke("jira", "open", "-t", "PROJ-1")

        assert result.exit_code == 0, result.output
        assert launched == ["https://acme.atlassian.net/browse/PROJ-1"]

    def test_open_requires_config(self, invoke, store: TaskStore, make_task) -> None:
        store.add(make_task("PROJ-1"))

        result = invoke("jira", "open", "-t", "PROJ-1")

        assert isinstance(result.exception, ProviderNotConfiguredError)

    def test_status(self, invoke, services: Services, store: TaskStore, make_task, monkeypatch) -> None:
        store.add(make_task("PROJ-1"))

        def handler(request: httpx.Request) -> httpx.Response:
            issue = {"id": "1", "key": "PROJ-1", "fields": {"summary": "Fix login", "status": {"name": "Review"}}}
            return httpx.Response(200, json=issue)

        client = JiraClient("https://acme.atlassian.net", "dev@acme.io", "tok", transport=httpx.MockTransport(handler))
        monkeypatch.setattr(Services, "jira_client", lambda self: client)

        result = invoke("jira", "status", "-t", "PROJ-1")

        assert result.exit_code == 0, result.output
        assert "Review" in result.output
        assert "Fix login" in result.output


class TestMain:
    """Tests for the error boundary in main()."""

    def test_grove_error_prints_message_and_hint(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["status", "NOPE"])

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "Error:" in err
        assert "NOPE" in err
        assert "Hint:" in err
        assert "Traceback" not in err

    def test_unexpected_error_is_generic_without_verbose(
        self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def boom(self, status):
            raise RuntimeError("secret internals")

        monkeypatch.setattr(TaskStore, "by_status", boom)

        with pytest.raises(SystemExit) as exc_info:
            main(["list"])

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "An unexpected error occurred (RuntimeError)" in err
        assert "secret internals" not in err
        assert "Traceback" not in err

    def test_verbose_shows_traceback(self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch) -> None:
        def boom(self, status):
            raise RuntimeError("secret internals")

        monkeypatch.setattr(TaskStore, "by_status", boom)

        with pytest.raises(SystemExit):
            main(["--verbose", "list"])

        assert "Traceback" in capsys.readouterr().err

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

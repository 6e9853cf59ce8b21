"""Pytest configuration and fixtures for Grove tests."""

import logging
import subprocess
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from grove.config import GroveConfig
from grove.constants import GITHUB_TOKEN_ENV, GROVE_HOME_ENV, GROVE_TASK_ENV, GROVE_WORKSPACE_DIR_ENV, JIRA_TOKEN_ENV
from grove.context import MarkdownContextGenerator
from grove.models import PRStatus, Project, Task, TaskProject, task_worktree_path
from grove.projects import ProjectRegistry
from grove.store import TaskStore
from grove.tasks import TaskOrchestrator
from grove.worktree import WorktreeManager


def run_git(*args: str, cwd: Path) -> str:
    """Run git command safely without shell=True."""
    result = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True)
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def grove_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point GROVE_HOME at a temp dir and clear the environment Grove reads."""
    home = tmp_path / "grove-home"
    monkeypatch.setenv(GROVE_HOME_ENV, str(home))
    for var in (GROVE_TASK_ENV, GROVE_WORKSPACE_DIR_ENV, GITHUB_TOKEN_ENV, JIRA_TOKEN_ENV):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture(autouse=True)
def _reset_grove_logging() -> Generator[None, None, None]:
    """Undo handlers installed by setup_logging so caplog keeps working."""
    yield
    grove_logger = logging.getLogger("grove")
    for handler in grove_logger.handlers:
        handler.close()
    grove_logger.handlers = []
    grove_logger.propagate = True
    grove_logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[[str], Path]:
    """Factory creating a git repository with one commit on ``main``."""

    def _make(name: str, remote: str | None = None) -> Path:
        repo = tmp_path / "repos" / name
        repo.mkdir(parents=True)
        run_git("init", "-q", "-b", "main", cwd=repo)
        run_git("config", "user.email", "test@test.com", cwd=repo)
        run_git("config", "user.name", "Test", cwd=repo)
        (repo / "README.md").write_text(f"# {name}\n")
        run_git("add", "-A", cwd=repo)
        run_git("commit", "-q", "-m", "Initial commit", cwd=repo)
        run_git("remote", "add", "origin", remote or f"git@github.com:acme/{name}.git", cwd=repo)
        return repo

    return _make


@pytest.fixture
def tmp_repo(make_repo: Callable[[str], Path]) -> Path:
    """A single repository named ``api``."""
    return make_repo("api")


@pytest.fixture
def workspace_dir(tmp_path: Path) -> Path:
    return tmp_path / "workspaces"


@pytest.fixture
def config(workspace_dir: Path) -> GroveConfig:
    return GroveConfig(workspace_dir=str(workspace_dir))


@pytest.fixture
def store(grove_home: Path) -> TaskStore:
    return TaskStore(grove_home / "tasks.json")


@pytest.fixture
def registry(grove_home: Path) -> ProjectRegistry:
    return ProjectRegistry(grove_home / "projects.json")


@pytest.fixture
def orchestrator(store: TaskStore, registry: ProjectRegistry, config: GroveConfig) -> TaskOrchestrator:
    """Orchestrator wired to real git, a temp store and a temp registry."""
    return TaskOrchestrator(store, WorktreeManager(), registry, MarkdownContextGenerator(), config)


@pytest.fixture
def register_repo(registry: ProjectRegistry, make_repo: Callable[[str], Path]) -> Callable[..., Project]:
    """Create a repository and register it as a project of the same name."""

    def _register(name: str, **kwargs: object) -> Project:
        repo = make_repo(name)
        return registry.register(Project(name=name, path=str(repo), **kwargs))

    return _register


def _make_task(
    task_id: str = "T-1",
    title: str = "Title",
    projects: list[str] | None = None,
    workspace_dir: str | Path = "/tmp/ws",
    pr: PRStatus | None = None,
) -> Task:
    """Build a task record without touching git."""
    return Task(
        id=task_id,
        title=title,
        tickets=[task_id],
        projects=[
            TaskProject(
                name=name,
                repo_path=f"/repos/{name}",
                worktree_path=str(task_worktree_path(workspace_dir, task_id, name)),
                branch=f"{task_id}-title",
                base_branch="main",
                pr=pr,
            )
            for name in (projects or [])
        ],
    )


@pytest.fixture
def make_task() -> Callable[..., Task]:
    return _make_task

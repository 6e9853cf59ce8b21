"""Shared helpers for Grove CLI commands."""

from dataclasses import dataclass
from pathlib import Path

import click
from rich.console import Console

from grove.config import GroveConfig
from grove.context import MarkdownContextGenerator
from grove.exceptions import ProjectNotFoundError, ProviderAuthError, ProviderNotConfiguredError, ValidationError
from grove.github import GitHubClient
from grove.jira import JiraClient
from grove.models import Task, TaskProject
from grove.notifications import DesktopNotifier, LogNotifier, Notifier
from grove.projects import ProjectRegistry
from grove.reconciler import StatusReconciler, github_provider
from grove.secrets import get_token
from grove.store import TaskStore
from grove.tasks import TaskOrchestrator
from grove.worktree import WorktreeManager

console = Console()


@dataclass
class Services:
    """Collaborators wired together for one CLI invocation."""

    config: GroveConfig
    store: TaskStore
    registry: ProjectRegistry
    worktrees: WorktreeManager
    orchestrator: TaskOrchestrator

    def reconciler(self) -> StatusReconciler:
        notifier: Notifier = DesktopNotifier() if self.config.notifications.desktop else LogNotifier()
        return StatusReconciler(
            self.store,
            github_provider,
            notifier,
            self.config,
            self.orchestrator.context,
            worktrees=self.worktrees,
        )

    def github_client(self) -> GitHubClient:
        """Client for the configured GitHub instance.

        Raises:
            ProviderNotConfiguredError: No ``git`` section in the config
            ProviderAuthError: No token in the environment or keychain
        """
        git_config = self.config.git
        if git_config is None:
            raise ProviderNotConfiguredError()
        token = get_token(git_config.token_env, git_config.token_key)
        if not token:
            raise ProviderAuthError()
        return GitHubClient(token, base_url=git_config.base_url)

    def jira_client(self) -> JiraClient:
        return JiraClient.from_config(self.config.jira)


def build_services(config: GroveConfig | None = None) -> Services:
    config = config or GroveConfig.load()
    store = TaskStore()
    registry = ProjectRegistry()
    worktrees = WorktreeManager()
    orchestrator = TaskOrchestrator(store, worktrees, registry, MarkdownContextGenerator(), config)
    return Services(config, store, registry, worktrees, orchestrator)


def get_services(ctx: click.Context) -> Services:
    """Services cached on the click context (tests may pre-populate them)."""
    ctx.ensure_object(dict)
    if "services" not in ctx.obj:
        ctx.obj["services"] = build_services()
    return ctx.obj["services"]


def print_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


def task_label(task: Task) -> str:
    return f"[bold]{task.id}[/bold] {task.title}"


def pick_project(task: Task, name: str | None, cwd: Path | None = None) -> TaskProject:
    """The named project, the task's only project, or the one whose worktree contains *cwd*.

    Raises:
        ProjectNotFoundError: *name* is not bound to the task
        ValidationError: The project is ambiguous or the task has none
    """
    if name:
        binding = task.get_project(name)
        if binding is None:
            raise ProjectNotFoundError(name, task.id)
        return binding
    if len(task.projects) == 1:
        return task.projects[0]

    current = (cwd or Path.cwd()).resolve()
    for binding in task.projects:
        if current.is_relative_to(Path(binding.worktree_path).resolve()):
            return binding
    if not task.projects:
        raise ValidationError(f'Task "{task.id}" has no projects.', suggestion="Add one with `grove task add-project`.")
    names = ", ".join(p.name for p in task.projects)
    raise ValidationError(f"Choose a project with --project ({names}).", field="project")

"""Grove pr and ci commands - open pull requests and jump to CI runs."""

import click

from grove.commands._utils import console, get_services, pick_project
from grove.constants import GITHUB_API_BASE
from grove.exceptions import NotFoundError
from grove.github import actions_url, checks_url
from grove.projects import resolve_owner_repo
from grove.result import Ok


@click.group("pr")
def pr_group() -> None:
    """Create and open pull requests for a task's projects."""


@pr_group.command("create")
@click.argument("project", required=False)
@click.option("--task", "-t", "task_id", help="Task ID (auto-detected from the current directory)")
@click.option("--title", help="PR title (defaults to '<task id>: <task title>')")
@click.option("--body", help="PR description")
@click.option("--draft", is_flag=True, help="Open as a draft")
@click.option("--open/--no-open", "open_browser", default=False, help="Open the PR in the browser afterwards")
@click.pass_context
def create(
    ctx: click.Context,
    project: str | None,
    task_id: str | None,
    title: str | None,
    body: str | None,
    draft: bool,
    open_browser: bool,
) -> None:
    """Push PROJECT's branch and open a pull request for it."""
    services = get_services(ctx)
    task = services.orchestrator.resolve_task(task_id)
    binding = pick_project(task, project)

    with services.github_client() as client:
        pr = services.orchestrator.create_pull_request(
            task.id, binding.name, client, title=title, body=body, draft=draft
        )

    console.print(f"[green]✓[/green] Opened PR #{pr.number} for [bold]{binding.name}[/bold]: {pr.url}")
    if open_browser:
        click.launch(pr.url)


@pr_group.command("open")
@click.argument("project", required=False)
@click.option("--task", "-t", "task_id", help="Task ID (auto-detected from the current directory)")
@click.pass_context
def open_pr(ctx: click.Context, project: str | None, task_id: str | None) -> None:
    """Open PROJECT's pull request in the browser."""
    task = get_services(ctx).orchestrator.resolve_task(task_id)
    binding = pick_project(task, project)
    if binding.pr is None:
        raise NotFoundError(
            f'No pull request recorded for "{binding.name}".',
            suggestion=f"Create one with `grove pr create {binding.name}` or run `grove refresh`.",
        )
    console.print(f"Opening {binding.pr.url}")
    click.launch(binding.pr.url)


@click.command()
@click.argument("project", required=False)
@click.option("--task", "-t", "task_id", help="Task ID (auto-detected from the current directory)")
@click.pass_context
def ci(ctx: click.Context, project: str | None, task_id: str | None) -> None:
    """Open the CI checks for PROJECT's pull request, or its branch's Actions runs."""
    services = get_services(ctx)
    task = services.orchestrator.resolve_task(task_id)
    binding = pick_project(task, project)

    if binding.pr is not None:
        url = checks_url(binding.pr)
    else:
        git_config = services.config.git
        remote = services.worktrees.get_remote_url(binding.repo_path)
        owner_repo = resolve_owner_repo(
            remote.value if isinstance(remote, Ok) else None, binding.name, git_config.org if git_config else ""
        )
        if owner_repo is None:
            raise NotFoundError(
                f'Cannot determine the GitHub repository for "{binding.name}".',
                suggestion="Set git.org in the Grove config.",
            )
        url = actions_url(*owner_repo, binding.branch, git_config.base_url if git_config else GITHUB_API_BASE)

    console.print(f"Opening {url}")
    click.launch(url)

"""Grove task commands - add and remove projects in a task."""

import click

from grove.commands._utils import console, get_services, print_warnings


@click.group("task")
def task_group() -> None:
    """Manage projects within a task."""


@task_group.command("add-project")
@click.argument("project")
@click.option("--task", "-t", "task_id", help="Task ID (auto-detected from the current directory)")
@click.option("--branch", "-b", help="Branch name (defaults to the branch template)")
@click.option("--base", "base_branch", help="Base branch (defaults to the project's default)")
@click.pass_context
def add_project(
    ctx: click.Context, project: str, task_id: str | None, branch: str | None, base_branch: str | None
) -> None:
    """Create a worktree for PROJECT and bind it to the task."""
    orchestrator = get_services(ctx).orchestrator
    task = orchestrator.resolve_task(task_id)
    outcome = orchestrator.add_project_to_task(task.id, project, branch=branch, base_branch=base_branch)

    console.print(
        f"[green]✓[/green] Added [bold]{project}[/bold] to {task.id} "
        f"at {outcome.project.worktree_path} ([cyan]{outcome.project.branch}[/cyan])"
    )
    if outcome.setup is not None:
        copied = len(outcome.setup.copied_files) + len(outcome.setup.symlinked_files)
        console.print(f"  Setup: {copied} file(s), {len(outcome.setup.command_results)} command(s)")
        print_warnings(outcome.setup.warnings)


@task_group.command("remove-project")
@click.argument("project")
@click.option("--task", "-t", "task_id", help="Task ID (auto-detected from the current directory)")
@click.option("--force/--no-force", default=True, help="Discard uncommitted changes in the worktree")
@click.pass_context
def remove_project(ctx: click.Context, project: str, task_id: str | None, force: bool) -> None:
    """Remove PROJECT's worktree and unbind it from the task."""
    orchestrator = get_services(ctx).orchestrator
    task = orchestrator.resolve_task(task_id)
    orchestrator.remove_project_from_task(task.id, project, force=force)
    console.print(f"[green]✓[/green] Removed [bold]{project}[/bold] from {task.id}")

"""Grove archive and delete commands."""

import click

from grove.commands._utils import console, get_services, print_warnings


@click.command()
@click.argument("task_id")
@click.option("--cleanup", is_flag=True, help="Remove worktrees and the workspace directory")
@click.pass_context
def archive(ctx: click.Context, task_id: str, cleanup: bool) -> None:
    """Archive a task, optionally removing its worktrees."""
    outcome = get_services(ctx).orchestrator.archive_task(task_id, cleanup=cleanup)
    print_warnings(outcome.warnings)
    console.print(f"[green]✓[/green] Archived [bold]{outcome.task.id}[/bold]")


@click.command()
@click.argument("task_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, task_id: str, yes: bool) -> None:
    """Delete a task, its worktrees and its workspace. Irreversible."""
    orchestrator = get_services(ctx).orchestrator
    task = orchestrator.store.require(task_id)
    if not yes and not click.confirm(f"Delete {task.id} and all its worktrees?", default=False):
        console.print("[yellow]Aborted[/yellow]")
        return
    print_warnings(orchestrator.delete_task(task.id))
    console.print(f"[green]✓[/green] Deleted [bold]{task.id}[/bold]")

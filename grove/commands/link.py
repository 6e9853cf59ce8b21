"""Grove link, notes and context commands."""

import click
from rich.table import Table

from grove.commands._utils import console, get_services
from grove.links import CATEGORY_DISPLAY_NAMES

task_option = click.option("--task", "-t", "task_id", help="Task ID (auto-detected from the current directory)")


@click.group("link")
def link_group() -> None:
    """Manage links attached to a task."""


@link_group.command("add")
@click.argument("url")
@click.option("--label", "-l", default="", help="Display label")
@task_option
@click.pass_context
def link_add(ctx: click.Context, url: str, label: str, task_id: str | None) -> None:
    """Attach URL to the task."""
    orchestrator = get_services(ctx).orchestrator
    task = orchestrator.resolve_task(task_id)
    link = orchestrator.add_link(task.id, url, label)
    console.print(f"[green]✓[/green] Added {CATEGORY_DISPLAY_NAMES[link.category]} link to {task.id}")


@link_group.command("remove")
@click.argument("url")
@task_option
@click.pass_context
def link_remove(ctx: click.Context, url: str, task_id: str | None) -> None:
    orchestrator = get_services(ctx).orchestrator
    task = orchestrator.resolve_task(task_id)
    orchestrator.remove_link(task.id, url)
    console.print(f"[green]✓[/green] Removed link from {task.id}")


@link_group.command("list")
@task_option
@click.pass_context
def link_list(ctx: click.Context, task_id: str | None) -> None:
    task = get_services(ctx).orchestrator.resolve_task(task_id)
    if not task.links:
        console.print("[dim]No links[/dim]")
        return
    table = Table()
    table.add_column("Category", style="cyan")
    table.add_column("Label")
    table.add_column("URL", style="dim")
    for link in task.links:
        table.add_row(CATEGORY_DISPLAY_NAMES[link.category], link.label or "-", link.url)
    console.print(table)


@click.command()
@click.argument("text", required=False)
@task_option
@click.pass_context
def notes(ctx: click.Context, text: str | None, task_id: str | None) -> None:
    """Show or set the task summary notes."""
    orchestrator = get_services(ctx).orchestrator
    task = orchestrator.resolve_task(task_id)
    if text is None:
        console.print(task.notes or "[dim]No notes[/dim]")
        return
    orchestrator.set_notes(task.id, text)
    console.print(f"[green]✓[/green] Updated notes for {task.id}")


@click.command()
@task_option
@click.pass_context
def context(ctx: click.Context, task_id: str | None) -> None:
    """Regenerate the task's .grove-context.md."""
    orchestrator = get_services(ctx).orchestrator
    task = orchestrator.resolve_task(task_id)
    path = orchestrator.refresh_context(task.id)
    console.print(f"[green]✓[/green] Wrote {path}")

"""Grove list command."""

import json

import click
from rich.table import Table

from grove.commands._utils import console, get_services
from grove.constants import TaskStatus


@click.command("list")
@click.option("--all", "-a", "show_all", is_flag=True, help="Include archived tasks")
@click.option("--archived", is_flag=True, help="Show only archived tasks")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_cmd(ctx: click.Context, show_all: bool, archived: bool, as_json: bool) -> None:
    """List tasks."""
    orchestrator = get_services(ctx).orchestrator
    if archived:
        tasks = orchestrator.list_tasks(TaskStatus.ARCHIVED)
    elif show_all:
        tasks = orchestrator.list_tasks()
    else:
        tasks = orchestrator.list_tasks(TaskStatus.ACTIVE)

    if as_json:
        click.echo(json.dumps([t.to_json_dict() for t in tasks], indent=2))
        return

    if not tasks:
        console.print("[dim]No tasks[/dim]")
        return

    table = Table(title="Tasks")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Projects")
    table.add_column("Status")
    table.add_column("Updated", style="dim")
    for task in tasks:
        table.add_row(
            task.id,
            task.title,
            ", ".join(p.name for p in task.projects) or "-",
            task.status.value,
            task.updated_at,
        )
    console.print(table)

"""Grove new command - create a task workspace."""

import click

from grove.commands._utils import console, get_services, print_warnings
from grove.workspace import workspace_file_path


@click.command()
@click.argument("task_id")
@click.argument("title")
@click.option("--project", "-p", "projects", multiple=True, help="Project to add (repeatable)")
@click.option("--ticket", "tickets", multiple=True, help="Ticket reference (defaults to the task id)")
@click.option("--link", "links", multiple=True, help="Link to attach (repeatable)")
@click.pass_context
def new(
    ctx: click.Context,
    task_id: str,
    title: str,
    projects: tuple[str, ...],
    tickets: tuple[str, ...],
    links: tuple[str, ...],
) -> None:
    """Create a new task, with a worktree per project.

    Examples:

        grove new PROJ-123 "Fix login redirect" -p api -p web
    """
    services = get_services(ctx)
    outcome = services.orchestrator.create_task(
        task_id, title, tickets=list(tickets) or None, project_names=projects, links=links
    )
    task = outcome.task

    console.print(f"[green]✓[/green] Created task [bold]{task.id}[/bold]: {task.title}")
    for project in task.projects:
        console.print(f"  {project.name}: {project.worktree_path} ([cyan]{project.branch}[/cyan])")
        setup = outcome.setups.get(project.name)
        if setup is not None:
            copied = len(setup.copied_files) + len(setup.symlinked_files)
            console.print(f"    Setup: {copied} file(s), {len(setup.command_results)} command(s)")
    print_warnings(outcome.warnings)
    console.print(f"\nWorkspace: {workspace_file_path(services.config.workspace_path(), task.id)}")

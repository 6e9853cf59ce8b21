"""Grove project commands - manage the project registry."""

from pathlib import Path

import click
from rich.table import Table

from grove.commands._utils import console, get_services
from grove.models import Project
from grove.result import Ok


@click.group("project")
def project_group() -> None:
    """Manage registered projects."""


@project_group.command("add")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@click.option("--name", "-n", help="Project name (defaults to the directory name)")
@click.option("--base", "base_branch", default=None, help="Default base branch")
@click.pass_context
def project_add(ctx: click.Context, path: Path, name: str | None, base_branch: str | None) -> None:
    """Register the git repository at PATH."""
    services = get_services(ctx)
    path = path.resolve()
    remote = services.worktrees.get_remote_url(path)
    project = Project(
        name=name or path.name,
        path=str(path),
        default_base_branch=base_branch or services.config.default_base_branch,
        remote_url=remote.value if isinstance(remote, Ok) else None,
    )
    services.registry.register(project)
    console.print(f"[green]✓[/green] Registered [bold]{project.name}[/bold] ({project.path})")


@project_group.command("list")
@click.pass_context
def project_list(ctx: click.Context) -> None:
    projects = get_services(ctx).registry.list_projects()
    if not projects:
        console.print("[dim]No projects registered[/dim]")
        return
    table = Table(title="Projects")
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    table.add_column("Base")
    table.add_column("Setup", style="dim")
    for project in projects:
        setup = "-" if project.setup is None or project.setup.is_empty else "yes"
        table.add_row(project.name, project.path, project.default_base_branch, setup)
    console.print(table)


@project_group.command("remove")
@click.argument("name")
@click.pass_context
def project_remove(ctx: click.Context, name: str) -> None:
    """Unregister a project. Existing worktrees are left alone."""
    services = get_services(ctx)
    in_use = [t.id for t in services.store.find_by_project(name)]
    services.registry.remove(name)
    console.print(f"[green]✓[/green] Removed [bold]{name}[/bold]")
    if in_use:
        console.print(f"[yellow]Still referenced by:[/yellow] {', '.join(in_use)}")

"""Grove status and refresh commands."""

import json

import click
from rich.table import Table

from grove.commands._utils import console, get_services, task_label
from grove.constants import CIStatus, ReviewStatus
from grove.models import Task, TaskProject

REVIEW_STYLES = {
    ReviewStatus.APPROVED: "green",
    ReviewStatus.CHANGES_REQUESTED: "red",
    ReviewStatus.PENDING: "yellow",
    ReviewStatus.NONE: "dim",
}

CI_STYLES = {
    CIStatus.PASSED: "green",
    CIStatus.FAILED: "red",
    CIStatus.PENDING: "yellow",
    CIStatus.NONE: "dim",
}


def _pr_cells(project: TaskProject) -> tuple[str, str, str]:
    pr = project.pr
    if pr is None:
        return "-", "-", "-"
    review = f"[{REVIEW_STYLES[pr.review_status]}]{pr.review_status.value}[/]"
    ci = f"[{CI_STYLES[pr.ci_status]}]{pr.ci_status.value}[/]"
    return f"#{pr.number} ({pr.status.value})", review, ci


def show_task_status(task: Task) -> None:
    console.print(f"\n{task_label(task)} [dim]({task.status.value})[/dim]\n")

    table = Table()
    table.add_column("Project", style="cyan")
    table.add_column("Branch")
    table.add_column("PR")
    table.add_column("Review")
    table.add_column("CI")
    for project in task.projects:
        table.add_row(project.name, project.branch, *_pr_cells(project))
    console.print(table)

    for link in task.links:
        console.print(f"  [dim]{link.category.value}[/dim] {link.label or link.url}")


@click.command()
@click.argument("task_id", required=False)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status(ctx: click.Context, task_id: str | None, as_json: bool) -> None:
    """Show projects and PR state of a task (detected from the current directory)."""
    task = get_services(ctx).orchestrator.resolve_task(task_id)
    if as_json:
        click.echo(json.dumps(task.to_json_dict(), indent=2))
        return
    show_task_status(task)


@click.command()
@click.pass_context
def refresh(ctx: click.Context) -> None:
    """Poll PR review and CI state once for all active tasks."""
    report = get_services(ctx).reconciler().run_cycle()
    if report is None:
        console.print("[yellow]A refresh is already running[/yellow]")
        return
    if report.skipped:
        console.print(f"[yellow]Skipped:[/yellow] {report.skipped_reason}")
        return

    for message in report.notifications:
        console.print(f"  {message}")
    for error in report.errors:
        console.print(f"[yellow]Warning:[/yellow] {error}")
    console.print(
        f"[green]✓[/green] Checked {report.projects_checked} project(s), "
        f"{len(report.updated_tasks)} task(s) updated"
    )

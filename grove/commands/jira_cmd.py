"""Grove jira commands - look up and open a task's tickets."""

import click
from rich.table import Table

from grove.commands._utils import console, get_services
from grove.exceptions import ProviderNotConfiguredError
from grove.jira import ticket_url
from grove.result import Ok


@click.group("jira")
def jira_group() -> None:
    """Jira tickets of the current task."""


@jira_group.command("open")
@click.argument("ticket", required=False)
@click.option("--task", "-t", "task_id", help="Task ID (auto-detected from the current directory)")
@click.pass_context
def open_ticket(ctx: click.Context, ticket: str | None, task_id: str | None) -> None:
    """Open TICKET (default: the task's ticket) in the browser."""
    services = get_services(ctx)
    task = services.orchestrator.resolve_task(task_id)
    if not task.tickets and not ticket:
        console.print("[yellow]No tickets linked to this task.[/yellow]")
        return

    jira_config = services.config.jira
    if jira_config is None or not jira_config.base_url:
        raise ProviderNotConfiguredError(
            "Jira is not configured.", suggestion="Run `grove config set jira.base_url <url>`."
        )

    if ticket is None:
        if len(task.tickets) == 1:
            ticket = task.tickets[0]
        else:
            ticket = click.prompt("Which ticket?", type=click.Choice(task.tickets), default=task.tickets[0])

    url = ticket_url(jira_config.base_url, ticket)
    console.print(f"Opening {url}")
    click.launch(url)


@jira_group.command("status")
@click.option("--task", "-t", "task_id", help="Task ID (auto-detected from the current directory)")
@click.pass_context
def ticket_status(ctx: click.Context, task_id: str | None) -> None:
    """Show summary and workflow status of the task's tickets."""
    services = get_services(ctx)
    task = services.orchestrator.resolve_task(task_id)
    if not task.tickets:
        console.print("[yellow]No tickets linked to this task.[/yellow]")
        return

    table = Table()
    table.add_column("Ticket", style="cyan")
    table.add_column("Status")
    table.add_column("Summary")
    with services.jira_client() as client:
        for ticket in task.tickets:
            result = client.get_ticket(ticket)
            if isinstance(result, Ok):
                table.add_row(result.value.key, result.value.status, result.value.summary)
            else:
                table.add_row(ticket, "[dim]-[/dim]", f"[dim]{result.message}[/dim]")
    console.print(table)

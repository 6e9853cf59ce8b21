"""Grove watch command - poll PR status in the foreground."""

import time

import click

from grove.commands._utils import console, get_services
from grove.constants import MIN_POLLING_INTERVAL
from grove.reconciler import StatusPoller


@click.command()
@click.option("--interval", "-i", type=int, default=None, help="Polling interval in seconds")
@click.pass_context
def watch(ctx: click.Context, interval: int | None) -> None:
    """Watch PRs of active tasks and notify on status changes.

    Press Ctrl+C to stop.
    """
    services = get_services(ctx)
    interval = interval or services.config.polling_interval
    if interval < MIN_POLLING_INTERVAL:
        console.print(f"[yellow]Interval raised to the minimum of {MIN_POLLING_INTERVAL}s[/yellow]")

    poller = StatusPoller(services.reconciler(), interval)
    console.print(f"Watching PR status every {poller.interval}s (Ctrl+C to stop)")
    poller.start()
    try:
        while poller.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping...[/yellow]")
    finally:
        poller.stop()

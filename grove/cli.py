"""Grove command-line interface."""

import os
import sys

import click
from rich.console import Console
from rich.markup import escape

from grove import __version__
from grove.commands import (
    archive,
    ci,
    config_group,
    context,
    delete,
    init,
    jira_group,
    link_group,
    list_cmd,
    new,
    notes,
    pr_group,
    project_group,
    refresh,
    status,
    task_group,
    watch,
)
from grove.commands._utils import build_services
from grove.config import GroveConfig
from grove.constants import GROVE_DEBUG_ENV
from grove.exceptions import GroveError
from grove.logging import setup_logging

err_console = Console(stderr=True)


@click.group()
@click.version_option(version=__version__, prog_name="grove")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging and tracebacks")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Grove - task workspaces across repositories, backed by git worktrees."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if "services" in ctx.obj:
        config = ctx.obj["services"].config
    else:
        config = GroveConfig.load()
        ctx.obj["services"] = build_services(config)

    setup_logging(
        level="debug" if verbose else config.logging.level,
        log_dir=config.log_directory(),
        json_output=config.logging.json_output,
        console_output=verbose,
    )


cli.add_command(new)
cli.add_command(list_cmd)
cli.add_command(status)
cli.add_command(task_group)
cli.add_command(archive)
cli.add_command(delete)
cli.add_command(link_group)
cli.add_command(notes)
cli.add_command(context)
cli.add_command(project_group)
cli.add_command(refresh)
cli.add_command(pr_group)
cli.add_command(ci)
cli.add_command(jira_group)
cli.add_command(watch)
cli.add_command(config_group)
cli.add_command(init)


def _debug_enabled(args: list[str]) -> bool:
    return "--verbose" in args or "-v" in args or os.environ.get(GROVE_DEBUG_ENV) == "1"


def main(argv: list[str] | None = None) -> None:
    """Console entry point: report errors as a message, hint and exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    debug = _debug_enabled(args)

    try:
        exit_code = cli.main(args=args, prog_name="grove", standalone_mode=False)
    except click.exceptions.Abort:
        err_console.print("[yellow]Aborted[/yellow]")
        sys.exit(1)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except GroveError as e:
        err_console.print(f"[red]Error:[/red] {escape(e.message)}")
        if e.suggestion:
            err_console.print(f"[dim]Hint:[/dim] {escape(e.suggestion)}")
        if debug:
            err_console.print_exception()
        sys.exit(e.exit_code)
    except Exception as e:  # noqa: BLE001
        err_console.print(f"[red]Error:[/red] An unexpected error occurred ({type(e).__name__}).")
        if debug:
            err_console.print_exception()
        else:
            err_console.print("[dim]Hint:[/dim] Re-run with --verbose for details.")
        sys.exit(1)

    sys.exit(exit_code if isinstance(exit_code, int) else 0)


if __name__ == "__main__":
    main()

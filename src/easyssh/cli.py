"""easyssh CLI entry point."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from easyssh import __version__, discoverers, executors, filters
from easyssh.config import load_config
from easyssh.errors import EasySSHError, NoTargetsError
from easyssh.logs import configure_logging
from easyssh.target import make_targets


logger = logging.getLogger(__name__)

app = typer.Typer(
    name="easyssh",
    help="easyssh: discover hosts, filter them, then log in or run a command.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


EPILOG = (
    "Ideally a single alias covers every use case, for example:\n\n"
    "easyssh -e '(if-args (ssh-exec-parallel) (if-one-target (ssh-login) (tmux-cssh)))' "
    "-d '(first-matching (knife) (comma-separated))' "
    "-f '(list (ec2-instance-id us-east-1) (ec2-instance-id us-west-1))'"
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"easyssh {__version__}")
        raise typer.Exit()


def plugins_callback(value: bool) -> None:
    """Print every registered plugin name per family and exit."""
    if not value:
        return

    table = Table()
    table.add_column("Family")
    table.add_column("Names")
    table.add_row("discoverer (-d)", ", ".join(discoverers.supported_names()))
    table.add_row("executor (-e)", ", ".join(executors.supported_names()))
    table.add_row("filter (-f)", ", ".join(filters.supported_names()))
    console.print(table)
    raise typer.Exit()


def run(
    target_definition: str,
    command: list[str],
    discoverer_definition: str,
    executor_definition: str,
    filter_definition: str,
    user: str,
) -> int:
    """Discover, filter and execute.

    All three plugin trees are built before any host is contacted, so
    definition errors never leave a half-finished run behind.

    Args:
        target_definition: Query passed to the discoverer.
        command: Command tokens; empty for interactive executors.
        discoverer_definition: e.g. "(comma-separated)".
        executor_definition: e.g. "(ssh-login)".
        filter_definition: e.g. "(id)".
        user: Login user for every target; empty lets ssh decide.

    Returns:
        int: 0 if every command succeeded, 1 if any target failed.

    Raises:
        EasySSHError: On any fatal error.
    """
    discoverer = discoverers.make(discoverer_definition)
    executor = executors.make(executor_definition)
    target_filter = filters.make(filter_definition)

    targets = make_targets(discoverer.discover(target_definition), user)
    if not targets:
        raise NoTargetsError(target_definition)

    logger.debug("Targets before filters: %s", [str(t) for t in targets])
    targets = target_filter.filter(targets)
    logger.info("Targets: %s", [str(t) for t in targets])

    results = executor.exec(targets, command) or []

    failed = [result for result in results if not result.ok]
    if failed:
        logger.error(
            "Command failed on %d of %d target(s): %s",
            len(failed), len(results), ", ".join(str(r.target) for r in failed),
        )
        return 1
    return 0


@app.command(
    context_settings={"allow_interspersed_args": False, "ignore_unknown_options": True},
    epilog=EPILOG,
)
def main(
    target_definition: str = typer.Argument(..., help="Input to the discoverer, e.g. 'web1,web2'."),
    command: Optional[list[str]] = typer.Argument(None, help="Command to run on the targets."),
    discoverer: Optional[str] = typer.Option(None, "--discoverer", "-d", help="Discoverer definition."),
    executor: Optional[str] = typer.Option(None, "--executor", "-e", help="Executor definition."),
    filter_: Optional[str] = typer.Option(None, "--filter", "-f", help="Filter definition."),
    user: Optional[str] = typer.Option(None, "--user", "-l", help="User to log in as on the remote machines."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to config.toml."),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    plugins: bool = typer.Option(
        False,
        "--plugins",
        help="List supported discoverers, executors and filters, then exit.",
        callback=plugins_callback,
        is_eager=True,
    ),
) -> None:
    """Run COMMAND on the hosts found for TARGET_DEFINITION, or log in to them."""
    try:
        config = load_config(config_path)
        level = (log_level or config.log_level).upper()
        if level not in logging.getLevelNamesMapping():
            raise typer.BadParameter(f"unknown log level {log_level!r}", param_hint="--log-level")
        configure_logging(level, err_console, console)

        code = run(
            target_definition,
            list(command or []),
            discoverer or config.discoverer,
            executor or config.executor,
            filter_ or config.filter,
            config.user if user is None else user,
        )
    except EasySSHError as exc:
        err_console.print(f"Error: {exc}", markup=False, highlight=False, soft_wrap=True)
        raise typer.Exit(code=1)

    raise typer.Exit(code=code)

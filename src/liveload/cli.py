"""liveload CLI entry point."""

import logging
import sys
import time
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from liveload.config import ReloadConfig
from liveload.errors import LoadError
from liveload.hooks import ChangeMap
from liveload.loader import ModuleLoader
from liveload.runtime import Runtime

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


def parse_interval(value: str) -> float | None:
    """Parse a poll interval option: seconds, or "off" to disable polling."""
    if value.lower() in ("off", "none", "0"):
        return None
    try:
        return float(value)
    except ValueError:
        raise click.BadParameter(f"expected seconds or 'off', got {value!r}") from None


def extend_path(paths: tuple[str, ...]) -> None:
    """Make modules under paths importable."""
    for path in reversed(paths):
        resolved = str(Path(path).resolve())
        if resolved not in sys.path:
            sys.path.insert(0, resolved)


def print_changes(changes: ChangeMap) -> None:
    for locator, files in changes.items():
        names = ", ".join(sorted(path.name for path in files))
        console.print(f"[cyan]reloaded[/cyan] {locator}: {names}")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """liveload - run Python code that can be replaced while it runs."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.argument("target")
@click.option("--poll-interval", default="0.5", help="Seconds between reload checks, or 'off'")
@click.option("--retry-delay", default=5.0, help="Seconds to wait after a failed reload")
@click.option("--every", type=float, help="Call the target repeatedly, sleeping this many seconds")
@click.option("--path", "paths", multiple=True, default=["."], help="Directory to put on sys.path")
def run(
    target: str,
    poll_interval: str,
    retry_delay: float,
    every: float | None,
    paths: tuple[str, ...],
) -> None:
    """Run MODULE:FUNCTION, reloading its module while it runs.

    With --every the function is called in a loop, so edits to it take
    effect on the next call.
    """
    module, sep, function = target.partition(":")
    if not sep or not module or not function:
        raise click.BadParameter("expected MODULE:FUNCTION", param_hint="TARGET")

    extend_path(paths)

    config = ReloadConfig(
        poll_interval=parse_interval(poll_interval),
        failure_retry_delay=retry_delay,
    )
    runtime = Runtime(config=config)
    entry = runtime.procedure(function, module)
    runtime.add_hook(print_changes)

    with runtime:
        outcome = runtime.reload()
        if not outcome.succeeded:
            reason = escape(outcome.error_message or "")
            console.print(f"[bold red]Cannot start {target}:[/bold red] {reason}")
            raise SystemExit(1)

        console.print(f"[bold green]Running {target}[/bold green]")
        try:
            if every is None:
                entry()
            else:
                while True:
                    entry()
                    time.sleep(every)
        except KeyboardInterrupt:
            console.print("\n[yellow]Stopped[/yellow]")


@cli.command()
@click.argument("locators", nargs=-1, required=True)
@click.option("--path", "paths", multiple=True, default=["."], help="Directory to put on sys.path")
def check(locators: tuple[str, ...], paths: tuple[str, ...]) -> None:
    """Load each LOCATOR once and report whether it loads cleanly.

    Modules this process had already imported are reported as tracked.
    """
    extend_path(paths)
    loader = ModuleLoader()
    table = Table(title="Code units")
    table.add_column("Unit", style="cyan")
    table.add_column("Status")
    table.add_column("Files")

    failed = False
    for locator in locators:
        tracked = loader.imported_elsewhere(locator)
        try:
            files = loader.refresh(locator)
        except LoadError as e:
            failed = True
            table.add_row(locator, "[red]failed[/red]", escape(e.reason))
            continue
        if tracked:
            # Already imported by this process; not executed again
            table.add_row(locator, "[yellow]tracked[/yellow]", "-")
        else:
            table.add_row(locator, "[green]ok[/green]", str(len(files)))

    console.print(table)
    if failed:
        raise SystemExit(1)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()

"""Console and logging helpers shared by CLI commands."""

from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.panel import Panel

from fastforward_cli.merge.engine import InvocationResult
from fastforward_cli.merge.models import CheckOnly, MergeSucceeded

console = Console()
err_console = Console(stderr=True)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Send diagnostics to stderr; ``--debug`` turns on everything."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    # httpx logs every request at INFO; keep it for --debug only.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def status_panel(result: InvocationResult) -> Panel:
    outcome = result.outcome
    if isinstance(outcome, MergeSucceeded):
        return Panel(f"[green]Fast forwarded to {outcome.new_base_sha}[/green]", title="fast-forward")
    if isinstance(outcome, CheckOnly) and outcome.succeeded:
        return Panel("[green]Fast forward possible[/green]", title="fast-forward")

    error = outcome.error
    detail = f"{error.kind}: {error}" if error is not None else "failed"
    return Panel(f"[red]{detail}[/red]", title="fast-forward", border_style="red")


__all__ = ["configure_logging", "console", "err_console", "status_panel"]

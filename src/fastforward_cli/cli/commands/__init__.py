"""CLI command modules for fast-forward."""

from __future__ import annotations

import typer

from . import run as run_module


def register_commands(app: typer.Typer) -> None:
    """Attach the fast-forward commands to ``app``."""
    app.command("check")(run_module.check)
    app.command("merge")(run_module.merge)


__all__ = ["register_commands"]

"""
fast-forward - merge a pull request by fast forwarding its target branch.

Usage:
    fast-forward check     # report whether a fast forward is possible
    fast-forward merge     # fast forward the base branch to the pull request
"""

from importlib.metadata import PackageNotFoundError, version as _distribution_version

import typer

from fastforward_cli.cli.commands import register_commands


def _resolve_version() -> str:
    try:
        return _distribution_version("fast-forward")
    except PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _resolve_version()

app = typer.Typer(
    name="fast-forward",
    help="Check whether a pull request can be fast forwarded, and do it.",
    add_completion=False,
    no_args_is_help=True,
)

register_commands(app)


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(f"fast-forward {__version__}")


def main():
    app()


if __name__ == "__main__":
    main()

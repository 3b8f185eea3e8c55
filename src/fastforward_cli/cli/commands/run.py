"""``check`` and ``merge`` commands.

Both read the triggering event, run the fast-forward pipeline and exit
non-zero unless the fast forward is possible (``check``) or done (``merge``).
Options fall back to the ``INPUT_*`` variables set by the workflow action.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from fastforward_cli.cli.helpers import configure_logging, console, err_console, status_panel
from fastforward_cli.config import ConfigError, FastForwardConfig, load_config
from fastforward_cli.github.client import DEFAULT_REST_TIMEOUT, GitHubClient, github_token
from fastforward_cli.github.environment import RunnerEnvironment
from fastforward_cli.github.events import EventError, load_event
from fastforward_cli.github.pulls import load_pull_request, requester_for, to_pull_request_info
from fastforward_cli.merge.engine import FastForwardEngine, InvocationResult
from fastforward_cli.merge.errors import FastForwardError
from fastforward_cli.merge.models import MergeFailed
from fastforward_cli.merge.report import ReportContext, publish, render

logger = logging.getLogger(__name__)

CommentOption = typer.Option(
    None, "--comment", envvar="INPUT_COMMENT", help="When to post the report: always | on-error | never"
)
StrategyOption = typer.Option(
    None, "--strategy", envvar="INPUT_MERGE_STRATEGY", help="fast-forward | merge-commit"
)
MessageStyleOption = typer.Option(
    None,
    "--message-style",
    envvar="INPUT_MERGE_COMMIT_MESSAGE_STYLE",
    help="Merge commit message: default | pr-title | pr-title-and-body",
)
DebugOption = typer.Option(None, "--debug/--no-debug", envvar="INPUT_DEBUG", help="Verbose diagnostics on stderr")
EventPathOption = typer.Option(
    None, "--event-path", envvar="GITHUB_EVENT_PATH", help="Path of the webhook event JSON"
)
TokenOption = typer.Option(None, "--token", envvar="INPUT_GITHUB_TOKEN", help="GitHub token (defaults to GITHUB_TOKEN)")
WorkdirOption = typer.Option(None, "--workdir", help="Repository checkout to work in (defaults to the current directory)")
LimitOption = typer.Option(None, "--divergence-limit", help="Commits listed per side when branches diverged")
TimeoutOption = typer.Option(None, "--timeout", help="Timeout in seconds for each network call")
AuthorEmailOption = typer.Option(
    None, "--author-email", envvar="INPUT_AUTHOR_EMAIL", help="Author address for synthesized merge commits"
)


def _report_setup_failure(
    exc: Exception,
    environment: RunnerEnvironment,
    config: FastForwardConfig,
) -> InvocationResult:
    """Produce and publish a report for failures before the pipeline starts."""
    outcome = MergeFailed(reason=str(exc), error=exc if isinstance(exc, FastForwardError) else None)
    report = render(outcome, ReportContext())
    try:
        published = publish(report, environment, policy=config.comment)
    except OSError as write_error:
        logger.error("Could not write report sinks: %s", write_error)
        published = None
    return InvocationResult(outcome=outcome, report=report, published=published)


def _finish(result: InvocationResult) -> None:
    console.print(result.report.text, markup=False, highlight=False, soft_wrap=True)
    console.print(status_panel(result))
    raise typer.Exit(result.exit_code)


def run_fast_forward(
    *,
    merge: bool,
    comment: Optional[str] = None,
    strategy: Optional[str] = None,
    message_style: Optional[str] = None,
    debug: Optional[bool] = None,
    event_path: Optional[Path] = None,
    token: Optional[str] = None,
    workdir: Optional[Path] = None,
    divergence_limit: Optional[int] = None,
    timeout: Optional[float] = None,
    author_email: Optional[str] = None,
) -> InvocationResult:
    configure_logging(bool(debug))
    environment = RunnerEnvironment.from_environ()
    workdir = (workdir or environment.workspace or Path.cwd()).resolve()

    try:
        config = load_config(workdir).with_overrides(
            merge=merge,
            comment=comment,
            merge_strategy=strategy,
            merge_commit_message_style=message_style,
            debug=debug,
            divergence_limit=divergence_limit,
            network_timeout=timeout,
            author_email=author_email,
        )
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        return _report_setup_failure(exc, environment, FastForwardConfig(merge=merge))

    configure_logging(config.debug)
    logger.debug("Configuration: %s", json.dumps(config.to_dict(), sort_keys=True))

    event_path = event_path or environment.event_path
    if event_path is None:
        err_console.print("[red]Error:[/red] GITHUB_EVENT_PATH environment variable must be set.")
        raise typer.Exit(1)

    resolved_token = github_token(token)
    if not resolved_token:
        logger.warning("No GitHub token; API calls and pushes will be unauthenticated")

    rest_timeout = min(config.network_timeout, DEFAULT_REST_TIMEOUT)
    with GitHubClient(resolved_token, api_url=environment.api_url, timeout=rest_timeout) as client:
        try:
            event = load_event(event_path)
            pull_request = to_pull_request_info(load_pull_request(event, client), event)
            requester = requester_for(event, environment.actor)
        except (EventError, FastForwardError) as exc:
            err_console.print(f"[red]Error:[/red] {exc}")
            return _report_setup_failure(exc, environment, config)

        engine = FastForwardEngine.build(config, workdir=workdir, token=resolved_token, permissions=client)
        return engine.run(pull_request, requester, environment=environment, comments=client)


def check(
    comment: Optional[str] = CommentOption,
    strategy: Optional[str] = StrategyOption,
    message_style: Optional[str] = MessageStyleOption,
    debug: Optional[bool] = DebugOption,
    event_path: Optional[Path] = EventPathOption,
    token: Optional[str] = TokenOption,
    workdir: Optional[Path] = WorkdirOption,
    divergence_limit: Optional[int] = LimitOption,
    timeout: Optional[float] = TimeoutOption,
    author_email: Optional[str] = AuthorEmailOption,
) -> None:
    """Report whether the pull request's base can be fast forwarded to its head."""
    result = run_fast_forward(
        merge=False,
        comment=comment,
        strategy=strategy,
        message_style=message_style,
        debug=debug,
        event_path=event_path,
        token=token,
        workdir=workdir,
        divergence_limit=divergence_limit,
        timeout=timeout,
        author_email=author_email,
    )
    _finish(result)


def merge(
    comment: Optional[str] = CommentOption,
    strategy: Optional[str] = StrategyOption,
    message_style: Optional[str] = MessageStyleOption,
    debug: Optional[bool] = DebugOption,
    event_path: Optional[Path] = EventPathOption,
    token: Optional[str] = TokenOption,
    workdir: Optional[Path] = WorkdirOption,
    divergence_limit: Optional[int] = LimitOption,
    timeout: Optional[float] = TimeoutOption,
    author_email: Optional[str] = AuthorEmailOption,
) -> None:
    """Fast forward the pull request's base to its head, if permitted and possible."""
    result = run_fast_forward(
        merge=True,
        comment=comment,
        strategy=strategy,
        message_style=message_style,
        debug=debug,
        event_path=event_path,
        token=token,
        workdir=workdir,
        divergence_limit=divergence_limit,
        timeout=timeout,
        author_email=author_email,
    )
    _finish(result)


__all__ = ["check", "merge", "run_fast_forward"]

"""Render outcomes into a report and publish it.

``render`` is total: any failure while gathering detail (for instance a
``git log`` that cannot run) drops that detail from the report instead of
propagating.  ``publish`` writes the step summary and the output value
unconditionally and posts a comment when the policy asks for one.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

from fastforward_cli.github.environment import RunnerEnvironment, append_step_summary, write_output

from .errors import FastForwardError
from .models import (
    CheckOnly,
    CommentPolicy,
    CommitRef,
    Diverged,
    ForbiddenMerge,
    MergeFailed,
    MergeStrategy,
    MergeSucceeded,
    Outcome,
    PullRequestInfo,
    Requester,
)

__all__ = [
    "CommentSink",
    "OUTPUT_NAME",
    "PublishResult",
    "Report",
    "ReportContext",
    "publish",
    "render",
]

logger = logging.getLogger(__name__)

OUTPUT_NAME = "comment"


@dataclass(frozen=True)
class Report:
    sections: tuple[str, ...]
    success: bool

    @property
    def text(self) -> str:
        return "\n\n".join(section.strip("\n") for section in self.sections if section.strip()) + "\n"

    def envelope(self) -> dict[str, str]:
        return {"body": self.text}


@dataclass
class ReportContext:
    """What the reporter knows about the invocation besides the outcome.

    Any field may be missing when the invocation failed early.
    """

    requester: Requester | None = None
    pull_request: PullRequestInfo | None = None
    base: CommitRef | None = None
    head: CommitRef | None = None
    describe: Callable[[str], str] | None = None


def render(outcome: Outcome, context: ReportContext) -> Report:
    """Build the report for ``outcome``. Never raises."""
    sections: list[str] = []
    for builder in (_trigger_section, _commits_section, _decision_section):
        try:
            section = builder(outcome, context)
        except Exception as exc:  # noqa: BLE001 - report whatever was gathered
            logger.warning("Omitting report section %s: %s", builder.__name__, exc)
            continue
        if section:
            sections.append(section)

    if not sections:
        sections.append(_fallback_line(outcome))
    return Report(sections=tuple(sections), success=outcome.succeeded)


def _fallback_line(outcome: Outcome) -> str:
    return "Fast forward succeeded." if outcome.succeeded else "Fast forward failed."


def _code_block(text: str) -> str:
    return f"```shell\n{text.rstrip()}\n```"


def _trigger_section(outcome: Outcome, context: ReportContext) -> str:
    requester = context.requester
    if requester is None:
        return ""
    if requester.trigger_url:
        return f"Triggered from {requester.trigger_url} by {requester.login}."
    return f"Triggered by {requester.login}."


def _describe(context: ReportContext, sha: str) -> str | None:
    if context.describe is None:
        return None
    try:
        return context.describe(sha)
    except Exception as exc:  # noqa: BLE001 - commit details are optional
        logger.warning("Could not describe %s: %s", sha, exc)
        return None


def _commits_section(outcome: Outcome, context: ReportContext) -> str:
    base, head = context.base, context.head
    if base is None or head is None:
        return ""

    lines = [f"Trying to fast forward `{base.name}` ({base.sha}):"]
    detail = _describe(context, base.sha)
    if detail:
        lines += ["", _code_block(detail)]
    lines += ["", f"to `{head.name}` ({head.sha}):"]
    detail = _describe(context, head.sha)
    if detail:
        lines += ["", _code_block(detail)]
    return "\n".join(lines)


def _decision_section(outcome: Outcome, context: ReportContext) -> str:
    if isinstance(outcome, CheckOnly):
        if isinstance(outcome.ancestry, Diverged):
            return _divergence_text(outcome.ancestry, context)
        return _check_only_text(outcome, context)
    if isinstance(outcome, ForbiddenMerge):
        return (
            f"Sorry @{outcome.identity}, only those with write access to this "
            "repository can merge pull requests; you don't have permission to fast forward."
        )
    if isinstance(outcome, MergeSucceeded):
        return _success_text(outcome, context)
    if isinstance(outcome, MergeFailed):
        return _failure_text(outcome, context)
    raise TypeError(f"unknown outcome {outcome!r}")


def _check_only_text(outcome: CheckOnly, context: ReportContext) -> str:
    base, head = outcome.ancestry.base, outcome.ancestry.head
    if outcome.ancestry.already_up_to_date:
        return f"`{base.name}` is already at `{head.name}` ({head.sha}); nothing to fast forward."
    return (
        "If you have write access to the target repository, you can add a comment "
        f"with `/fast-forward` to fast forward `{base.name}` to `{head.name}`."
    )


def _listing(label: str, commits, truncated: bool, limit_hint: int) -> list[str]:
    noun = "commit" if len(commits) == 1 else "commits"
    lines = [f"# {label} ({len(commits)}{'+' if truncated else ''} {noun}):"]
    lines += [str(commit) for commit in commits]
    if truncated:
        lines.append(f"# ... truncated; only the {limit_hint} most recent are shown")
    return lines


def _divergence_text(result: Diverged, context: ReportContext) -> str:
    base, head = result.base, result.head
    first = (
        f"Can't fast forward. `{base.name}` {base.sha} is not a direct ancestor of "
        f"`{head.name}` {head.sha}."
    )
    if result.merge_base is None:
        return f"{first} Branches don't appear to have a common ancestor."

    lines = [f"{first} Branches appear to have diverged at {result.merge_base}:", ""]
    listing = _listing(f"only on `{base.name}`", result.base_only, result.base_truncated, len(result.base_only))
    listing += _listing(f"only on `{head.name}`", result.head_only, result.head_truncated, len(result.head_only))
    if result.graph:
        listing += ["", result.graph]
        if result.graph_truncated:
            listing.append("# ... graph truncated; older commits are not shown")
    merge_base_detail = _describe(context, result.merge_base)
    if merge_base_detail:
        listing += ["", merge_base_detail]
    lines.append(_code_block("\n".join(listing)))
    lines += ["", f"Rebase locally, and then force push to `{head.name}`."]
    return "\n".join(lines)


def _success_text(outcome: MergeSucceeded, context: ReportContext) -> str:
    base, head = context.base, context.head
    if base is not None and head is not None:
        headline = f"Fast forwarding `{base.name}` ({base.sha}) to `{head.name}` ({head.sha})."
    else:
        headline = f"Fast forwarded to {outcome.new_base_sha}."

    lines = [headline]
    mutation = outcome.mutation
    if mutation is not None and mutation.strategy is MergeStrategy.MERGE_COMMIT:
        lines += ["", f"Created merge commit {mutation.new_sha} on top of `{mutation.ref}`."]
    if outcome.transcript:
        lines += ["", _code_block(outcome.transcript)]
    return "\n".join(lines)


def _failure_text(outcome: MergeFailed, context: ReportContext) -> str:
    target = f"`{context.base.name}`" if context.base is not None else "the target branch"
    lines = [f"Unable to fast forward {target}: {outcome.reason}"]
    if outcome.transcript:
        lines += ["", _code_block(outcome.transcript)]
    if isinstance(outcome.error, FastForwardError) and outcome.error.kind == "conflict":
        lines += [
            "",
            f"{target} changed since it was checked. Nothing was overwritten; "
            "re-run the fast forward to try again.",
        ]
    return "\n".join(lines)


class CommentSink(Protocol):
    def post_comment(self, comments_url: str, body: str) -> str | None: ...


@dataclass
class PublishResult:
    summary_written: bool = False
    output_written: bool = False
    comment_posted: bool = False
    comment_url: str | None = None
    comment_error: str | None = None
    notes: list[str] = field(default_factory=list)


def publish(
    report: Report,
    environment: RunnerEnvironment,
    *,
    policy: CommentPolicy,
    comments: CommentSink | None = None,
    comments_url: str | None = None,
) -> PublishResult:
    """Write ``report`` to the step summary, the output value and maybe a comment."""
    result = PublishResult()
    result.summary_written = append_step_summary(environment.step_summary, report.text)
    result.output_written = write_output(environment.output, OUTPUT_NAME, json.dumps(report.envelope()))

    if not policy.should_post(report.success):
        logger.debug("Comment policy %s: not posting (success=%s)", policy, report.success)
        return result

    if comments is None or not comments_url:
        note = "Can't post a comment: the pull request's comments_url is not set."
    else:
        try:
            result.comment_url = comments.post_comment(comments_url, report.text)
            result.comment_posted = True
            logger.info("Posted comment to %s", comments_url)
            return result
        except FastForwardError as exc:
            result.comment_error = str(exc)
            note = f"Can't post a comment to {comments_url}: {exc}"

    logger.warning(note)
    result.notes.append(note)
    append_step_summary(environment.step_summary, note)
    return result

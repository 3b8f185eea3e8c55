"""Drive one invocation: resolve, evaluate, maybe mutate, always report.

::

    resolve -> evaluate -+-> diverged ---------------------------> report
                         +-> ancestor, check only ---------------> report
                         +-> ancestor, merge -> authorize -+-> denied -> report
                                                           +-> up to date -> report
                                                           +-> select -> push -> report

Every path ends in exactly one report, and every error raised below this
module becomes a :class:`MergeFailed` outcome instead of escaping.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from fastforward_cli.config import FastForwardConfig
from fastforward_cli.core.git_ops import GitRunner
from fastforward_cli.github.environment import RunnerEnvironment

from .ancestry import AncestryEvaluator
from .authorization import AuthorizationGate, PermissionSource
from .errors import FastForwardError
from .executor import MutationExecutor
from .models import (
    CheckOnly,
    ForbiddenMerge,
    IsAncestor,
    MergeFailed,
    MergeSucceeded,
    Outcome,
    PullRequestInfo,
    Requester,
)
from .report import CommentSink, PublishResult, Report, ReportContext, publish, render
from .resolver import ReferenceResolver
from .strategy import StrategySelector

__all__ = ["FastForwardEngine", "InvocationResult"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvocationResult:
    outcome: Outcome
    report: Report
    published: PublishResult | None = None

    @property
    def exit_code(self) -> int:
        return 0 if self.outcome.succeeded else 1


class FastForwardEngine:
    """Wire the pipeline components together for a single invocation."""

    def __init__(
        self,
        *,
        git: GitRunner,
        resolver: ReferenceResolver,
        evaluator: AncestryEvaluator,
        gate: AuthorizationGate,
        selector: StrategySelector,
        executor: MutationExecutor,
        config: FastForwardConfig,
    ) -> None:
        self.git = git
        self.resolver = resolver
        self.evaluator = evaluator
        self.gate = gate
        self.selector = selector
        self.executor = executor
        self.config = config

    @classmethod
    def build(
        cls,
        config: FastForwardConfig,
        *,
        workdir: Path,
        token: str | None,
        permissions: PermissionSource,
    ) -> "FastForwardEngine":
        git = GitRunner(workdir, network_timeout=config.network_timeout)
        return cls(
            git=git,
            resolver=ReferenceResolver(git, token),
            evaluator=AncestryEvaluator(git, limit=config.divergence_limit),
            gate=AuthorizationGate(permissions),
            selector=StrategySelector(
                git,
                strategy=config.merge_strategy,
                style=config.merge_commit_message_style,
                author_email=config.author_email,
            ),
            executor=MutationExecutor(git, token),
            config=config,
        )

    def run(
        self,
        pull_request: PullRequestInfo,
        requester: Requester,
        *,
        environment: RunnerEnvironment | None = None,
        comments: CommentSink | None = None,
    ) -> InvocationResult:
        context = ReportContext(
            requester=requester,
            pull_request=pull_request,
            describe=self.git.describe,
        )
        try:
            outcome = self._decide(pull_request, requester, context)
        except FastForwardError as exc:
            logger.error("%s", exc)
            outcome = MergeFailed(reason=str(exc), error=exc)
        except Exception as exc:  # noqa: BLE001 - the report must still be produced
            logger.exception("Unexpected failure while fast forwarding")
            outcome = MergeFailed(reason=f"unexpected error: {exc}")

        report = render(outcome, context)
        published = None
        if environment is not None:
            try:
                published = publish(
                    report,
                    environment,
                    policy=self.config.comment,
                    comments=comments,
                    comments_url=pull_request.comments_url,
                )
            except OSError as exc:
                logger.error("Could not write report sinks: %s", exc)
        return InvocationResult(outcome=outcome, report=report, published=published)

    def _decide(
        self,
        pull_request: PullRequestInfo,
        requester: Requester,
        context: ReportContext,
    ) -> Outcome:
        self.resolver.ensure_repository()
        base = self.resolver.resolve(pull_request.base)
        context.base = base
        head = self.resolver.resolve_head(pull_request.head)
        context.head = head

        ancestry = self.evaluator.evaluate(base, head)
        if not isinstance(ancestry, IsAncestor):
            logger.info("Cannot fast forward %s to %s", base.name, head.name)
            return CheckOnly(ancestry)
        if not self.config.merge:
            return CheckOnly(ancestry)

        decision = self.gate.authorize(requester.login, pull_request.repository)
        if not decision.can_push:
            return ForbiddenMerge(identity=requester.login, reason=decision.reason)
        if ancestry.already_up_to_date:
            return CheckOnly(ancestry)

        mutation = self.selector.select(base, head, pull_request, requester)
        result = self.executor.apply(pull_request.base, mutation)
        if result.success:
            return MergeSucceeded(new_base_sha=mutation.new_sha, transcript=result.transcript, mutation=mutation)
        return MergeFailed(
            reason=result.reason or "the remote rejected the update",
            error=result.error,
            transcript=result.transcript,
        )

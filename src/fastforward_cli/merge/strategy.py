"""Select the single reference update to apply.

``fast-forward`` moves the base to the head commit.  ``merge-commit``
synthesizes a commit whose tree is the head's tree and whose parents are
``[base, head]``, then moves the base to that commit instead.
"""

from __future__ import annotations

import logging

from fastforward_cli.core.git_ops import GitRunner

from .models import (
    CommitRef,
    MergeStrategy,
    MessageStyle,
    Mutation,
    PullRequestInfo,
    Requester,
)

__all__ = ["StrategySelector", "build_merge_message", "noreply_email"]

logger = logging.getLogger(__name__)

NOREPLY_DOMAIN = "users.noreply.github.com"


def noreply_email(login: str, user_id: int | None = None) -> str:
    """Synthesize the address the host attributes to ``login``."""
    if user_id is not None:
        return f"{user_id}+{login}@{NOREPLY_DOMAIN}"
    return f"{login}@{NOREPLY_DOMAIN}"


def build_merge_message(pull_request: PullRequestInfo, style: MessageStyle) -> str:
    """Render the merge commit message for ``style``."""
    reference = f"Merge pull request #{pull_request.number} from {pull_request.head.display_label}"
    title = pull_request.title.strip()

    if style is MessageStyle.DEFAULT or not title:
        return reference + "\n"

    parts = [title, reference]
    if style is MessageStyle.PR_TITLE_AND_BODY and pull_request.body:
        parts.append(pull_request.body)
    return "\n\n".join(parts).rstrip("\n") + "\n"


class StrategySelector:
    """Produce the :class:`Mutation` for the configured strategy."""

    def __init__(
        self,
        git: GitRunner,
        strategy: MergeStrategy = MergeStrategy.FAST_FORWARD,
        style: MessageStyle = MessageStyle.DEFAULT,
        author_email: str | None = None,
    ) -> None:
        self.git = git
        self.strategy = strategy
        self.style = style
        self.author_email = author_email

    def select(
        self,
        base: CommitRef,
        head: CommitRef,
        pull_request: PullRequestInfo,
        requester: Requester,
    ) -> Mutation:
        if self.strategy is MergeStrategy.FAST_FORWARD:
            return Mutation(ref=base.name, expected_sha=base.sha, new_sha=head.sha)

        message = build_merge_message(pull_request, self.style)
        merge_sha = self._create_merge_commit(base, head, message, requester)
        logger.info("Created merge commit %s with parents %s %s", merge_sha, base.sha, head.sha)
        return Mutation(
            ref=base.name,
            expected_sha=base.sha,
            new_sha=merge_sha,
            strategy=MergeStrategy.MERGE_COMMIT,
            message=message,
        )

    def _create_merge_commit(
        self,
        base: CommitRef,
        head: CommitRef,
        message: str,
        requester: Requester,
    ) -> str:
        email = self.author_email or noreply_email(requester.login, requester.user_id)
        identity_env = {
            "GIT_AUTHOR_NAME": requester.login,
            "GIT_AUTHOR_EMAIL": email,
            "GIT_COMMITTER_NAME": requester.login,
            "GIT_COMMITTER_EMAIL": email,
        }
        return self.git.check_output(
            [
                "commit-tree",
                f"{head.sha}^{{tree}}",
                "-p",
                base.sha,
                "-p",
                head.sha,
                "-m",
                message,
            ],
            env=identity_env,
        )

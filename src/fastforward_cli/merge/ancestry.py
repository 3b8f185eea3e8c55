"""Fast-forward decision and divergence reporting."""

from __future__ import annotations

import logging

from fastforward_cli.core.git_ops import GitRunner

from .errors import GitCommandError
from .models import AncestryResult, CommitRef, CommitSummary, Diverged, IsAncestor

__all__ = ["AncestryEvaluator", "DEFAULT_DIVERGENCE_LIMIT"]

logger = logging.getLogger(__name__)

DEFAULT_DIVERGENCE_LIMIT = 20


class AncestryEvaluator:
    """Decide whether ``base`` can be fast forwarded to ``head``.

    When it cannot, the evaluator finds the merge base and lists, newest
    first, the commits unique to each side.  Listings are capped at
    ``limit`` entries and flagged as truncated when more exist.
    """

    def __init__(self, git: GitRunner, limit: int = DEFAULT_DIVERGENCE_LIMIT) -> None:
        if limit < 1:
            raise ValueError("divergence limit must be at least 1")
        self.git = git
        self.limit = limit

    def evaluate(self, base: CommitRef, head: CommitRef) -> AncestryResult:
        if base.sha == head.sha:
            return IsAncestor(base=base, head=head)

        if self.is_ancestor(base.sha, head.sha):
            return IsAncestor(base=base, head=head)

        merge_base = self.merge_base(base.sha, head.sha)
        if merge_base is None:
            logger.info("%s and %s share no history", base.sha, head.sha)
            return Diverged(base=base, head=head, merge_base=None)

        base_only, base_truncated = self._unique_commits(base.sha, merge_base)
        head_only, head_truncated = self._unique_commits(head.sha, merge_base)
        graph, graph_truncated = self._graph(base.sha, head.sha, merge_base)
        return Diverged(
            base=base,
            head=head,
            merge_base=merge_base,
            base_only=base_only,
            head_only=head_only,
            base_truncated=base_truncated,
            head_truncated=head_truncated,
            graph=graph,
            graph_truncated=graph_truncated,
        )

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self.git.run(["merge-base", "--is-ancestor", ancestor, descendant])
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitCommandError(result.command_line, result.returncode, result.stderr)

    def merge_base(self, first: str, second: str) -> str | None:
        result = self.git.run(["merge-base", first, second])
        sha = result.stdout.strip()
        if result.returncode == 0 and sha:
            return sha
        if result.returncode == 1:
            return None
        raise GitCommandError(result.command_line, result.returncode, result.stderr)

    def parent_of(self, sha: str) -> str | None:
        """Return the first parent of ``sha``; ``None`` for a root commit."""
        result = self.git.run(["rev-parse", "--verify", "--quiet", f"{sha}^1"])
        parent = result.stdout.strip()
        return parent if result.ok and parent else None

    def _unique_commits(self, tip: str, merge_base: str) -> tuple[tuple[CommitSummary, ...], bool]:
        output = self.git.check_output(
            ["log", f"--max-count={self.limit + 1}", "--format=%H %s", tip, f"^{merge_base}"]
        )
        commits = [_parse_summary(line) for line in output.splitlines() if line.strip()]
        truncated = len(commits) > self.limit
        return tuple(commits[: self.limit]), truncated

    def _graph(self, base: str, head: str, merge_base: str) -> tuple[str, bool]:
        """Render the bounded graph; the flag is set when commits were cut off."""
        cap = 2 * self.limit + 1
        revisions = [base, head]
        parent = self.parent_of(merge_base)
        if parent is not None:
            revisions.append(f"^{parent}")

        result = self.git.run(["log", "--graph", "--pretty=oneline", f"--max-count={cap}", *revisions])
        if not result.ok:
            logger.warning("Could not render divergence graph: %s", result.stderr.strip())
            return "", False

        counted = self.git.run(["rev-list", "--count", *revisions])
        truncated = counted.ok and counted.stdout.strip().isdigit() and int(counted.stdout) > cap
        return result.stdout.rstrip("\n"), truncated


def _parse_summary(line: str) -> CommitSummary:
    sha, _, subject = line.strip().partition(" ")
    return CommitSummary(sha=sha, subject=subject)

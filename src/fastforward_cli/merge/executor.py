"""Apply the reference update to the remote.

This is the only module that mutates remote state.  The update is a
compare-and-swap: ``--force-with-lease`` pins the value the base had when it
was resolved, so a concurrent push makes the update fail instead of being
overwritten.  Failures are reported, never retried.
"""

from __future__ import annotations

import logging
import re

from fastforward_cli.core.git_ops import GitRunner, auth_environment

from .errors import MutationConflict, TransportError
from .models import Mutation, MutationResult, RepositoryEndpoint
from .resolver import tracking_ref

__all__ = ["MutationExecutor", "push_command"]

logger = logging.getLogger(__name__)

_CONFLICT_PATTERNS = re.compile(
    r"stale info|\[rejected\]|non-fast-forward|fetch first|\(remote rejected\)|failed to update ref",
    re.IGNORECASE,
)


def push_command(endpoint: RepositoryEndpoint, mutation: Mutation) -> list[str]:
    target = f"refs/heads/{mutation.ref}"
    return [
        "push",
        "--porcelain",
        f"--force-with-lease={target}:{mutation.expected_sha}",
        endpoint.clone_url,
        f"{mutation.new_sha}:{target}",
    ]


class MutationExecutor:
    """Set one remote reference, atomically, from an expected value."""

    def __init__(self, git: GitRunner, token: str | None = None) -> None:
        self.git = git
        self._auth_env = auth_environment(token)

    def apply(self, endpoint: RepositoryEndpoint, mutation: Mutation) -> MutationResult:
        args = push_command(endpoint, mutation)
        logger.info(
            "Updating %s on %s: %s -> %s",
            mutation.ref,
            endpoint.clone_url,
            mutation.expected_sha,
            mutation.new_sha,
        )
        result = self.git.run(args, network=True, env=self._auth_env)
        transcript = f"$ {result.command_line}\n{result.output}".rstrip()

        if result.ok:
            self._record(mutation)
            return MutationResult(success=True, transcript=transcript)

        reason = result.output.strip() or f"git push exited with {result.returncode}"
        if not result.timed_out and _CONFLICT_PATTERNS.search(reason):
            error = MutationConflict(mutation.ref, reason)
        else:
            error = TransportError(reason)
        logger.warning("Update of %s rejected: %s", mutation.ref, reason)
        return MutationResult(success=False, transcript=transcript, reason=reason, error=error)

    def _record(self, mutation: Mutation) -> None:
        """Move the remote-tracking branch the way ``git push`` to a named remote would."""
        result = self.git.run(
            ["update-ref", tracking_ref(mutation.ref), mutation.new_sha, mutation.expected_sha]
        )
        if not result.ok:
            logger.debug("Could not update %s: %s", tracking_ref(mutation.ref), result.stderr.strip())

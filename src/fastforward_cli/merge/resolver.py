"""Reference resolution with a single fetch-and-retry.

Base branches resolve through ``refs/remotes/origin/<branch>``; pull request
heads resolve the commit the platform reported.  When the object is not in
the local repository it is fetched from the endpoint's clone URL and the
lookup is attempted exactly once more.
"""

from __future__ import annotations

import logging

from fastforward_cli.core.git_ops import GitRunner, auth_environment

from .errors import ResolutionError, TransportError
from .models import CommitRef, RepositoryEndpoint

__all__ = ["ReferenceResolver", "tracking_ref", "display_branch"]

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


def tracking_ref(branch: str) -> str:
    return f"refs/remotes/origin/{branch}"


def display_branch(head_ref: str) -> str:
    return f"pull_request/{head_ref}"


class ReferenceResolver:
    """Resolve repository endpoints to concrete commits."""

    def __init__(self, git: GitRunner, token: str | None = None) -> None:
        self.git = git
        self._auth_env = auth_environment(token)

    def ensure_repository(self) -> None:
        """Initialise an empty repository when the work directory has none."""
        if self.git.is_repository():
            return
        logger.info("No git repository in %s; initialising one", self.git.repo_root)
        self.git.repo_root.mkdir(parents=True, exist_ok=True)
        self.git.check_output(["init", "--quiet"])

    def resolve(self, endpoint: RepositoryEndpoint) -> CommitRef:
        """Return the commit ``endpoint`` points at, fetching it if needed.

        Raises:
            ResolutionError: if the commit is still missing after one fetch,
                or the fetch itself fails.
        """
        for attempt in range(1, MAX_ATTEMPTS + 1):
            sha = self._lookup(endpoint)
            if sha is not None:
                logger.debug("Resolved %s to %s (attempt %d)", endpoint.ref, sha, attempt)
                return CommitRef(name=endpoint.ref, sha=sha)
            if attempt == MAX_ATTEMPTS:
                break
            logger.info("%s not available locally; fetching from %s", endpoint.ref, endpoint.clone_url)
            try:
                self._fetch(endpoint)
            except TransportError as exc:
                raise ResolutionError(endpoint.ref, str(exc)) from exc

        wanted = endpoint.sha or tracking_ref(endpoint.ref)
        raise ResolutionError(
            endpoint.ref,
            f"{wanted} is not present in {endpoint.clone_url} (was the branch deleted?)",
        )

    def resolve_head(self, endpoint: RepositoryEndpoint) -> CommitRef:
        """Resolve a pull request head and name a local branch after it."""
        head = self.resolve(endpoint)
        result = self.git.run(["branch", "--force", display_branch(endpoint.ref), head.sha])
        if not result.ok:
            # Only cosmetic: the branch decorates `git log` output.
            logger.debug("Could not create %s: %s", display_branch(endpoint.ref), result.stderr.strip())
        return head

    def _lookup(self, endpoint: RepositoryEndpoint) -> str | None:
        if endpoint.sha:
            return endpoint.sha if self.git.has_commit(endpoint.sha) else None
        return self.git.rev_parse(tracking_ref(endpoint.ref))

    def _fetch(self, endpoint: RepositoryEndpoint) -> None:
        if endpoint.sha:
            refspec = endpoint.sha
        else:
            refspec = f"+refs/heads/{endpoint.ref}:{tracking_ref(endpoint.ref)}"

        result = self.git.run(
            ["fetch", "--quiet", "--no-tags", endpoint.clone_url, refspec],
            network=True,
            env=self._auth_env,
        )
        if not result.ok:
            raise TransportError(result.stderr.strip() or f"git fetch exited with {result.returncode}")

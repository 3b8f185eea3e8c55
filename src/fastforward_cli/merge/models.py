"""Value types passed between the pipeline stages.

All types are frozen: each is computed once per invocation and handed to
the next stage as an ordinary return value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Union

from .errors import AuthorizationDenied, DivergenceError, FastForwardError

SHORT_SHA_LENGTH = 12


@dataclass(frozen=True)
class CommitRef:
    """A symbolic name paired with the commit it resolved to."""

    name: str
    sha: str

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LENGTH]


@dataclass(frozen=True)
class RepositoryEndpoint:
    """A remote repository plus the reference of interest in it.

    ``sha`` is set when the hosting platform already reports the commit
    (a pull request head); base endpoints resolve through the remote-tracking
    branch instead.
    """

    clone_url: str
    owner: str
    ref: str
    sha: str | None = None
    label: str | None = None

    @property
    def display_label(self) -> str:
        return self.label or f"{self.owner}:{self.ref}"


@dataclass(frozen=True)
class Requester:
    """The identity that triggered the invocation."""

    login: str
    user_id: int | None = None
    trigger_url: str | None = None


@dataclass(frozen=True)
class PullRequestInfo:
    """Pull request metadata the pipeline needs, independent of the event shape."""

    number: int
    repository: str
    base: RepositoryEndpoint
    head: RepositoryEndpoint
    title: str = ""
    body: str = ""
    html_url: str | None = None
    comments_url: str | None = None


@dataclass(frozen=True)
class CommitSummary:
    sha: str
    subject: str

    def __str__(self) -> str:
        return f"{self.sha} {self.subject}".rstrip()


@dataclass(frozen=True)
class IsAncestor:
    """The base can be fast forwarded to the head."""

    base: CommitRef
    head: CommitRef

    @property
    def is_ancestor(self) -> bool:
        return True

    @property
    def already_up_to_date(self) -> bool:
        return self.base.sha == self.head.sha


@dataclass(frozen=True)
class Diverged:
    """The base is not an ancestor of the head.

    ``merge_base`` is ``None`` when the two commits share no history; the
    commit listings are then empty.
    """

    base: CommitRef
    head: CommitRef
    merge_base: str | None
    base_only: tuple[CommitSummary, ...] = ()
    head_only: tuple[CommitSummary, ...] = ()
    base_truncated: bool = False
    head_truncated: bool = False
    graph: str = ""
    graph_truncated: bool = False

    @property
    def is_ancestor(self) -> bool:
        return False

    @property
    def has_common_ancestor(self) -> bool:
        return self.merge_base is not None


AncestryResult = Union[IsAncestor, Diverged]


@dataclass(frozen=True)
class AuthorizationDecision:
    identity: str
    repository: str
    can_push: bool
    reason: str | None = None


class MergeStrategy(StrEnum):
    """How the base reference is advanced."""

    FAST_FORWARD = "fast-forward"
    MERGE_COMMIT = "merge-commit"


class MessageStyle(StrEnum):
    """Template for synthesized merge commit messages."""

    DEFAULT = "default"
    PR_TITLE = "pr-title"
    PR_TITLE_AND_BODY = "pr-title-and-body"


class CommentPolicy(StrEnum):
    """When the rendered report is posted back to the pull request."""

    ALWAYS = "always"
    ON_ERROR = "on-error"
    NEVER = "never"

    def should_post(self, success: bool) -> bool:
        if self is CommentPolicy.ALWAYS:
            return True
        if self is CommentPolicy.ON_ERROR:
            return not success
        return False


@dataclass(frozen=True)
class Mutation:
    """Set remote reference ``ref`` to ``new_sha`` if it is still ``expected_sha``."""

    ref: str
    expected_sha: str
    new_sha: str
    strategy: MergeStrategy = MergeStrategy.FAST_FORWARD
    message: str | None = None


@dataclass(frozen=True)
class MutationResult:
    success: bool
    transcript: str
    reason: str | None = None
    error: FastForwardError | None = None


@dataclass(frozen=True)
class CheckOnly:
    """No mutation was attempted; the ancestry decision is the outcome."""

    ancestry: AncestryResult

    @property
    def succeeded(self) -> bool:
        return self.ancestry.is_ancestor

    @property
    def error(self) -> FastForwardError | None:
        if isinstance(self.ancestry, Diverged):
            return DivergenceError(self.ancestry)
        return None


@dataclass(frozen=True)
class ForbiddenMerge:
    identity: str
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return False

    @property
    def error(self) -> FastForwardError:
        return AuthorizationDenied(self.identity, self.reason)


@dataclass(frozen=True)
class MergeSucceeded:
    new_base_sha: str
    transcript: str = ""
    mutation: Mutation | None = None

    @property
    def succeeded(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None


@dataclass(frozen=True)
class MergeFailed:
    reason: str
    error: FastForwardError | None = field(default=None, compare=False)
    transcript: str = ""

    @property
    def succeeded(self) -> bool:
        return False


Outcome = Union[CheckOnly, ForbiddenMerge, MergeSucceeded, MergeFailed]


__all__ = [
    "AncestryResult",
    "AuthorizationDecision",
    "CheckOnly",
    "CommentPolicy",
    "CommitRef",
    "CommitSummary",
    "Diverged",
    "ForbiddenMerge",
    "IsAncestor",
    "MergeFailed",
    "MergeStrategy",
    "MergeSucceeded",
    "MessageStyle",
    "Mutation",
    "MutationResult",
    "Outcome",
    "PullRequestInfo",
    "RepositoryEndpoint",
    "Requester",
]

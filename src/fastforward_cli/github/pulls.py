"""Turn an event payload into the pull request and requester the pipeline needs."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Protocol

import pydantic

from fastforward_cli.merge.models import PullRequestInfo, RepositoryEndpoint, Requester

from .events import EventError, GitHubEvent, GitRef, PullRequest, first_present

__all__ = ["endpoint_for", "load_pull_request", "requester_for", "to_pull_request_info"]

logger = logging.getLogger(__name__)


class PullRequestSource(Protocol):
    def get_pull_request(self, url: str) -> dict[str, Any]: ...


def load_pull_request(event: GitHubEvent, source: PullRequestSource) -> PullRequest:
    """Return the event's pull request, fetching it for comment events."""
    if event.pull_request is not None:
        return event.pull_request

    url = event.pull_request_api_url
    if not url:
        raise EventError("Unable to find pull request's context.")

    logger.info("Fetching pull request metadata from %s", url)
    payload = source.get_pull_request(url)
    try:
        return PullRequest.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise EventError(f"Unexpected pull request payload from {url}: {exc}") from exc


def endpoint_for(ref: GitRef, *, fallback_owner: str | None = None) -> RepositoryEndpoint:
    repo = ref.repo
    clone_url = repo.clone_url if repo is not None else None
    if not clone_url:
        raise EventError(f"Repository for `{ref.ref}` has no clone_url (was the fork deleted?)")
    owner = first_present(
        ref,
        lambda r: r.repo.owner.login,
        lambda r: r.label.split(":", 1)[0] if r.label and ":" in r.label else None,
    )
    return RepositoryEndpoint(
        clone_url=clone_url,
        owner=owner or fallback_owner or "",
        ref=ref.ref,
        label=ref.label,
    )


def to_pull_request_info(pull_request: PullRequest, event: GitHubEvent) -> PullRequestInfo:
    repository = first_present(
        pull_request,
        lambda pr: pr.base.repo.full_name,
        lambda _pr: event.repository_full_name,
    )
    if not repository:
        raise EventError("Unable to determine the target repository's name.")

    base = endpoint_for(pull_request.base)
    # The reported base sha is the branch value when the pull request was
    # opened and may be stale; only the head is pinned.
    head = replace(endpoint_for(pull_request.head, fallback_owner=base.owner), sha=pull_request.head.sha)
    return PullRequestInfo(
        number=pull_request.number,
        repository=repository,
        base=base,
        head=head,
        title=pull_request.title or "",
        body=pull_request.body or "",
        html_url=pull_request.html_url,
        comments_url=pull_request.comments_url,
    )


def requester_for(event: GitHubEvent, actor: str | None) -> Requester:
    """The identity is the event sender, falling back to the runner's actor."""
    login = first_present(event, lambda e: e.sender.login) or actor
    if not login:
        raise EventError("Unable to determine who triggered the event (no sender, GITHUB_ACTOR unset).")
    user_id = event.sender.id if event.sender is not None and event.sender.login == login else None
    return Requester(login=login, user_id=user_id, trigger_url=event.trigger_url)

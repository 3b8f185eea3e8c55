"""Webhook payload models for ``issue_comment`` and ``pull_request`` events.

Only the fields the fast-forward pipeline reads are modelled; everything
else in the payload is ignored.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, TypeVar

import pydantic

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S")


class EventError(RuntimeError):
    """Raised when the event payload cannot be read or lacks required data."""


class User(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    login: str
    id: int | None = None


class Repository(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    name: str | None = None
    full_name: str | None = None
    clone_url: str | None = None
    collaborators_url: str | None = None
    owner: User | None = None


class GitRef(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    ref: str
    sha: str
    label: str | None = None
    repo: Repository | None = None


class PullRequest(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    number: int
    url: str | None = None
    html_url: str | None = None
    comments_url: str | None = None
    title: str | None = None
    body: str | None = None
    base: GitRef
    head: GitRef


class PullRequestLink(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    url: str | None = None
    html_url: str | None = None


class Issue(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    number: int | None = None
    html_url: str | None = None
    pull_request: PullRequestLink | None = None


class Comment(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    html_url: str | None = None
    body: str | None = None


class GitHubEvent(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    comment: Comment | None = None
    issue: Issue | None = None
    pull_request: PullRequest | None = None
    repository: Repository | None = None
    sender: User | None = None

    @property
    def trigger_url(self) -> str | None:
        return first_present(
            self,
            lambda event: event.comment.html_url,
            lambda event: event.pull_request.html_url,
            lambda event: event.issue.html_url,
        )

    @property
    def pull_request_api_url(self) -> str | None:
        return first_present(
            self,
            lambda event: event.pull_request.url,
            lambda event: event.issue.pull_request.url,
        )

    @property
    def repository_full_name(self) -> str | None:
        return first_present(
            self,
            lambda event: event.repository.full_name,
            lambda event: event.pull_request.base.repo.full_name,
        )


def first_present(source: S, *accessors: Callable[[S], T | None]) -> T | None:
    """Return the first non-``None`` value produced by ``accessors``.

    A missing intermediate object (``AttributeError`` on ``None``) counts as
    absent, so ``lambda e: e.comment.html_url`` is safe on events without a
    comment.
    """
    for accessor in accessors:
        try:
            value = accessor(source)
        except AttributeError:
            continue
        if value is not None:
            return value
    return None


def parse_event(payload: dict[str, Any]) -> GitHubEvent:
    try:
        return GitHubEvent.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise EventError(f"Unrecognised event payload: {exc}") from exc


def load_event(path: Path) -> GitHubEvent:
    """Load the event JSON written by the runner at ``GITHUB_EVENT_PATH``."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise EventError(f"Cannot read event payload {path}: {exc}") from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise EventError(f"Event payload {path} is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise EventError(f"Event payload {path} is not a JSON object")

    logger.debug("Event payload: %s", json.dumps(payload, indent=2, sort_keys=True))
    return parse_event(payload)


__all__ = [
    "Comment",
    "EventError",
    "GitHubEvent",
    "GitRef",
    "Issue",
    "PullRequest",
    "PullRequestLink",
    "Repository",
    "User",
    "first_present",
    "load_event",
    "parse_event",
]

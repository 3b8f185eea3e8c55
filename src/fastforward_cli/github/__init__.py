"""GitHub integration surface: event payloads, REST calls and runner sinks."""

from fastforward_cli.github.client import GitHubClient, github_token
from fastforward_cli.github.environment import RunnerEnvironment
from fastforward_cli.github.events import EventError, GitHubEvent, PullRequest, load_event
from fastforward_cli.github.pulls import load_pull_request, requester_for, to_pull_request_info

__all__ = [
    "EventError",
    "GitHubClient",
    "GitHubEvent",
    "PullRequest",
    "RunnerEnvironment",
    "github_token",
    "load_event",
    "load_pull_request",
    "requester_for",
    "to_pull_request_info",
]

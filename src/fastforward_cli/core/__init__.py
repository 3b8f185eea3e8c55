"""Core utilities shared by the merge pipeline."""

from .git_ops import (
    DEFAULT_LOCAL_TIMEOUT,
    DEFAULT_NETWORK_TIMEOUT,
    GitCommandResult,
    GitRunner,
    auth_environment,
)

__all__ = [
    "DEFAULT_LOCAL_TIMEOUT",
    "DEFAULT_NETWORK_TIMEOUT",
    "GitCommandResult",
    "GitRunner",
    "auth_environment",
]

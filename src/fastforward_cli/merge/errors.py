"""Exception hierarchy for the fast-forward pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Diverged


class FastForwardError(Exception):
    """Base exception for fast-forward errors."""

    kind = "error"


class GitCommandError(FastForwardError):
    """A local git command exited unsuccessfully."""

    kind = "git"

    def __init__(self, command: str, returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"`{command}` failed: {detail}")


class ResolutionError(FastForwardError):
    """A reference or commit is unreachable even after fetching."""

    kind = "resolution"

    def __init__(self, ref: str, reason: str):
        self.ref = ref
        self.reason = reason
        super().__init__(f"Unable to resolve `{ref}`: {reason}")


class DivergenceError(FastForwardError):
    """The base is not an ancestor of the head."""

    kind = "divergence"

    def __init__(self, result: "Diverged"):
        self.result = result
        super().__init__(
            f"`{result.base.name}` {result.base.sha} is not a direct ancestor of "
            f"`{result.head.name}` {result.head.sha}"
        )


class AuthorizationDenied(FastForwardError):
    """The requesting identity lacks push permission."""

    kind = "authorization"

    def __init__(self, identity: str, reason: str | None = None):
        self.identity = identity
        self.reason = reason
        message = f"{identity} does not have write access"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class MutationConflict(FastForwardError):
    """The remote rejected the compare-and-swap reference update."""

    kind = "conflict"

    def __init__(self, ref: str, reason: str):
        self.ref = ref
        self.reason = reason
        super().__init__(f"Remote rejected update of `{ref}`: {reason}")


class TransportError(FastForwardError):
    """A network call failed or timed out."""

    kind = "transport"


__all__ = [
    "AuthorizationDenied",
    "DivergenceError",
    "FastForwardError",
    "GitCommandError",
    "MutationConflict",
    "ResolutionError",
    "TransportError",
]

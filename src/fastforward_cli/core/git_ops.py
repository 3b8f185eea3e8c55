"""Thin subprocess wrapper around the git executable.

Every git invocation in the project goes through :class:`GitRunner` so that
timeouts, encoding and failure shapes are handled in one place.  Network
operations (fetch, push) get their own, longer timeout.
"""

from __future__ import annotations

import base64
import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

from fastforward_cli.merge.errors import GitCommandError

__all__ = [
    "GitCommandResult",
    "GitRunner",
    "auth_environment",
    "DEFAULT_LOCAL_TIMEOUT",
    "DEFAULT_NETWORK_TIMEOUT",
]

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_TIMEOUT = 30.0
DEFAULT_NETWORK_TIMEOUT = 120.0

# Exit codes used when git could not run to completion.
GIT_NOT_FOUND = 127
GIT_TIMED_OUT = 124


@dataclass(frozen=True)
class GitCommandResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def timed_out(self) -> bool:
        return self.returncode == GIT_TIMED_OUT

    @property
    def output(self) -> str:
        """stdout and stderr combined, the way a terminal would show them."""
        parts = [part.rstrip("\n") for part in (self.stdout, self.stderr) if part.strip()]
        return "\n".join(parts)

    @property
    def command_line(self) -> str:
        return shlex.join(["git", *self.args])


def auth_environment(token: str | None) -> dict[str, str]:
    """Build environment variables that authenticate git over HTTPS.

    The bearer credential travels as an ``http.extraheader`` configured via
    ``GIT_CONFIG_*`` variables so it never shows up in argv, remote URLs or
    the persisted git config.
    """
    env = {"GIT_TERMINAL_PROMPT": "0"}
    if not token:
        return env
    basic = base64.b64encode(f"x-access-token:{token}".encode("utf-8")).decode("ascii")
    env.update(
        {
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraheader",
            "GIT_CONFIG_VALUE_0": f"AUTHORIZATION: basic {basic}",
        }
    )
    return env


class GitRunner:
    """Run git commands inside a single repository."""

    def __init__(
        self,
        repo_root: Path,
        *,
        timeout: float = DEFAULT_LOCAL_TIMEOUT,
        network_timeout: float = DEFAULT_NETWORK_TIMEOUT,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.timeout = timeout
        self.network_timeout = network_timeout

    def run(
        self,
        args: list[str],
        *,
        network: bool = False,
        env: dict[str, str] | None = None,
    ) -> GitCommandResult:
        """Run ``git <args>`` and normalize the result; never raises."""
        timeout = self.network_timeout if network else self.timeout
        full_env = dict(os.environ)
        if env:
            full_env.update(env)

        logger.debug("git %s (cwd=%s)", shlex.join(args), self.repo_root)
        try:
            completed = subprocess.run(
                ["git", *args],
                cwd=str(self.repo_root),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=timeout,
                env=full_env,
            )
        except FileNotFoundError:
            return GitCommandResult(tuple(args), GIT_NOT_FOUND, "", "git executable not found on PATH")
        except subprocess.TimeoutExpired:
            return GitCommandResult(
                tuple(args),
                GIT_TIMED_OUT,
                "",
                f"git command timed out after {timeout:g}s: git {shlex.join(args)}",
            )

        result = GitCommandResult(
            tuple(args),
            completed.returncode,
            completed.stdout or "",
            completed.stderr or "",
        )
        if not result.ok:
            logger.debug("git exited with %s: %s", result.returncode, result.stderr.strip())
        return result

    def check_output(self, args: list[str], **kwargs) -> str:
        """Run git and return stripped stdout, raising on a non-zero exit."""
        result = self.run(args, **kwargs)
        if not result.ok:
            raise GitCommandError(result.command_line, result.returncode, result.stderr)
        return result.stdout.strip()

    def is_repository(self) -> bool:
        result = self.run(["rev-parse", "--is-inside-work-tree"])
        return result.ok and result.stdout.strip().lower() == "true"

    def has_commit(self, sha: str) -> bool:
        return self.run(["cat-file", "-e", f"{sha}^{{commit}}"]).ok

    def rev_parse(self, ref: str) -> str | None:
        result = self.run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        value = result.stdout.strip()
        return value if result.ok and value else None

    def describe(self, sha: str) -> str:
        """Return the ``git log -n 1`` block used in reports."""
        return self.check_output(["log", "--decorate=short", "-n", "1", sha])

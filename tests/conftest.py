from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Iterator

import pytest

from fastforward_cli.core.git_ops import GitRunner
from fastforward_cli.merge.models import PullRequestInfo, RepositoryEndpoint, Requester


def run(cmd: list[str], cwd: Path) -> str:
    completed = subprocess.run(cmd, cwd=str(cwd), check=True, capture_output=True, text=True)
    return completed.stdout.strip()


class GitHost:
    """A bare "remote" repository plus an author clone that pushes to it.

    ``workdir`` is where the code under test operates; it starts out empty.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.remote = root / "remote.git"
        self.author = root / "author"
        self.workdir = root / "workdir"
        self._counter = 0

        self.remote.mkdir()
        run(["git", "init", "--quiet", "--bare", "--initial-branch", "main"], cwd=self.remote)
        self.author.mkdir()
        run(["git", "init", "--quiet", "--initial-branch", "main"], cwd=self.author)
        run(["git", "config", "user.name", "Fast Forward Unit Test"], cwd=self.author)
        run(["git", "config", "user.email", "ff@example.com"], cwd=self.author)
        run(["git", "config", "commit.gpgsign", "false"], cwd=self.author)
        run(["git", "remote", "add", "origin", str(self.remote)], cwd=self.author)

    @property
    def clone_url(self) -> str:
        return str(self.remote)

    def commit(self, message: str, *, branch: str = "main", start: str | None = None) -> str:
        """Commit a new file on ``branch`` (created from ``start`` if given)."""
        if start is not None:
            run(["git", "checkout", "--quiet", "-B", branch, start], cwd=self.author)
        elif self._current_branch() != branch:
            exists = subprocess.run(
                ["git", "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"],
                cwd=str(self.author),
                capture_output=True,
            ).returncode == 0
            run(["git", "checkout", "--quiet", *([] if exists else ["-b"]), branch], cwd=self.author)
        self._counter += 1
        (self.author / f"file-{self._counter}.txt").write_text(f"{message}\n", encoding="utf-8")
        run(["git", "add", "."], cwd=self.author)
        run(["git", "commit", "--quiet", "-m", message], cwd=self.author)
        return run(["git", "rev-parse", "HEAD"], cwd=self.author)

    def _current_branch(self) -> str:
        return run(["git", "symbolic-ref", "--short", "HEAD"], cwd=self.author)

    def orphan(self, message: str, *, branch: str) -> str:
        run(["git", "checkout", "--quiet", "--orphan", branch], cwd=self.author)
        run(["git", "rm", "-r", "--quiet", "--force", "."], cwd=self.author)
        self._counter += 1
        (self.author / f"orphan-{self._counter}.txt").write_text(f"{message}\n", encoding="utf-8")
        run(["git", "add", f"orphan-{self._counter}.txt"], cwd=self.author)
        run(["git", "commit", "--quiet", "-m", message], cwd=self.author)
        return run(["git", "rev-parse", "HEAD"], cwd=self.author)

    def push(self, *branches: str) -> None:
        run(["git", "push", "--quiet", "--force", "origin", *branches], cwd=self.author)

    def remote_sha(self, branch: str) -> str:
        return run(["git", "rev-parse", f"refs/heads/{branch}"], cwd=self.remote)

    def endpoint(self, branch: str, sha: str | None = None) -> RepositoryEndpoint:
        return RepositoryEndpoint(clone_url=self.clone_url, owner="octo", ref=branch, sha=sha, label=f"octo:{branch}")

    def pull_request(
        self,
        *,
        base: str = "main",
        head: str = "feature",
        title: str = "Add feature",
        body: str = "",
        number: int = 7,
    ) -> PullRequestInfo:
        return PullRequestInfo(
            number=number,
            repository="octo/widgets",
            base=self.endpoint(base),
            head=self.endpoint(head, sha=self.remote_sha(head)),
            title=title,
            body=body,
            html_url=f"https://github.com/octo/widgets/pull/{number}",
            comments_url=f"https://api.github.com/repos/octo/widgets/issues/{number}/comments",
        )


@pytest.fixture(autouse=True)
def isolated_git_config(tmp_path_factory, monkeypatch) -> None:
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GH_TOKEN", raising=False)


@pytest.fixture()
def host(tmp_path: Path) -> Iterator[GitHost]:
    yield GitHost(tmp_path)


@pytest.fixture()
def workdir_git(host: GitHost) -> GitRunner:
    host.workdir.mkdir(exist_ok=True)
    run(["git", "init", "--quiet", "--initial-branch", "main"], cwd=host.workdir)
    return GitRunner(host.workdir)


@pytest.fixture()
def requester() -> Requester:
    return Requester(
        login="octocat",
        user_id=583231,
        trigger_url="https://github.com/octo/widgets/pull/7#issuecomment-1",
    )

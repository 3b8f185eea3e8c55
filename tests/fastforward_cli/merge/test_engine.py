"""End-to-end tests for the fast-forward pipeline against a local remote."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from fastforward_cli.config import FastForwardConfig
from fastforward_cli.github.environment import RunnerEnvironment
from fastforward_cli.merge.engine import FastForwardEngine
from fastforward_cli.merge.errors import MutationConflict, ResolutionError
from fastforward_cli.merge.models import (
    CheckOnly,
    CommentPolicy,
    Diverged,
    ForbiddenMerge,
    MergeFailed,
    MergeStrategy,
    MergeSucceeded,
)

pytestmark = pytest.mark.git_repo

WRITE = {"permission": "write"}
READ = {"permission": "read"}


def _permissions(payload) -> MagicMock:
    source = MagicMock()
    source.get_permission.return_value = payload
    return source


def _engine(host, *, payload=WRITE, **config) -> FastForwardEngine:
    settings = {"merge": True, "comment": CommentPolicy.NEVER}
    settings.update(config)
    return FastForwardEngine.build(
        FastForwardConfig().with_overrides(**settings),
        workdir=host.workdir,
        token=None,
        permissions=_permissions(payload),
    )


@pytest.fixture()
def ahead(host):
    """``feature`` is two commits ahead of ``main``."""
    host.commit("initial")
    host.commit("feature one", branch="feature")
    head = host.commit("feature two", branch="feature")
    host.push("main", "feature")
    return head


@pytest.fixture()
def diverged(host):
    host.commit("initial")
    host.commit("feature", branch="feature")
    host.commit("hotfix", branch="main")
    host.push("main", "feature")


def test_check_only_reports_possible_fast_forward(host, ahead, requester) -> None:
    before = host.remote_sha("main")

    result = _engine(host, merge=False).run(host.pull_request(), requester)

    assert isinstance(result.outcome, CheckOnly)
    assert result.exit_code == 0
    assert host.remote_sha("main") == before
    assert "you can add a comment with `/fast-forward`" in result.report.text


def test_merge_fast_forwards_base(host, ahead, requester) -> None:
    result = _engine(host).run(host.pull_request(), requester)

    assert isinstance(result.outcome, MergeSucceeded)
    assert result.exit_code == 0
    assert host.remote_sha("main") == ahead
    assert "Fast forwarding `main`" in result.report.text


def test_merge_is_idempotent(host, ahead, requester) -> None:
    engine = _engine(host)
    engine.run(host.pull_request(), requester)

    again = engine.run(host.pull_request(), requester)

    assert isinstance(again.outcome, CheckOnly)
    assert again.outcome.ancestry.already_up_to_date
    assert again.exit_code == 0
    assert host.remote_sha("main") == ahead
    assert engine.gate.source.get_permission.call_count == 2


def test_up_to_date_merge_still_requires_write_access(host, requester) -> None:
    host.commit("initial")
    host.commit("feature", branch="feature", start="main")
    host.push("main", "feature")
    host.push("feature:main")
    engine = _engine(host, payload=READ)

    result = engine.run(host.pull_request(), requester)

    assert isinstance(result.outcome, ForbiddenMerge)
    assert result.exit_code == 1
    engine.gate.source.get_permission.assert_called_once_with("octo/widgets", "octocat")
    assert "Sorry @octocat, only those with write access" in result.report.text
    assert "nothing to fast forward" not in result.report.text


def test_check_only_reports_are_repeatable(host, ahead, requester) -> None:
    engine = _engine(host, merge=False)

    first = engine.run(host.pull_request(), requester)
    second = engine.run(host.pull_request(), requester)

    assert first.outcome == second.outcome
    assert first.report.text == second.report.text
    assert host.remote_sha("main") != ahead


def test_diverged_branches_are_left_alone(host, diverged, requester) -> None:
    before = host.remote_sha("main")

    result = _engine(host).run(host.pull_request(), requester)

    assert isinstance(result.outcome, CheckOnly)
    assert isinstance(result.outcome.ancestry, Diverged)
    assert result.exit_code == 1
    assert host.remote_sha("main") == before
    assert "is not a direct ancestor of" in result.report.text
    assert "Rebase locally, and then force push to `pull_request/feature`." in result.report.text


def test_requester_without_write_access_is_refused(host, ahead, requester) -> None:
    before = host.remote_sha("main")

    result = _engine(host, payload=READ).run(host.pull_request(), requester)

    assert isinstance(result.outcome, ForbiddenMerge)
    assert result.exit_code == 1
    assert host.remote_sha("main") == before
    assert "Sorry @octocat, only those with write access" in result.report.text


def test_check_only_skips_permission_query(host, ahead, requester) -> None:
    engine = _engine(host, merge=False)

    engine.run(host.pull_request(), requester)

    engine.gate.source.get_permission.assert_not_called()


def test_merge_commit_strategy(host, ahead, requester) -> None:
    result = _engine(host, merge_strategy=MergeStrategy.MERGE_COMMIT).run(host.pull_request(), requester)

    assert isinstance(result.outcome, MergeSucceeded)
    new_base = host.remote_sha("main")
    assert new_base == result.outcome.new_base_sha
    assert new_base != ahead
    assert "Created merge commit" in result.report.text


def test_concurrent_update_is_not_overwritten(host, ahead, requester) -> None:
    engine = _engine(host)
    moved = {}

    def push_then_grant(repository, username):
        moved["sha"] = host.commit("landed meanwhile", branch="main")
        host.push("main")
        return WRITE

    engine.gate.source.get_permission.side_effect = push_then_grant

    result = engine.run(host.pull_request(), requester)

    assert isinstance(result.outcome, MergeFailed)
    assert isinstance(result.outcome.error, MutationConflict)
    assert result.exit_code == 1
    assert host.remote_sha("main") == moved["sha"]
    assert "Nothing was overwritten" in result.report.text


def test_deleted_base_branch_is_reported(host, ahead, requester) -> None:
    result = _engine(host).run(host.pull_request(base="gone"), requester)

    assert isinstance(result.outcome, MergeFailed)
    assert isinstance(result.outcome.error, ResolutionError)
    assert "Unable to resolve `gone`" in result.report.text


def test_unexpected_error_still_reports(host, ahead, requester) -> None:
    engine = _engine(host)
    engine.evaluator = MagicMock()
    engine.evaluator.evaluate.side_effect = RuntimeError("boom")

    result = engine.run(host.pull_request(), requester)

    assert isinstance(result.outcome, MergeFailed)
    assert "unexpected error: boom" in result.report.text


def test_run_publishes_report(host, diverged, requester, tmp_path) -> None:
    environment = RunnerEnvironment(step_summary=tmp_path / "summary.md", output=tmp_path / "output")
    comments = MagicMock()
    comments.post_comment.return_value = None
    engine = _engine(host, comment=CommentPolicy.ON_ERROR)
    pull_request = host.pull_request()

    result = engine.run(pull_request, requester, environment=environment, comments=comments)

    comments.post_comment.assert_called_once_with(pull_request.comments_url, result.report.text)
    assert result.published.comment_posted
    assert environment.step_summary.read_text(encoding="utf-8") == result.report.text
    lines = environment.output.read_text(encoding="utf-8").splitlines()
    assert json.loads("\n".join(lines[1:-1])) == {"body": result.report.text}

"""Tests for the fast-forward decision and divergence details."""

from __future__ import annotations

import pytest

from fastforward_cli.core.git_ops import GitRunner
from fastforward_cli.merge.ancestry import AncestryEvaluator
from fastforward_cli.merge.models import CommitRef, Diverged, IsAncestor
from fastforward_cli.merge.resolver import ReferenceResolver


def _resolve(host, git: GitRunner, *branches: str) -> list[CommitRef]:
    resolver = ReferenceResolver(git)
    return [resolver.resolve(host.endpoint(branch)) for branch in branches]


def test_limit_must_be_positive(tmp_path) -> None:
    with pytest.raises(ValueError):
        AncestryEvaluator(GitRunner(tmp_path), limit=0)


def test_same_commit_is_up_to_date(host, workdir_git) -> None:
    host.commit("initial")
    host.push("main")
    (base,) = _resolve(host, workdir_git, "main")

    result = AncestryEvaluator(workdir_git).evaluate(base, base)

    assert isinstance(result, IsAncestor)
    assert result.already_up_to_date


def test_base_behind_head_is_ancestor(host, workdir_git) -> None:
    host.commit("initial")
    host.commit("feature", branch="feature")
    host.push("main", "feature")
    base, head = _resolve(host, workdir_git, "main", "feature")

    result = AncestryEvaluator(workdir_git).evaluate(base, head)

    assert isinstance(result, IsAncestor)
    assert not result.already_up_to_date


def test_diverged_lists_unique_commits(host, workdir_git) -> None:
    root = host.commit("initial")
    host.commit("feature one", branch="feature")
    host.commit("feature two", branch="feature")
    host.commit("hotfix", branch="main")
    host.push("main", "feature")
    base, head = _resolve(host, workdir_git, "main", "feature")

    result = AncestryEvaluator(workdir_git).evaluate(base, head)

    assert isinstance(result, Diverged)
    assert result.merge_base == root
    assert [c.subject for c in result.base_only] == ["hotfix"]
    assert [c.subject for c in result.head_only] == ["feature two", "feature one"]
    assert not result.base_truncated
    assert not result.head_truncated
    assert "hotfix" in result.graph
    assert "feature two" in result.graph
    assert not result.graph_truncated


def test_listings_are_truncated_at_limit(host, workdir_git) -> None:
    host.commit("initial")
    for index in range(4):
        host.commit(f"feature {index}", branch="feature")
    host.commit("hotfix", branch="main")
    host.push("main", "feature")
    base, head = _resolve(host, workdir_git, "main", "feature")

    result = AncestryEvaluator(workdir_git, limit=2).evaluate(base, head)

    assert isinstance(result, Diverged)
    assert [c.subject for c in result.head_only] == ["feature 3", "feature 2"]
    assert result.head_truncated
    assert not result.base_truncated
    assert result.graph_truncated


def test_unrelated_histories_have_no_merge_base(host, workdir_git) -> None:
    host.commit("initial")
    host.orphan("other root", branch="feature")
    host.push("main", "feature")
    base, head = _resolve(host, workdir_git, "main", "feature")

    result = AncestryEvaluator(workdir_git).evaluate(base, head)

    assert isinstance(result, Diverged)
    assert not result.has_common_ancestor
    assert result.base_only == ()
    assert result.head_only == ()


def test_parent_of_root_commit_is_none(host, workdir_git) -> None:
    host.commit("initial")
    host.push("main")
    (base,) = _resolve(host, workdir_git, "main")

    assert AncestryEvaluator(workdir_git).parent_of(base.sha) is None

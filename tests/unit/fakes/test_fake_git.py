"""Tests for FakeGit test infrastructure.

These tests verify that FakeGit reports diffs with the same line-number
conventions as ``git diff -U0``, so engine tests against it are meaningful.
"""

from pathlib import Path

import pytest

from absorb.core.diff import FileStatus, Hunk
from absorb.core.errors import ConcurrentModification, ObjectStoreFailure
from tests.fakes.git import EMPTY_TREE, FakeGit, diff_fake_trees, fake_tree_id
from tests.test_utils.stacks import REPO_ROOT, FakeHistory, lines


def test_fake_git_initialization() -> None:
    git = FakeGit()

    assert git.get_repository_root(Path("/test/repo/sub")) == Path("/test/repo")
    assert git.get_repository_root(Path("/elsewhere")) is None
    assert git.read_file(REPO_ROOT, fake_tree_id(EMPTY_TREE), "a.txt") is None
    assert git.created_commits == []
    assert git.ref_updates == []


def test_not_a_repository() -> None:
    git = FakeGit(repository_root=None)

    assert git.get_repository_root(Path("/test/repo")) is None


def test_diff_reports_git_line_numbers() -> None:
    old = {"f": lines("a", "b", "c")}
    new = {"f": lines("a", "c", "d")}

    (file_diff,) = diff_fake_trees(old, new, None, 0)

    assert file_diff.status == FileStatus.MODIFIED
    assert file_diff.hunks == (
        Hunk("f", 2, ("b\n",), 1, ()),
        Hunk("f", 3, (), 3, ("d\n",)),
    )


def test_diff_context_merges_close_hunks() -> None:
    old = {"f": lines("1", "2", "3", "4", "5")}
    new = {"f": lines("one", "2", "three", "4", "5")}

    (file_diff,) = diff_fake_trees(old, new, None, 1)

    (hunk,) = file_diff.hunks
    assert hunk.old_start == 1
    assert hunk.old_lines == ("1\n", "2\n", "3\n", "4\n")
    assert hunk.new_lines == ("one\n", "2\n", "three\n", "4\n")


def test_diff_added_deleted_and_filtered() -> None:
    old = {"gone": lines("x"), "kept": lines("k")}
    new = {"born": lines("y"), "kept": lines("k")}

    diffs = diff_fake_trees(old, new, None, 0)
    filtered = diff_fake_trees(old, new, ["born"], 0)

    assert [(d.path, d.status) for d in diffs] == [
        ("born", FileStatus.ADDED),
        ("gone", FileStatus.DELETED),
    ]
    assert [d.path for d in filtered] == ["born"]


def test_write_tree_and_commit_are_content_addressed() -> None:
    history = FakeHistory()
    root = history.commit("initial", {"a.txt": lines("a")})
    git = history.build()
    commit = git.read_commit(REPO_ROOT, root)

    tree = git.write_tree(REPO_ROOT, commit.tree, [("a.txt", lines("b"))])
    again = git.write_tree(REPO_ROOT, commit.tree, [("a.txt", lines("b"))])
    new_commit = git.write_commit(
        REPO_ROOT, tree, [root], commit.author, commit.committer, "next\n"
    )

    assert tree == again
    assert git.read_file(REPO_ROOT, tree, "a.txt") == lines("b")
    assert git.read_commit(REPO_ROOT, new_commit).parents == (root,)
    assert git.created_commits == [new_commit]
    assert git.is_ancestor(REPO_ROOT, root, new_commit)
    assert not git.is_ancestor(REPO_ROOT, new_commit, root)


def test_resolve_commitish() -> None:
    history = FakeHistory()
    root = history.commit("initial", {"a.txt": lines("a")})
    history.add_ref("refs/heads/main", root)
    git = history.build()

    assert git.resolve_commitish(REPO_ROOT, "main") == root
    assert git.resolve_commitish(REPO_ROOT, root[:8]) == root
    assert git.resolve_commitish(REPO_ROOT, "HEAD") == root
    assert git.resolve_commitish(REPO_ROOT, "nope") is None


def test_compare_and_swap_checks_expected_value() -> None:
    history = FakeHistory()
    root = history.commit("initial", {"a.txt": lines("a")})
    git = history.build()

    with pytest.raises(ConcurrentModification):
        git.compare_and_swap_ref(REPO_ROOT, "refs/heads/feature", "0" * 40, root, "msg")

    git.compare_and_swap_ref(REPO_ROOT, "refs/heads/feature", root, root, "msg")
    assert git.ref_updates == [("refs/heads/feature", root, root, "msg")]


def test_missing_objects_raise() -> None:
    git = FakeGit()

    with pytest.raises(ObjectStoreFailure):
        git.read_commit(REPO_ROOT, "0" * 40)
    with pytest.raises(ObjectStoreFailure):
        git.resolve_branch_tip(REPO_ROOT)

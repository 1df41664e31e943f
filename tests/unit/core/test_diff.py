"""Tests for the unified diff parser and hunk application."""

import pytest

from absorb.core.diff import (
    FileStatus,
    Hunk,
    apply_hunks,
    parse_unified_diff,
    split_lines,
    unquote_path,
)
from absorb.core.errors import HunkApplyError

MODIFIED_DIFF = """\
diff --git a/src/app.py b/src/app.py
index 1111111111111111111111111111111111111111..2222222222222222222222222222222222222222 100644
--- a/src/app.py
+++ b/src/app.py
@@ -2 +2 @@ def main():
-    return 1
+    return 2
@@ -10,0 +11,2 @@ def other():
+    extra()
+    more()
"""


def test_parse_modified_file_with_two_hunks() -> None:
    diffs = parse_unified_diff(MODIFIED_DIFF)

    assert len(diffs) == 1
    file_diff = diffs[0]
    assert file_diff.status == FileStatus.MODIFIED
    assert file_diff.path == "src/app.py"
    assert file_diff.hunks == (
        Hunk("src/app.py", 2, ("    return 1\n",), 2, ("    return 2\n",)),
        Hunk("src/app.py", 10, (), 11, ("    extra()\n", "    more()\n")),
    )


def test_parse_added_and_deleted_files() -> None:
    text = """\
diff --git a/new.txt b/new.txt
new file mode 100644
index 0000000000000000000000000000000000000000..3333333333333333333333333333333333333333
--- /dev/null
+++ b/new.txt
@@ -0,0 +1 @@
+hello
diff --git a/old.txt b/old.txt
deleted file mode 100644
index 4444444444444444444444444444444444444444..0000000000000000000000000000000000000000
--- a/old.txt
+++ /dev/null
@@ -1 +0,0 @@
-bye
"""
    added, deleted = parse_unified_diff(text)

    assert added.status == FileStatus.ADDED
    assert added.old_path is None
    assert added.path == "new.txt"
    assert deleted.status == FileStatus.DELETED
    assert deleted.new_path is None
    assert deleted.path == "old.txt"
    assert deleted.hunks[0].old_lines == ("bye\n",)


def test_parse_binary_and_mode_only_changes() -> None:
    text = """\
diff --git a/logo.png b/logo.png
index 5555555555555555555555555555555555555555..6666666666666666666666666666666666666666 100644
Binary files a/logo.png and b/logo.png differ
diff --git a/run.sh b/run.sh
old mode 100644
new mode 100755
"""
    binary, mode_only = parse_unified_diff(text)

    assert binary.is_binary
    assert binary.hunks == ()
    assert mode_only.path == "run.sh"
    assert mode_only.status == FileStatus.MODIFIED
    assert mode_only.hunks == ()


def test_parse_missing_newline_at_end_of_file() -> None:
    text = """\
diff --git a/a.txt b/a.txt
index 7777777777777777777777777777777777777777..8888888888888888888888888888888888888888 100644
--- a/a.txt
+++ b/a.txt
@@ -2 +2 @@
-last
\\ No newline at end of file
+last
"""
    (file_diff,) = parse_unified_diff(text)

    assert file_diff.hunks[0].old_lines == ("last",)
    assert file_diff.hunks[0].new_lines == ("last\n",)


def test_parse_quoted_path() -> None:
    text = """\
diff --git "a/dir/caf\\303\\251 menu.txt" "b/dir/caf\\303\\251 menu.txt"
index 9999999999999999999999999999999999999999..aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa 100644
--- "a/dir/caf\\303\\251 menu.txt"
+++ "b/dir/caf\\303\\251 menu.txt"
@@ -1 +1 @@
-old
+new
"""
    (file_diff,) = parse_unified_diff(text)

    assert file_diff.path == "dir/café menu.txt"


def test_unquote_path_handles_escapes() -> None:
    assert unquote_path("plain/path.txt") == "plain/path.txt"
    assert unquote_path('"tab\\there"') == "tab\there"
    assert unquote_path('"quote\\"d"') == 'quote"d'


def test_parse_empty_output() -> None:
    assert parse_unified_diff("") == []


def test_spans_follow_git_conventions() -> None:
    replace = Hunk("f", 3, ("c\n", "d\n"), 3, ("C\n",))
    insert = Hunk("f", 4, (), 5, ("new\n",))
    insert_at_top = Hunk("f", 0, (), 1, ("first\n",))
    delete = Hunk("f", 2, ("b\n",), 1, ())

    assert replace.old_span() == (2, 4)
    assert replace.new_span() == (2, 3)
    assert insert.old_span() == (4, 4)
    assert insert_at_top.old_span() == (0, 0)
    assert delete.new_span() == (1, 1)


def test_shifted_moves_both_sides() -> None:
    hunk = Hunk("f", 5, ("x\n",), 5, ("y\n",))

    moved = hunk.shifted(-2)

    assert (moved.old_start, moved.new_start) == (3, 3)
    assert hunk.shifted(0) is hunk


def test_core_drops_context_lines() -> None:
    replace = Hunk("f", 2, ("2\n", "3\n", "4\n"), 2, ("2\n", "THREE\n", "4\n"))
    insert = Hunk("f", 2, ("a\n", "b\n"), 2, ("a\n", "new\n", "b\n"))
    bare = Hunk("f", 3, ("3\n",), 3, ("three\n",))

    assert replace.context_sizes() == (1, 1)
    assert replace.core() == Hunk("f", 3, ("3\n",), 3, ("THREE\n",))
    assert insert.core() == Hunk("f", 2, (), 3, ("new\n",))
    assert insert.core().old_span() == (2, 2)
    assert bare.core() is bare


def test_split_lines_keeps_endings() -> None:
    assert split_lines("a\nb\r\nc") == ["a\n", "b\r\n", "c"]
    assert split_lines("a\n") == ["a\n"]
    assert split_lines("") == []


def test_apply_hunks_in_any_order() -> None:
    content = "a\nb\nc\nd\n"
    hunks = [
        Hunk("f", 1, ("a\n",), 1, ("A\n",)),
        Hunk("f", 3, (), 4, ("c2\n",)),
        Hunk("f", 4, ("d\n",), 5, ()),
    ]

    assert apply_hunks(content, hunks) == "A\nb\nc\nc2\n"


def test_apply_hunks_rejects_mismatched_old_side() -> None:
    with pytest.raises(HunkApplyError, match="does not apply"):
        apply_hunks("a\nb\n", [Hunk("f", 2, ("x\n",), 2, ("y\n",))])


def test_apply_hunks_preserves_crlf() -> None:
    content = "one\r\ntwo\r\n"

    result = apply_hunks(content, [Hunk("f", 2, ("two\r\n",), 2, ("TWO\r\n",))])

    assert result == "one\r\nTWO\r\n"

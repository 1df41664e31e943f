"""Line-level diff model shared by the object store and the absorb engine.

A ``Hunk`` stores the old and new side of a contiguous change with their line
endings preserved, anchored to 1-based line numbers using git's unified diff
conventions: an empty side has ``start`` equal to the line *after which* the
change happens (``0`` means the top of the file).

All positional reasoning in the engine goes through ``old_span()`` and
``new_span()``, which convert those conventions to 0-based half-open
intervals over line positions.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum

from absorb.core.errors import HunkApplyError

_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

_C_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}


class FileStatus(Enum):
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"


@dataclass(frozen=True)
class Hunk:
    """A contiguous block of line changes in one file."""

    path: str
    old_start: int
    old_lines: tuple[str, ...]
    new_start: int
    new_lines: tuple[str, ...]

    @property
    def old_count(self) -> int:
        return len(self.old_lines)

    @property
    def new_count(self) -> int:
        return len(self.new_lines)

    def old_span(self) -> tuple[int, int]:
        """0-based half-open interval of the old side."""
        lo = self.old_start - 1 if self.old_lines else self.old_start
        return lo, lo + self.old_count

    def new_span(self) -> tuple[int, int]:
        """0-based half-open interval of the new side."""
        lo = self.new_start - 1 if self.new_lines else self.new_start
        return lo, lo + self.new_count

    def context_sizes(self) -> tuple[int, int]:
        """Number of unchanged lines at the start and at the end of the hunk."""
        limit = min(self.old_count, self.new_count)
        lead = 0
        while lead < limit and self.old_lines[lead] == self.new_lines[lead]:
            lead += 1
        trail = 0
        while (
            trail < limit - lead
            and self.old_lines[self.old_count - 1 - trail]
            == self.new_lines[self.new_count - 1 - trail]
        ):
            trail += 1
        return lead, trail

    def core(self) -> "Hunk":
        """The same change without its leading and trailing context lines."""
        lead, trail = self.context_sizes()
        if lead == 0 and trail == 0:
            return self
        old_lo, _ = self.old_span()
        new_lo, _ = self.new_span()
        old_lines = self.old_lines[lead : self.old_count - trail]
        new_lines = self.new_lines[lead : self.new_count - trail]
        return replace(
            self,
            old_start=old_lo + lead + (1 if old_lines else 0),
            old_lines=old_lines,
            new_start=new_lo + lead + (1 if new_lines else 0),
            new_lines=new_lines,
        )

    def shifted(self, offset: int) -> "Hunk":
        """Return the same change moved ``offset`` lines down (or up if negative)."""
        if offset == 0:
            return self
        return replace(self, old_start=self.old_start + offset, new_start=self.new_start + offset)

    @property
    def header(self) -> str:
        return f"-{self.old_start},{self.old_count} +{self.new_start},{self.new_count}"


@dataclass(frozen=True)
class FileDiff:
    """Changes to a single path between two versions.

    ``old_path`` is None for added files and ``new_path`` is None for deleted
    files. Binary files carry no hunks.
    """

    old_path: str | None
    new_path: str | None
    status: FileStatus
    hunks: tuple[Hunk, ...]
    is_binary: bool = False

    @property
    def path(self) -> str:
        path = self.new_path if self.new_path is not None else self.old_path
        assert path is not None
        return path


def split_lines(content: str) -> list[str]:
    """Split content into lines, keeping each line's terminating newline."""
    parts = content.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def apply_hunks(content: str, hunks: Sequence[Hunk]) -> str:
    """Apply non-overlapping hunks, all expressed in ``content``'s coordinates.

    Raises:
        HunkApplyError: If the old side of a hunk does not match ``content``
    """
    lines = split_lines(content)
    for hunk in sorted(hunks, key=lambda h: h.old_span(), reverse=True):
        lo, hi = hunk.old_span()
        if hi > len(lines) or tuple(lines[lo:hi]) != hunk.old_lines:
            raise HunkApplyError(f"Hunk {hunk.header} does not apply to {hunk.path}")
        lines[lo:hi] = hunk.new_lines
    return "".join(lines)


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of unusual path names."""
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path

    body = path[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            if nxt in "01234567":
                out.append(int(body[i + 1 : i + 4], 8))
                i += 4
                continue
            out.append(_C_ESCAPES.get(nxt, ord(nxt)))
            i += 2
            continue
        out.extend(char.encode("utf-8", "surrogateescape"))
        i += 1
    return out.decode("utf-8", "surrogateescape")


def _parse_side(raw: str) -> str | None:
    """Parse the path from a ``---``/``+++`` line, None for /dev/null."""
    value = raw.rstrip("\t")
    if value == "/dev/null":
        return None
    value = unquote_path(value)
    if value.startswith(("a/", "b/")):
        return value[2:]
    return value


def _paths_from_git_header(rest: str) -> str | None:
    """Best-effort path from ``diff --git a/P b/P`` when both names are equal."""
    if rest.startswith('"'):
        end = rest.find('" ', 1)
        if end == -1:
            return None
        return _parse_side(rest[: end + 1])
    name_len = (len(rest) - 5) // 2
    if name_len <= 0:
        return None
    old, new = rest[: 2 + name_len], rest[3 + name_len :]
    if old[2:] != new[2:]:
        return None
    return old[2:]


class _FileBuilder:
    def __init__(self, header_path: str | None) -> None:
        self.header_path = header_path
        self.old_path: str | None = header_path
        self.new_path: str | None = header_path
        self.added = False
        self.deleted = False
        self.is_binary = False
        self.hunks: list[Hunk] = []
        self._hunk: tuple[int, list[str], int, list[str]] | None = None
        self._last_marker = " "

    def start_hunk(self, old_start: int, new_start: int) -> None:
        self.finish_hunk()
        self._hunk = (old_start, [], new_start, [])

    def add_line(self, raw: str) -> None:
        assert self._hunk is not None
        _, old_lines, _, new_lines = self._hunk
        marker, text = raw[0], raw[1:] + "\n"
        if marker in " -":
            old_lines.append(text)
        if marker in " +":
            new_lines.append(text)
        self._last_marker = marker

    def no_newline(self) -> None:
        assert self._hunk is not None
        _, old_lines, _, new_lines = self._hunk
        if self._last_marker in " -":
            old_lines[-1] = old_lines[-1][:-1]
        if self._last_marker in " +":
            new_lines[-1] = new_lines[-1][:-1]

    @property
    def in_hunk(self) -> bool:
        return self._hunk is not None

    def finish_hunk(self) -> None:
        if self._hunk is None:
            return
        old_start, old_lines, new_start, new_lines = self._hunk
        path = self.new_path if self.new_path is not None else self.old_path
        assert path is not None
        self.hunks.append(
            Hunk(
                path=path,
                old_start=old_start,
                old_lines=tuple(old_lines),
                new_start=new_start,
                new_lines=tuple(new_lines),
            )
        )
        self._hunk = None

    def build(self) -> FileDiff | None:
        self.finish_hunk()
        if self.added:
            self.old_path = None
        if self.deleted:
            self.new_path = None
        if self.old_path is None and self.new_path is None:
            return None

        if self.old_path is None:
            status = FileStatus.ADDED
        elif self.new_path is None:
            status = FileStatus.DELETED
        else:
            status = FileStatus.MODIFIED
        return FileDiff(
            old_path=self.old_path,
            new_path=self.new_path,
            status=status,
            hunks=tuple(self.hunks),
            is_binary=self.is_binary,
        )


def parse_unified_diff(text: str) -> list[FileDiff]:
    """Parse ``git diff`` patch output into per-file diffs.

    Expects the default ``a/``/``b/`` prefixes and no rename detection.
    """
    diffs: list[FileDiff] = []
    current: _FileBuilder | None = None

    def flush() -> None:
        if current is None:
            return
        built = current.build()
        if built is not None:
            diffs.append(built)

    for raw in text.split("\n"):
        if raw.startswith("diff --git "):
            flush()
            current = _FileBuilder(_paths_from_git_header(raw[len("diff --git ") :]))
            continue
        if current is None:
            continue

        if raw.startswith("@@ "):
            match = _HUNK_HEADER.match(raw)
            if match is None:
                continue
            current.start_hunk(int(match.group(1)), int(match.group(3)))
        elif current.in_hunk and raw[:1] in (" ", "-", "+"):
            current.add_line(raw)
        elif current.in_hunk and raw.startswith("\\"):
            current.no_newline()
        elif raw.startswith("new file mode"):
            current.added = True
        elif raw.startswith("deleted file mode"):
            current.deleted = True
        elif raw.startswith("--- "):
            current.old_path = _parse_side(raw[4:])
        elif raw.startswith("+++ "):
            current.new_path = _parse_side(raw[4:])
        elif raw.startswith("Binary files ") or raw.startswith("GIT binary patch"):
            current.is_binary = True

    flush()
    return diffs

from __future__ import annotations

import re
from dataclasses import dataclass

_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,(\d+))? @@")


@dataclass(frozen=True)
class Hunk:
    """New-file line range covered by one hunk of a pull request patch."""

    start_line: int
    end_line: int

    def contains(self, start_line: int, end_line: int) -> bool:
        return self.start_line <= start_line and end_line <= self.end_line


def parse_hunks(patch: str | None) -> list[Hunk]:
    """Read the `@@ -a,b +c,d @@` headers of a unified diff patch.

    Only the right-hand side matters: review comments are anchored to lines of
    the new file. Hunks that only delete lines cover nothing on that side.
    """
    hunks: list[Hunk] = []
    for line in (patch or "").split("\n"):
        match = _HUNK_HEADER.match(line)
        if not match:
            continue
        start = int(match.group(1))
        length = int(match.group(2)) if match.group(2) is not None else 1
        if length == 0:
            continue
        hunks.append(Hunk(start_line=start, end_line=start + length - 1))
    return hunks


def range_in_hunks(hunks: list[Hunk], start_line: int, end_line: int) -> bool:
    return any(hunk.contains(start_line, end_line) for hunk in hunks)

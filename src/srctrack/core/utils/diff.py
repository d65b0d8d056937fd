"""Line diff producer: typed runs and unified diffs between two text strings"""

import difflib

from srctrack.core.models import LineRun, RunTag


def split_lines(text: str) -> list[str]:
    """Split text into lines without terminators. CRLF is LF; a final newline adds no line."""
    if not text:
        return []
    lines = text.replace("\r\n", "\n").split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def join_lines(lines: list[str]) -> str:
    """Join lines back into text, terminating each with a newline."""
    return "".join(f"{line}\n" for line in lines)


def diff_runs(base: str, current: str) -> list[LineRun]:
    """Return ordered LineRuns turning base into current. Deleted runs precede inserted runs on replace.

    Lines are compared without their terminators, so a missing final newline
    on either side never produces a run by itself.
    """
    old_lines, new_lines = split_lines(base), split_lines(current)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    runs: list[LineRun] = []

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            runs.append(LineRun(RunTag.unchanged, join_lines(new_lines[j1:j2])))
            continue
        if tag in ("replace", "delete"):
            runs.append(LineRun(RunTag.deleted, join_lines(old_lines[i1:i2])))
        if tag in ("replace", "insert"):
            runs.append(LineRun(RunTag.inserted, join_lines(new_lines[j1:j2])))

    return runs


def unified_diff(
    old: str,
    new: str,
    from_label: str = "base",
    to_label: str = "current",
    context: int = 3,
    ) -> list[str]:
    """Return unified diff lines comparing old to new. Empty list if identical.

    Lines are compared the way diff_runs compares them: CRLF is LF and a
    missing final newline is not a difference. Every returned line ends with
    a newline; join with '' for display.
    """
    old_lines, new_lines = split_lines(old), split_lines(new)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    out: list[str] = []

    for group in matcher.get_grouped_opcodes(context):
        if not out:
            out += [f"--- {from_label}\n", f"+++ {to_label}\n"]
        first, last = group[0], group[-1]
        out.append(f"@@ -{_hunk_range(first[1], last[2])} +{_hunk_range(first[3], last[4])} @@\n")
        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                out += [f" {line}\n" for line in old_lines[i1:i2]]
                continue
            if tag in ("replace", "delete"):
                out += [f"-{line}\n" for line in old_lines[i1:i2]]
            if tag in ("replace", "insert"):
                out += [f"+{line}\n" for line in new_lines[j1:j2]]
    return out


def _hunk_range(start: int, stop: int) -> str:
    """1-based 'start,count'; an empty range names the line before it."""
    length = stop - start
    if length == 1:
        return str(start + 1)
    if length == 0:
        return f"{start},0"
    return f"{start + 1},{length}"

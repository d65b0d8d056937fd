"""Diff classifier: reduce line runs to added / removed / changed / created markers"""

from typing import Iterable, Optional

from loguru import logger

from srctrack.core.models import BaseText, ClassificationResult, LineRange, LineRun, RunTag, count_lines
from srctrack.core.utils.diff import diff_runs


_NEWLINE_ONLY = ("", "\n", "\r\n")


class RunClassifier:
    """Single-pass state machine over runs in current-file line space.

    A deletion directly followed by an insertion is a modification: the
    overlapping lines become changed anchors and any extra inserted lines an
    added range. Any other deletion collapses to one removed anchor.
    """

    def __init__(self, line_number: int = 0):
        self.line_number = line_number
        self._added: list[LineRange] = []
        self._removed: list[int] = []
        self._changed: list[int] = []
        self._open: Optional[tuple[int, int]] = None
        self._removed_at = -1
        self._removed_count = 0

    def feed(self, run: LineRun, next_run: Optional[LineRun] = None) -> None:
        """Consume one run; next_run is the lookahead used to pair deletions with insertions."""
        count = run.line_count
        if run.tag is RunTag.inserted:
            if count == 0:
                return
            if self._removed_count > 0:
                self._modify(count)
            else:
                self._insert(count)
            self.line_number += count
        elif run.tag is RunTag.deleted:
            if count == 0:
                return
            if self._removed_count == 0:
                self._removed_at = self.line_number
            self._removed_count += count
            if next_run is None or next_run.tag is not RunTag.inserted:
                self._resolve_removal()
        else:
            self._resolve_removal()
            self._flush_added()
            self.line_number += count

    def seek(self, line_number: int) -> None:
        """Close all pending state and move the cursor (used at unified diff hunk boundaries)."""
        self._resolve_removal()
        self._flush_added()
        self.line_number = line_number

    def finish(self) -> ClassificationResult:
        self._resolve_removal()
        self._flush_added()
        return ClassificationResult(
            added=list(self._added), removed=list(self._removed), changed=list(self._changed)
        )

    def _modify(self, count: int) -> None:
        self._flush_added()
        matched = min(count, self._removed_count)
        for offset in range(matched):
            _add_anchor(self._changed, self._removed_at + offset)
        if count > self._removed_count:
            self._open = (self._removed_at + self._removed_count, self.line_number + count - 1)
        self._removed_count = 0
        self._removed_at = -1

    def _insert(self, count: int) -> None:
        start, end = self.line_number, self.line_number + count - 1
        if self._open and self._open[1] == start - 1:
            self._open = (self._open[0], end)
            return
        self._flush_added()
        self._open = (start, end)

    def _resolve_removal(self) -> None:
        if self._removed_count > 0:
            _add_anchor(self._removed, self._removed_at)
        self._removed_count = 0
        self._removed_at = -1

    def _flush_added(self) -> None:
        if self._open is not None:
            self._added.append(LineRange(start_line=self._open[0], end_line=self._open[1]))
            self._open = None


def _add_anchor(anchors: list[int], line: int) -> None:
    if line not in anchors:
        anchors.append(line)


def classify_runs(runs: Iterable[LineRun]) -> ClassificationResult:
    """Classify an ordered run sequence (from diff_runs) into a ClassificationResult."""
    runs = list(runs)
    classifier = RunClassifier()
    for i, run in enumerate(runs):
        classifier.feed(run, runs[i + 1] if i + 1 < len(runs) else None)
    result = classifier.finish()

    # A trailing one-line insertion of just a line ending is an EOF artifact, not an addition.
    if result.added and runs:
        last, tail = result.added[-1], runs[-1]
        if (
            last.start_line == last.end_line == classifier.line_number - 1
            and tail.tag is RunTag.inserted
            and tail.text in _NEWLINE_ONLY
        ):
            result.added.pop()
    return result


def classify_from_texts(base: str, current: str) -> ClassificationResult:
    """Classify every line of current against base (base file exists, possibly empty)."""
    result = classify_runs(diff_runs(base, current))
    logger.debug("classified texts: {}", result.summary())
    return result


def classify_created(current: str) -> ClassificationResult:
    """New-file shortcut: the whole current file is new relative to an absent base."""
    last = max(count_lines(current) - 1, 0)
    return ClassificationResult(created=[LineRange(start_line=0, end_line=last)])


def classify_file(base: BaseText, current: str) -> ClassificationResult:
    """Classify current against base, taking the new-file shortcut when the base is absent."""
    if base.absent:
        logger.debug("base absent at {}; classifying as created", base.source or "reference")
        return classify_created(current)
    return classify_from_texts(base.content, current)

"""Unified diff parser: classify '@@' hunk text with the same policy as the run classifier"""

import re
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from srctrack.core.classify import RunClassifier
from srctrack.core.models import ClassificationResult, LineRun, RunTag
from srctrack.core.utils.diff import join_lines, split_lines


HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

# Only skipped between hunks; inside a hunk '---'/'+++' lines are content.
METADATA_PREFIXES = (
    "diff ", "index ", "---", "+++",
    "new file mode", "deleted file mode", "old mode", "new mode",
    "similarity index", "dissimilarity index",
    "rename from", "rename to", "copy from", "copy to", "Binary files",
)

_TAGS = {"+": RunTag.inserted, "-": RunTag.deleted, " ": RunTag.unchanged}


@dataclass
class _Block:
    tag:    RunTag
    lines:  list[str] = field(default_factory=list)
    no_eol: bool = False        # followed by '\ No newline at end of file'


def parse_hunk_header(line: str) -> Optional[tuple[int, int, int]]:
    """Return (source_count, target_start, target_count) with a 0-based target start, or None.

    An empty target range names the line before the hole, so its start is
    used as-is rather than decremented.
    """
    match = HUNK_HEADER.match(line)
    if match is None:
        return None
    source_count = int(match.group(2)) if match.group(2) is not None else 1
    target_count = int(match.group(4)) if match.group(4) is not None else 1
    target_start = int(match.group(3))
    if target_count > 0:
        target_start -= 1
    return source_count, max(target_start, 0), target_count


def _block_runs(blocks: list[_Block]) -> list[LineRun]:
    """Turn grouped hunk lines into runs, folding newline-at-EOF-only edits into unchanged lines."""
    runs: list[LineRun] = []
    i = 0
    while i < len(blocks):
        block = blocks[i]
        nxt = blocks[i + 1] if i + 1 < len(blocks) else None
        if (
            block.tag is RunTag.deleted
            and nxt is not None
            and nxt.tag is RunTag.inserted
            and (block.no_eol or nxt.no_eol)
        ):
            common = 0
            while (
                common < min(len(block.lines), len(nxt.lines))
                and block.lines[common] == nxt.lines[common]
            ):
                common += 1
            if common:
                runs.append(LineRun(RunTag.unchanged, join_lines(nxt.lines[:common])))
            if block.lines[common:]:
                runs.append(LineRun(RunTag.deleted, join_lines(block.lines[common:])))
            if nxt.lines[common:]:
                runs.append(LineRun(RunTag.inserted, join_lines(nxt.lines[common:])))
            i += 2
            continue
        runs.append(LineRun(block.tag, join_lines(block.lines)))
        i += 1
    return runs


def _feed(classifier: RunClassifier, blocks: list[_Block]) -> None:
    runs = _block_runs(blocks)
    for i, run in enumerate(runs):
        classifier.feed(run, runs[i + 1] if i + 1 < len(runs) else None)


def classify_from_unified_diff(diff_text: str) -> ClassificationResult:
    """Classify the target file of a single-file unified diff. Never raises on malformed input.

    Lines that are neither hunk headers, metadata, nor '+'/'-'/' ' prefixed
    are read as context: they advance the target cursor and mark nothing.
    """
    classifier = RunClassifier()
    blocks: list[_Block] = []
    source_left = target_left = 0

    for line in split_lines(diff_text):
        header = parse_hunk_header(line)
        if header is not None:
            _feed(classifier, blocks)
            blocks = []
            source_left, target_start, target_left = header
            classifier.seek(target_start)
            continue

        if line.startswith("\\"):
            if blocks:
                blocks[-1].no_eol = True
            continue

        in_hunk = source_left > 0 or target_left > 0
        if not in_hunk and line.startswith(METADATA_PREFIXES):
            continue

        prefix = line[:1]
        tag = _TAGS.get(prefix, RunTag.unchanged)
        content = line[1:] if prefix in _TAGS else line
        if blocks and blocks[-1].tag is tag:
            blocks[-1].lines.append(content)
        else:
            blocks.append(_Block(tag, [content]))

        if tag is not RunTag.inserted:
            source_left = max(source_left - 1, 0)
        if tag is not RunTag.deleted:
            target_left = max(target_left - 1, 0)

    _feed(classifier, blocks)
    result = classifier.finish()
    logger.debug("classified unified diff: {}", result.summary())
    return result

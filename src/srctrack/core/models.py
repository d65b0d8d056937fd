"""Data models for line runs and per-line classification results"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class RunTag(str, Enum):
    unchanged = "unchanged"
    inserted = "inserted"
    deleted = "deleted"


def count_lines(text: str) -> int:
    """Number of lines in text; CRLF counts as LF and a final newline adds no line."""
    if not text:
        return 0
    normalized = text.replace("\r\n", "\n")
    return normalized.count("\n") + (0 if normalized.endswith("\n") else 1)


@dataclass(frozen=True)
class LineRun:
    """A contiguous block of lines sharing one diff tag; lives for a single call."""
    tag:  RunTag
    text: str

    @property
    def line_count(self) -> int:
        return count_lines(self.text)


class LineRange(BaseModel):
    """Inclusive 0-based line range in current-file space."""
    start_line: int
    end_line:   int

    def __contains__(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return str(self.start_line)
        return f"{self.start_line}-{self.end_line}"


class ClassificationResult(BaseModel):
    """Public output contract: four non-overlapping collections in current-file line space."""
    added:   list[LineRange] = []
    removed: list[int] = []         # one anchor per deletion site
    changed: list[int] = []
    created: list[LineRange] = []   # empty, or a single {0, last} range

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed or self.created)

    def added_lines(self) -> int:
        return sum(r.end_line - r.start_line + 1 for r in self.added)

    def summary(self) -> str:
        """Compact counts, e.g. '+3 ~1 -2'; 'new file' for created results."""
        if self.created:
            return "new file"
        return f"+{self.added_lines()} ~{len(self.changed)} -{len(self.removed)}"

    def describe(self) -> list[str]:
        """One '<kind> <line or range>' entry per marker, in line order."""
        entries: list[tuple[int, str]] = []
        entries += [(r.start_line, f"created {r}") for r in self.created]
        entries += [(r.start_line, f"added {r}") for r in self.added]
        entries += [(line, f"changed {line}") for line in self.changed]
        entries += [(line, f"removed {line}") for line in self.removed]
        return [text for _, text in sorted(entries, key=lambda e: e[0])]


@dataclass(frozen=True)
class BaseText:
    """Base version of a file. content=None means absent at the reference, '' means empty."""
    content: Optional[str]
    source:  str = ""           # e.g. 'git:<sha>' or 'snapshot:<id>'

    @property
    def absent(self) -> bool:
        return self.content is None

"""Unit tests for core/unified.py"""

import pytest

from srctrack.core.classify import classify_from_texts
from srctrack.core.unified import classify_from_unified_diff, parse_hunk_header
from srctrack.core.utils.diff import unified_diff


GIT_DIFF = """\
diff --git a/app.py b/app.py
index 3b18e51..a4c2b8f 100644
--- a/app.py
+++ b/app.py
@@ -1,6 +1,7 @@
 import os
-import sys
+import re
 
 def main():
-    pass
+    value = 1
+    return value
 
@@ -20,4 +21,3 @@ def helper():
 a
-b
 c
 d
"""


# --- helpers ---

def _ranges(result) -> list[tuple[int, int]]:
    return [(r.start_line, r.end_line) for r in result.added]


def _parse_texts(base: str, current: str, context: int):
    return classify_from_unified_diff("".join(unified_diff(base, current, "a/f", "b/f", context)))


# --- parse_hunk_header ---

@pytest.mark.parametrize("line,expected", [
    ("@@ -1,6 +1,7 @@", (6, 0, 7)),
    ("@@ -20,4 +21,3 @@ def helper():", (4, 20, 3)),
    ("@@ -2 +2 @@", (1, 1, 1)),
    ("@@ -1,0 +2,2 @@", (0, 1, 2)),
    ("@@ -2,2 +1,0 @@", (2, 1, 0)),
    ("@@ -0,0 +1,3 @@", (0, 0, 3)),
    ("@@ -1,2 +0,0 @@", (2, 0, 0)),
])
def test_parse_hunk_header(line, expected):
    """Target start is 0-based; an empty target range keeps the preceding line number."""
    assert parse_hunk_header(line) == expected


@pytest.mark.parametrize("line", ["@@ bogus @@", " context", "+@@ -1 +1 @@"])
def test_parse_hunk_header_rejects_non_headers(line):
    assert parse_hunk_header(line) is None


# --- classify_from_unified_diff ---

def test_git_diff_with_metadata():
    """Metadata is skipped; edits become changed anchors, extra lines added, lone '-' removed."""
    result = classify_from_unified_diff(GIT_DIFF)
    assert result.changed == [1, 4]
    assert _ranges(result) == [(5, 5)]
    assert result.removed == [21]


def test_pure_insertion_zero_context():
    result = classify_from_unified_diff("@@ -1,0 +2,2 @@\n+b\n+c\n")
    assert _ranges(result) == [(1, 2)]
    assert result.removed == [] and result.changed == []


def test_pure_deletion_zero_context():
    """A deletion hunk with an empty target range anchors after the preceding line."""
    result = classify_from_unified_diff("@@ -2,2 +1,0 @@\n-b\n-c\n")
    assert result.removed == [1]


def test_separate_removals_in_one_hunk():
    """Deletions separated by context are separate sites."""
    diff = "@@ -1,5 +1,3 @@\n a\n-b\n c\n-d\n e\n"
    assert classify_from_unified_diff(diff).removed == [1, 2]


def test_removed_anchors_are_deduplicated():
    """Two hunks deleting at the same target position yield one anchor."""
    diff = "@@ -1 +1,0 @@\n-a\n@@ -2 +1,0 @@\n-b\n"
    assert classify_from_unified_diff(diff).removed == [1]


def test_dash_prefixed_content_inside_hunk_is_not_metadata():
    """A deleted '-- comment' line shows as '--- comment' and is still a deletion."""
    diff = "--- a/q.sql\n+++ b/q.sql\n@@ -1,3 +1,2 @@\n select 1;\n--- comment\n select 2;\n"
    result = classify_from_unified_diff(diff)
    assert result.removed == [1]


def test_added_plus_prefixed_content_inside_hunk():
    diff = "@@ -1,2 +1,3 @@\n a\n+++counter;\n b\n"
    assert _ranges(classify_from_unified_diff(diff)) == [(1, 1)]


def test_no_newline_marker_only_change_is_ignored():
    """A '-x'/'+x' pair differing only by the EOF newline marker classifies empty."""
    diff = "@@ -1,2 +1,2 @@\n a\n-b\n\\ No newline at end of file\n+b\n"
    assert classify_from_unified_diff(diff).is_empty


def test_no_newline_marker_with_appended_line():
    """Appending after a last line lacking a newline is an addition, not an edit."""
    diff = "@@ -1,2 +1,3 @@\n a\n-b\n\\ No newline at end of file\n+b\n+c\n"
    result = classify_from_unified_diff(diff)
    assert _ranges(result) == [(2, 2)]
    assert result.changed == [] and result.removed == []


@pytest.mark.parametrize("text", ["", "not a diff at all\n", "@@ broken\n+\n", "\\\n\\\n"])
def test_malformed_input_never_raises(text):
    """Arbitrary text yields some result rather than an exception."""
    classify_from_unified_diff(text)


def test_unparseable_lines_count_as_context():
    """An unprefixed line inside a hunk advances the cursor and marks nothing."""
    diff = "@@ -1,3 +1,4 @@\n a\ngarbage\n+x\n b\n"
    result = classify_from_unified_diff(diff)
    assert _ranges(result) == [(2, 2)]


def test_truncated_hunk_keeps_what_was_seen():
    diff = "@@ -1,10 +1,10 @@\n a\n-b\n+B\n"
    assert classify_from_unified_diff(diff).changed == [1]


def test_empty_diff_is_empty():
    assert classify_from_unified_diff("").is_empty


# --- equivalence with the run classifier ---

@pytest.mark.parametrize("context", [0, 3])
@pytest.mark.parametrize("base,current", [
    ("a\nb\nc\n", "a\nX\nc\n"),
    ("a\nb\nc\n", "a\nX\nY\nc\n"),
    ("a\nb\nc\nd\n", "a\nd\n"),
    ("a\nd\n", "a\nb\nc\nd\n"),
    ("", "a\nb\nc\n"),
    ("a\nb\n", ""),
    ("a\nb\nc\nd\ne\nf\n", "a\nc\nd\nY\nf\nG\nH\n"),
])
def test_parser_matches_classifier(base, current, context):
    """Diffing in memory and parsing difflib's unified diff classify identically."""
    expected = classify_from_texts(base, current)
    assert _parse_texts(base, current, context) == expected


@pytest.mark.parametrize("context", [0, 3])
def test_parser_matches_classifier_on_corpus(corpus, context):
    for base, current in corpus:
        expected = classify_from_texts(base, current)
        assert _parse_texts(base, current, context) == expected, (base, current)

"""Shared fixtures for core unit tests"""

import random

import pytest

from srctrack.core.utils.diff import join_lines


BASE = "a\nb\nc\n"


def _random_text(rng: random.Random) -> str:
    """Up to 8 one-letter lines; about a third lack the final newline."""
    text = join_lines([rng.choice("abcde") for _ in range(rng.randint(0, 8))])
    return text[:-1] if text and rng.random() < 0.35 else text


@pytest.fixture(name="corpus")
def corpus_fixture():
    """Deterministic (base, current) pairs over a small alphabet so edits collide often."""
    rng = random.Random(7)
    pairs = [(_random_text(rng), _random_text(rng)) for _ in range(300)]
    pairs += [
        ("", ""),
        ("", "a\n"),
        ("a\n", ""),
        (BASE, BASE),
        (BASE, "a\nX\nc\n"),
        (BASE, "a\nX\nY\nc\n"),
        ("a\nb\nc\nd\n", "a\nd\n"),
        ("a\nd\n", "a\nb\nc\nd\n"),
        ("a\nb", "a\nc\n"),
        ("a\nb\n", "a\nb"),
        ("a\nb", "a\nb\n"),
        ("a\nb", "a\nb\nc"),
    ]
    return pairs

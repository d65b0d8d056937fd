"""Root test configuration: loguru reset, git repository fixture, and session-level cleanup"""

import shutil
import subprocess
from pathlib import Path

import pytest
from loguru import logger


_PROJECT_ROOT = Path(__file__).parent.parent

_CLEANUP_FILES = ["srctrack.db", "test.db"]


@pytest.fixture(autouse=True)
def reset_loguru():
    """Drop sinks added during a test so later tests never write to a closed CliRunner stream."""
    yield
    logger.remove()


@pytest.fixture(name="git")
def git_fixture():
    """Run a git command in a directory and return its stripped stdout."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    def run(root, *args: str) -> str:
        result = subprocess.run(
            ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", "-c", "commit.gpgsign=false", *args],
            cwd=root,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()

    return run


@pytest.fixture(name="repo_dir")
def repo_dir_fixture(tmp_path, git):
    """Repository on branch main with one commit holding notes.txt and empty.txt."""
    root = tmp_path / "repo"
    root.mkdir()
    git(root, "init", "-q")
    git(root, "symbolic-ref", "HEAD", "refs/heads/main")
    (root / "notes.txt").write_text("one\ntwo\nthree\n")
    (root / "empty.txt").write_text("")
    git(root, "add", ".")
    git(root, "commit", "-q", "-m", "initial")
    return root


@pytest.fixture(scope="session", autouse=True)
def cleanup_artifacts():
    """Remove DB files created during the test session."""
    yield
    for name in _CLEANUP_FILES:
        p = _PROJECT_ROOT / name
        if p.exists():
            p.unlink()

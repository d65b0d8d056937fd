"""Git collaborator: ref resolution, file content at a ref, and working-tree diffs"""

import subprocess
from pathlib import Path
from typing import Optional

from loguru import logger


BRANCH_FALLBACKS = ("origin/main", "origin/master", "main", "master")

_METADATA_FORMAT = "%H%x00%s%x00%an%x00%ae%x00%aI"
_METADATA_KEYS = ("commit_hash", "subject", "author_name", "author_email", "author_date")


class GitError(RuntimeError):
    """git could not be run, or a path lies outside the repository."""


def run_git(args: list[str], cwd: Path, git: str = "git") -> subprocess.CompletedProcess:
    """Run git without raising on non-zero exit; stdout/stderr decoded as UTF-8."""
    try:
        return subprocess.run(
            [git, *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except FileNotFoundError as e:
        raise GitError(f"Cannot run {git} in {cwd}: {e}") from e


class GitRepo:
    """A working tree rooted at `root`, queried through the git command line."""

    def __init__(self, root: Path, git: str = "git"):
        self.root = Path(root)
        self.git = git

    @classmethod
    def discover(cls, path: str | Path, git: str = "git") -> Optional["GitRepo"]:
        """Return the repository containing path, or None when path is not inside one."""
        p = Path(path).resolve()
        start = p if p.is_dir() else p.parent
        if not start.exists():
            return None
        result = run_git(["rev-parse", "--show-toplevel"], start, git)
        if result.returncode != 0:
            return None
        return cls(Path(result.stdout.strip()), git)

    def run(self, *args: str) -> subprocess.CompletedProcess:
        return run_git(list(args), self.root, self.git)

    def _output(self, *args: str) -> Optional[str]:
        """Stripped stdout of a successful command with output, else None."""
        result = self.run(*args)
        out = result.stdout.strip()
        return out if result.returncode == 0 and out else None

    def _verify(self, ref: str) -> Optional[str]:
        return self._output("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")

    def resolve_ref(self, spec: str) -> Optional[str]:
        """Resolve a tracking spec to a commit id; None means nothing to diff against.

        Accepts HEAD, BRANCH (merge-base with upstream or main/master), any
        revision git understands, or a space-separated list tried in order.
        """
        ref = spec.strip()
        if not ref:
            return None
        if " " in ref:
            for candidate in ref.split():
                resolved = self.resolve_ref(candidate)
                if resolved:
                    logger.debug("resolved {!r} from fallback list {!r}", candidate, ref)
                    return resolved
            return None
        if ref.upper() == "HEAD":
            return self._verify("HEAD")
        if ref.upper() == "BRANCH":
            return self._branch_base()
        return self._verify(ref)

    def _branch_base(self) -> Optional[str]:
        branch = self._output("rev-parse", "--abbrev-ref", "HEAD")
        if branch is None:
            return None
        if branch == "HEAD":
            logger.warning("Detached HEAD in {}; using HEAD~1", self.root)
            return self._verify("HEAD~1") or self._verify("HEAD")

        upstream = self._output("for-each-ref", "--format=%(upstream:short)", f"refs/heads/{branch}")
        candidates = [upstream] if upstream else [b for b in BRANCH_FALLBACKS if self._verify(b)]
        if candidates:
            base = candidates[0]
            merge_base = self._output("merge-base", "HEAD", base)
            logger.debug("branch base for {}: {} via {}", branch, merge_base, base)
            return merge_base or self._verify(base)

        logger.warning("No upstream or main branch found in {}; using HEAD~1", self.root)
        return self._verify("HEAD~1") or self._verify("HEAD")

    def relative(self, path: str | Path) -> str:
        """Repository-relative POSIX path. Raises GitError for paths outside the work tree."""
        p = Path(path).resolve()
        try:
            return p.relative_to(self.root.resolve()).as_posix()
        except ValueError as e:
            raise GitError(f"{path} is outside repository {self.root}") from e

    def file_content(self, ref: str, path: str | Path) -> Optional[str]:
        """Content of path at ref; None when the file does not exist there ('' means empty)."""
        spec = f"{ref}:{self.relative(path)}"
        if self.run("cat-file", "-e", spec).returncode != 0:
            return None
        result = self.run("cat-file", "-p", spec)
        if result.returncode != 0:
            raise GitError(f"git cat-file failed for {spec}: {result.stderr.strip()}")
        return result.stdout

    def diff_file(self, ref: str, path: str | Path) -> str:
        """Unified diff of the working-tree file against ref (empty when unchanged)."""
        result = self.run("diff", "--no-color", "--no-ext-diff", ref, "--", self.relative(path))
        if result.returncode != 0:
            raise GitError(f"git diff failed for {path}: {result.stderr.strip()}")
        return result.stdout

    def changed_files(self, ref: str) -> tuple[list[str], list[str]]:
        """Return (added, modified) repo-relative paths versus ref; untracked files count as added."""
        result = self.run("diff", "--name-status", "--no-color", ref)
        if result.returncode != 0:
            raise GitError(f"git diff --name-status failed: {result.stderr.strip()}")

        added: set[str] = set()
        modified: set[str] = set()
        for line in result.stdout.splitlines():
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            status = parts[0][:1]
            if status in ("A", "C", "R"):
                added.add(parts[-1])
            elif status in ("M", "T"):
                modified.add(parts[-1])

        untracked = self.run("ls-files", "--others", "--exclude-standard")
        if untracked.returncode == 0:
            added.update(p for p in untracked.stdout.splitlines() if p)
        return sorted(added), sorted(modified)

    def commit_metadata(self) -> dict[str, str]:
        """HEAD commit details (hash, subject, author, date, branch); empty before the first commit."""
        out = self._output("log", "-1", f"--format={_METADATA_FORMAT}")
        if out is None:
            return {}
        meta = dict(zip(_METADATA_KEYS, out.split("\x00")))
        branch = self._output("rev-parse", "--abbrev-ref", "HEAD")
        if branch and branch != "HEAD":
            meta["branch"] = branch
        return meta

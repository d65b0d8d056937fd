"""Tracker orchestration: choose a base per file, classify, and publish markers"""

from pathlib import Path
from typing import Optional, Protocol

from loguru import logger
from sqlmodel import Session

from srctrack.config import Settings
from srctrack.core.classify import classify_created, classify_file
from srctrack.core.models import BaseText, ClassificationResult
from srctrack.core.state import Debouncer, DecorationStore
from srctrack.core.unified import classify_from_unified_diff
from srctrack.core.utils.diff import unified_diff
from srctrack.crud.snapshots import get_active_snapshot, snapshot_key
from srctrack.git.repo import GitError, GitRepo


class BaseProvider(Protocol):
    name: str

    def base_for(self, path: str) -> Optional[BaseText]:
        """Base text for path, or None when this provider has nothing to compare against."""
        ...

    def diff_for(self, path: str, base: BaseText, current: str) -> str:
        """Unified diff from base to current for the unified-diff front end."""
        ...


class SnapshotBaseProvider:
    """Uses the file's active snapshot as its base."""
    name = "snapshot"

    def __init__(self, engine):
        self.engine = engine

    def base_for(self, path: str) -> Optional[BaseText]:
        with Session(self.engine) as session:
            snapshot = get_active_snapshot(session, path)
            if snapshot is None:
                return None
            return BaseText(snapshot.content, f"snapshot:{snapshot.number}")

    def diff_for(self, path: str, base: BaseText, current: str) -> str:
        return "".join(unified_diff(base.content, current))


class GitBaseProvider:
    """Uses the file's content at a resolved git ref as its base."""
    name = "git"

    def __init__(self, ref: str, git: str = "git"):
        self.ref = ref
        self.git = git

    def _resolve(self, path: str) -> Optional[tuple[GitRepo, str]]:
        repo = GitRepo.discover(path, self.git)
        if repo is None:
            logger.warning("No git repository found for {}", path)
            return None
        commit = repo.resolve_ref(self.ref)
        if commit is None:
            logger.warning("Could not resolve ref {!r} in {}", self.ref, repo.root)
            return None
        return repo, commit

    def base_for(self, path: str) -> Optional[BaseText]:
        resolved = self._resolve(path)
        if resolved is None:
            return None
        repo, commit = resolved
        return BaseText(repo.file_content(commit, path), f"git:{commit[:12]}")

    def diff_for(self, path: str, base: BaseText, current: str) -> str:
        """git's own diff of the working-tree file; `current` is what is on disk."""
        resolved = self._resolve(path)
        if resolved is None:
            raise GitError(f"Ref {self.ref!r} is no longer resolvable for {path}")
        repo, commit = resolved
        return repo.diff_file(commit, path)


class Tracker:
    """Classifies files against the first provider that has a base for them.

    A None classification means "no base available": the file's markers are
    cleared rather than kept stale.
    """

    def __init__(
        self,
        providers: list[BaseProvider],
        store: Optional[DecorationStore] = None,
        debouncer: Optional[Debouncer] = None,
        ):
        self.providers = providers
        self.store = store or DecorationStore()
        self.debouncer = debouncer or Debouncer(0.25)
        self._texts: dict[str, str] = {}

    def _select(self, path: str) -> Optional[tuple[BaseProvider, BaseText]]:
        for provider in self.providers:
            try:
                base = provider.base_for(path)
            except GitError as e:
                logger.warning("{} base unavailable for {}: {}", provider.name, path, e)
                continue
            if base is not None:
                logger.debug("base for {} from {}", path, base.source or provider.name)
                return provider, base
        return None

    def base_for(self, path: str) -> Optional[BaseText]:
        selected = self._select(path)
        return selected[1] if selected else None

    def classify(self, path: str, current: str) -> Optional[ClassificationResult]:
        """Classify in-memory content of path against its base; None when there is no base."""
        selected = self._select(path)
        if selected is None:
            return None
        return classify_file(selected[1], current)

    def classify_unified(self, path: str, current: Optional[str] = None) -> Optional[ClassificationResult]:
        """Classify through a unified diff text instead of an in-memory diff."""
        if current is None:
            current = Path(path).read_text(encoding="utf-8")
        selected = self._select(path)
        if selected is None:
            return None
        provider, base = selected
        if base.absent:
            return classify_created(current)
        try:
            diff_text = provider.diff_for(path, base, current)
        except GitError as e:
            logger.warning("Diff unavailable for {}: {}", path, e)
            return None
        return classify_from_unified_diff(diff_text)

    def refresh(self, path: str, current: str) -> Optional[ClassificationResult]:
        """Classify now and publish the result (or clear markers) in the store."""
        result = self.classify(path, current)
        self.store.update({snapshot_key(path): result})
        return result

    def schedule(self, path: str, current: str) -> int:
        """Queue a debounced classification; later requests for the same path replace it."""
        key = snapshot_key(path)
        self._texts[key] = current
        return self.debouncer.request(key)

    def run_due(self) -> dict[str, Optional[ClassificationResult]]:
        """Classify every path whose quiet period elapsed and publish them as one batch."""
        batch: dict[str, Optional[ClassificationResult]] = {}
        for key in self.debouncer.due():
            text = self._texts.pop(key, None)
            if text is None:
                logger.debug("no scheduled text for {}; skipped", key)
                continue
            batch[key] = self.classify(key, text)
        if batch:
            self.store.update(batch)
        return batch


def build_tracker(settings: Settings, engine, ref: Optional[str] = None) -> Tracker:
    """Snapshot base first, then git at ref (or settings.base_ref)."""
    providers: list[BaseProvider] = [
        SnapshotBaseProvider(engine),
        GitBaseProvider(ref or settings.base_ref, settings.git_binary),
    ]
    return Tracker(providers, debouncer=Debouncer(settings.debounce_ms / 1000))

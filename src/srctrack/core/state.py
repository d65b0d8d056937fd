"""Shared marker state and debounced scheduling for the tracker"""

import threading
import time
from typing import Callable, Hashable, Mapping, Optional

from loguru import logger

from srctrack.core.models import ClassificationResult


Listener = Callable[[list[str]], None]


class DecorationStore:
    """Path -> ClassificationResult map owned by one object.

    update() swaps in a new mapping as a whole and notifies listeners once per
    batch, so readers never observe a half-applied update.
    """

    def __init__(self):
        self._entries: dict[str, ClassificationResult] = {}
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def get(self, path: str) -> Optional[ClassificationResult]:
        return self._entries.get(path)

    def snapshot(self) -> dict[str, ClassificationResult]:
        """Return a copy of the current mapping."""
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener(changed_paths); returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    def update(self, changes: Mapping[str, Optional[ClassificationResult]]) -> list[str]:
        """Apply a batch; a None value clears that path. Returns the paths whose state changed."""
        with self._lock:
            entries = dict(self._entries)
            changed: list[str] = []
            for path, result in changes.items():
                if result is None:
                    if entries.pop(path, None) is not None:
                        changed.append(path)
                elif entries.get(path) != result:
                    entries[path] = result
                    changed.append(path)
            if not changed:
                return []
            self._entries = entries

        changed.sort()
        logger.debug("decoration store updated: {}", changed)
        for listener in list(self._listeners):
            listener(changed)
        return changed

    def clear(self) -> list[str]:
        return self.update({path: None for path in self._entries})


class Debouncer:
    """Pending-work-token scheduler.

    Each request for a key issues a new token that replaces the previous one;
    a key only becomes due once its latest token has been quiet for `delay`
    seconds. Stale tokens are never run, so nothing needs cancelling.
    """

    def __init__(self, delay: float, clock: Callable[[], float] = time.monotonic):
        self.delay = delay
        self._clock = clock
        self._counter = 0
        self._pending: dict[Hashable, tuple[int, float]] = {}

    def request(self, key: Hashable) -> int:
        self._counter += 1
        self._pending[key] = (self._counter, self._clock() + self.delay)
        return self._counter

    def is_current(self, key: Hashable, token: int) -> bool:
        pending = self._pending.get(key)
        return pending is not None and pending[0] == token

    def pending(self) -> list[Hashable]:
        return list(self._pending)

    def due(self) -> list[Hashable]:
        """Pop and return keys whose latest token's deadline has passed, in request order."""
        now = self._clock()
        ready = sorted(
            (token, key) for key, (token, deadline) in self._pending.items() if deadline <= now
        )
        for _, key in ready:
            del self._pending[key]
        return [key for _, key in ready]

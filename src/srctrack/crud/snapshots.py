"""Snapshot persistence: take, list, rename, delete, prune, activate, and diff operations"""

import hashlib
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from sqlalchemy import func
from sqlmodel import Session, select

from srctrack.core.utils.diff import unified_diff
from srctrack.crud.tables import ActiveSnapshot, Snapshot


_METADATA_FIELDS = ("commit_hash", "branch", "subject", "author_name")


def sha256(content: str) -> str:
    """Hex SHA-256 of content; fills the String(64) hash column."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def snapshot_key(path: str | Path) -> str:
    """Normalize a file path to the absolute POSIX form snapshots are indexed by."""
    return Path(path).resolve().as_posix()


def take_snapshot(
    session: Session,
    file_path: str | Path,
    content: str,
    message: str = "",
    metadata: Optional[dict[str, Any]] = None,
    max_snapshots: int = 0,
    ) -> Snapshot:
    """Store content as the next numbered snapshot of file_path.

    Numbers are MAX(number)+1 per file. Prunes the oldest snapshots when
    max_snapshots > 0. Flushes but does not commit.
    """
    key = snapshot_key(file_path)
    last = session.exec(select(func.max(Snapshot.number)).where(Snapshot.file_path == key)).one()
    extra = {k: v for k, v in (metadata or {}).items() if k in _METADATA_FIELDS}

    snapshot = Snapshot(
        file_path=key,
        number=(last or 0) + 1,
        content=content,
        hash=sha256(content),
        message=message,
        **extra,
    )
    session.add(snapshot)
    session.flush()
    logger.debug("snapshot #{} taken for {}", snapshot.number, key)

    if max_snapshots > 0:
        prune_snapshots(session, key, max_snapshots)
    return snapshot


def list_snapshots(session: Session, file_path: str | Path) -> list[Snapshot]:
    """Return all snapshots for a file, newest first."""
    return list(
        session.exec(
            select(Snapshot)
            .where(Snapshot.file_path == snapshot_key(file_path))
            .order_by(Snapshot.number.desc())
        ).all()
    )


def get_snapshot(session: Session, file_path: str | Path, number: int) -> Snapshot:
    """Return snapshot `number` of a file. Raises ValueError if it does not exist."""
    snapshot = session.exec(
        select(Snapshot)
        .where(Snapshot.file_path == snapshot_key(file_path))
        .where(Snapshot.number == number)
    ).one_or_none()
    if snapshot is None:
        raise ValueError(f"Snapshot {number} not found for {file_path}")
    return snapshot


def rename_snapshot(session: Session, file_path: str | Path, number: int, message: str) -> Snapshot:
    snapshot = get_snapshot(session, file_path, number)
    snapshot.message = message
    session.add(snapshot)
    session.flush()
    return snapshot


def _drop(session: Session, snapshot: Snapshot) -> None:
    active = session.get(ActiveSnapshot, snapshot.file_path)
    if active is not None and active.snapshot_id == snapshot.id:
        session.delete(active)
    session.delete(snapshot)


def delete_snapshot(session: Session, file_path: str | Path, number: int) -> None:
    """Delete one snapshot, deactivating it first if it is the active one."""
    _drop(session, get_snapshot(session, file_path, number))
    session.flush()


def clear_snapshots(session: Session, file_path: str | Path) -> int:
    """Delete every snapshot of a file. Returns count deleted."""
    snapshots = list_snapshots(session, file_path)
    for snapshot in snapshots:
        _drop(session, snapshot)
    session.flush()
    return len(snapshots)


def prune_snapshots(session: Session, file_path: str | Path, max_snapshots: int) -> int:
    """Delete the oldest snapshots beyond max_snapshots, never the active one. No-op if max_snapshots=0."""
    if max_snapshots == 0:
        return 0

    snapshots = list_snapshots(session, file_path)
    active = get_active_snapshot(session, file_path)
    excess = len(snapshots) - max_snapshots
    if excess <= 0:
        return 0

    oldest = [s for s in reversed(snapshots) if active is None or s.id != active.id][:excess]
    for snapshot in oldest:
        session.delete(snapshot)
    session.flush()
    return len(oldest)


def set_active_snapshot(session: Session, file_path: str | Path, number: int) -> Snapshot:
    """Make snapshot `number` the diff base for its file, replacing any previous choice."""
    snapshot = get_snapshot(session, file_path, number)
    active = session.get(ActiveSnapshot, snapshot.file_path)
    if active is None:
        active = ActiveSnapshot(file_path=snapshot.file_path, snapshot_id=snapshot.id)
    else:
        active.snapshot_id = snapshot.id
    session.add(active)
    session.flush()
    return snapshot


def clear_active_snapshot(session: Session, file_path: str | Path) -> bool:
    """Stop using a snapshot as the base for file_path. Returns False if none was active."""
    active = session.get(ActiveSnapshot, snapshot_key(file_path))
    if active is None:
        return False
    session.delete(active)
    session.flush()
    return True


def get_active_snapshot(session: Session, file_path: str | Path) -> Optional[Snapshot]:
    active = session.get(ActiveSnapshot, snapshot_key(file_path))
    if active is None:
        return None
    return session.get(Snapshot, active.snapshot_id)


def diff_snapshot(
    session: Session,
    file_path: str | Path,
    current: str,
    number: Optional[int] = None,
    context: int = 3,
    ) -> list[str]:
    """Unified diff lines from a snapshot to current content.

    Uses snapshot `number`, else the active snapshot, else the newest one.
    Raises ValueError when the file has no snapshots.
    """
    if number is not None:
        snapshot = get_snapshot(session, file_path, number)
    else:
        snapshot = get_active_snapshot(session, file_path) or next(iter(list_snapshots(session, file_path)), None)
    if snapshot is None:
        raise ValueError(f"No snapshots found for {file_path}")
    if snapshot.hash == sha256(current):
        return []
    return unified_diff(snapshot.content, current, f"snapshot-{snapshot.number}", "current", context)

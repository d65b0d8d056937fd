"""CLI command implementations"""

import sys
import time
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger
from sqlmodel import Session

from srctrack.config import Settings, load_config
from srctrack.core.classify import classify_file
from srctrack.core.models import BaseText, ClassificationResult
from srctrack.core.tracker import build_tracker
from srctrack.core.unified import classify_from_unified_diff
from srctrack.crud.database import init_db, make_engine, reset_db
from srctrack.crud.snapshots import (
    clear_active_snapshot,
    clear_snapshots,
    delete_snapshot,
    diff_snapshot,
    get_active_snapshot,
    get_snapshot,
    list_snapshots,
    rename_snapshot,
    set_active_snapshot,
    take_snapshot,
)
from srctrack.git.repo import GitError, GitRepo
from srctrack.log import configure_logging


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling, then configure logging."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    configure_logging(settings.log_level)
    return settings


def _engine(settings: Settings):
    engine = make_engine(settings.db_url)
    init_db(engine)
    return engine


def _read(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        _fail(f"Cannot read {path}", e)


def _echo_result(result: Optional[ClassificationResult], as_json: bool) -> None:
    """Print one line per marker and a summary, or the JSON form."""
    if result is None:
        typer.echo("No base available; markers cleared.")
        return
    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return
    for line in result.describe():
        typer.echo(f"  {line}")
    typer.echo("No changes." if result.is_empty else f"Summary: {result.summary()}")


JsonOpt = Annotated[bool, typer.Option("--json", help="Print the classification as JSON")]
RefOpt = Annotated[Optional[str], typer.Option("--ref", help="Git ref, BRANCH, or space-separated fallbacks")]
NumberArg = Annotated[int, typer.Argument(help="Snapshot number (see 'snapshot list')")]


def classify_cmd(
    current: Annotated[str, typer.Argument(help="Current version of the file")],
    base: Annotated[Optional[str], typer.Option("--base", help="Base version; omit when the file is new")] = None,
    as_json: JsonOpt = False,
    ):
    """Classify CURRENT against --base; without --base the whole file is new."""
    _settings()
    base_text = BaseText(_read(base) if base is not None else None, base or "")
    _echo_result(classify_file(base_text, _read(current)), as_json)


def parse_diff_cmd(
    diff: Annotated[str, typer.Argument(help="Unified diff file, or '-' for stdin")] = "-",
    as_json: JsonOpt = False,
    ):
    """Classify the target file of a unified diff (e.g. from 'git diff')."""
    _settings()
    text = sys.stdin.read() if diff == "-" else _read(diff)
    _echo_result(classify_from_unified_diff(text), as_json)


def track_cmd(
    file: Annotated[str, typer.Argument(help="File to classify against its base")],
    ref: RefOpt = None,
    unified: Annotated[bool, typer.Option("--unified", help="Classify through a unified diff of the base")] = False,
    as_json: JsonOpt = False,
    ):
    """Classify FILE against its active snapshot, or else the git ref."""
    settings = _settings(overrides={"base_ref": ref})
    tracker = build_tracker(settings, _engine(settings))
    current = _read(file)
    result = tracker.classify_unified(file, current) if unified else tracker.classify(file, current)
    _echo_result(result, as_json)


def changed_cmd(
    path: Annotated[str, typer.Argument(help="Any path inside the repository")] = ".",
    ref: RefOpt = None,
    ):
    """List files added or modified since the ref."""
    settings = _settings(overrides={"base_ref": ref})
    try:
        repo = GitRepo.discover(path, settings.git_binary)
        if repo is None:
            _fail(f"Not a git repository: {path}")
        commit = repo.resolve_ref(settings.base_ref)
        if commit is None:
            _fail(f"Could not resolve ref: {settings.base_ref}")
        added, modified = repo.changed_files(commit)
    except GitError as e:
        _fail("Listing changed files failed", e)
    for p in added:
        typer.echo(f"  A {p}")
    for p in modified:
        typer.echo(f"  M {p}")
    typer.echo(f"{len(added)} added, {len(modified)} modified since {settings.base_ref}")


def watch_cmd(
    file: Annotated[str, typer.Argument(help="File to poll for changes")],
    ref: RefOpt = None,
    interval: Annotated[Optional[float], typer.Option("--interval", help="Seconds between polls")] = None,
    max_polls: Annotated[int, typer.Option("--max-polls", hidden=True)] = 0,
    ):
    """Re-classify FILE whenever it changes, after the debounce quiet period."""
    settings = _settings(overrides={"base_ref": ref, "poll_interval": interval})
    tracker = build_tracker(settings, _engine(settings))
    path = Path(file)

    def _report(changed: list[str]) -> None:
        for key in changed:
            result = tracker.store.get(key)
            typer.echo(f"{Path(key).name}: {result.summary() if result else 'no base'}")

    tracker.store.subscribe(_report)
    last: Optional[str] = None
    polls = 0
    try:
        while True:
            if path.exists():
                text = path.read_text(encoding="utf-8")
                if text != last:
                    tracker.schedule(str(path), text)
                    last = text
            tracker.run_due()
            polls += 1
            if max_polls and polls >= max_polls:
                break
            time.sleep(settings.poll_interval)
    except KeyboardInterrupt:
        pass


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    ):
    """Initialize the snapshot database. Use --reset to clear existing data."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        reset_db(engine)
        typer.echo("Existing snapshots cleared.")
    init_db(engine)
    typer.echo(f"Database initialized at: {settings.db_url}")


# --- snapshot commands ---

def snapshot_take_cmd(
    file: Annotated[str, typer.Argument(help="File to capture")],
    message: Annotated[str, typer.Option("--message", "-m", help="Snapshot description")] = "",
    activate: Annotated[bool, typer.Option("--activate", help="Use the new snapshot as the diff base")] = False,
    ):
    """Capture the current content of FILE."""
    settings = _settings()
    content = _read(file)
    try:
        repo = GitRepo.discover(file, settings.git_binary)
        metadata = repo.commit_metadata() if repo else {}
    except GitError as e:
        logger.warning("Snapshot taken without git metadata: {}", e)
        metadata = {}
    with Session(_engine(settings)) as session:
        snapshot = take_snapshot(session, file, content, message, metadata, settings.max_snapshots)
        if activate:
            set_active_snapshot(session, file, snapshot.number)
        session.commit()
        typer.echo(f"Snapshot {snapshot.number} taken for {file}" + (" (active)" if activate else ""))


def snapshot_list_cmd(
    file: Annotated[str, typer.Argument(help="Tracked file")],
    ):
    """List snapshots of FILE, newest first."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        snapshots = list_snapshots(session, file)
        active = get_active_snapshot(session, file)
        if not snapshots:
            typer.echo(f"No snapshots for {file}.")
            raise typer.Exit(1)
        for s in snapshots:
            marker = "*" if active is not None and active.id == s.id else " "
            typer.echo(f"{marker} {s.number:>3}  {s.created_at:%Y-%m-%d %H:%M:%S}  {s.message}")


def snapshot_show_cmd(file: Annotated[str, typer.Argument()], number: NumberArg):
    """Print the captured content of a snapshot."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        try:
            snapshot = get_snapshot(session, file, number)
        except ValueError as e:
            _fail(str(e))
        typer.echo(snapshot.content, nl=False)


def snapshot_activate_cmd(file: Annotated[str, typer.Argument()], number: NumberArg):
    """Use a snapshot instead of git as the diff base for FILE."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        try:
            set_active_snapshot(session, file, number)
        except ValueError as e:
            _fail(str(e))
        session.commit()
    typer.echo(f"Snapshot {number} is now the base for {file}")


def snapshot_deactivate_cmd(file: Annotated[str, typer.Argument()]):
    """Go back to diffing FILE against git."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        cleared = clear_active_snapshot(session, file)
        session.commit()
    typer.echo(f"Snapshot base cleared for {file}" if cleared else f"No active snapshot for {file}")


def snapshot_rename_cmd(
    file: Annotated[str, typer.Argument()],
    number: NumberArg,
    message: Annotated[str, typer.Argument(help="New description")],
    ):
    """Change a snapshot's description."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        try:
            rename_snapshot(session, file, number, message)
        except ValueError as e:
            _fail(str(e))
        session.commit()
    typer.echo(f"Snapshot {number} renamed")


def snapshot_delete_cmd(file: Annotated[str, typer.Argument()], number: NumberArg):
    """Delete one snapshot of FILE."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        try:
            delete_snapshot(session, file, number)
        except ValueError as e:
            _fail(str(e))
        session.commit()
    typer.echo(f"Snapshot {number} deleted")


def snapshot_clear_cmd(file: Annotated[str, typer.Argument()]):
    """Delete every snapshot of FILE."""
    settings = _settings()
    with Session(_engine(settings)) as session:
        count = clear_snapshots(session, file)
        session.commit()
    typer.echo(f"Deleted {count} snapshot(s) for {file}")


def snapshot_diff_cmd(
    file: Annotated[str, typer.Argument()],
    number: Annotated[Optional[int], typer.Argument(help="Snapshot number; default active or newest")] = None,
    context: Annotated[int, typer.Option("--context", "-U", help="Lines of context")] = 3,
    ):
    """Show a unified diff from a snapshot to the current FILE."""
    settings = _settings()
    current = _read(file)
    with Session(_engine(settings)) as session:
        try:
            lines = diff_snapshot(session, file, current, number, context)
        except ValueError as e:
            _fail(str(e))
    if not lines:
        typer.echo("No differences.")
        return
    typer.echo("".join(lines), nl=False)

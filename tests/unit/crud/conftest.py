"""Shared fixtures for crud unit tests"""

import pytest
from sqlalchemy import create_engine
from sqlmodel import SQLModel, Session

from srctrack.crud import tables  # noqa: F401
from srctrack.crud.snapshots import take_snapshot


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Fresh session per test; changes are not committed."""
    with Session(engine) as s:
        yield s


@pytest.fixture(name="tracked")
def tracked_fixture(tmp_path):
    """Path of a tracked file; the file itself need not exist."""
    return tmp_path / "notes.txt"


@pytest.fixture(name="snap")
def snap_fixture(session, tracked):
    """A first snapshot of the tracked file."""
    return take_snapshot(session, tracked, "alpha\nbeta\n", "initial")

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, String, Text
from sqlmodel import Field, SQLModel


class Snapshot(SQLModel, table=True):
    __tablename__ = "snapshots"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    file_path: str = Field(..., index=True, nullable=False, description="Absolute POSIX path of the tracked file")
    number: int = Field(..., nullable=False, description="Per-file sequence number, 1 for the first snapshot")
    content: str = Field(..., sa_column=Column(Text, nullable=False))
    hash: str = Field(..., sa_column=Column(String(64), nullable=False))
    message: str = Field(default="", nullable=False, description="User-provided description")
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
    commit_hash: Optional[str] = Field(default=None, description="HEAD commit when the snapshot was taken")
    branch: Optional[str] = Field(default=None)
    subject: Optional[str] = Field(default=None)
    author_name: Optional[str] = Field(default=None)


class ActiveSnapshot(SQLModel, table=True):
    __tablename__ = "active_snapshots"
    file_path: str = Field(primary_key=True)
    snapshot_id: UUID = Field(..., foreign_key="snapshots.id", nullable=False)

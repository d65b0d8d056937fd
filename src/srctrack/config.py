"""Application configuration: settings schema and srctrack.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "srctrack.yaml"


class Settings(BaseModel):
    app_name:      str = "srctrack"
    db_url:        str = "sqlite:///srctrack.db"
    base_ref:      str = Field(default="HEAD", description="Git ref, BRANCH, or space-separated fallback list")
    debounce_ms:   int = Field(default=250, ge=0, description="Quiet period before a scheduled classification runs")
    poll_interval: float = Field(default=0.5, ge=0, description="Seconds between file polls in watch mode")
    max_snapshots: int = Field(default=10, ge=0, description="Max stored snapshots per file; 0 disables pruning")
    log_level:     str = Field(
        default="WARNING",
        pattern="^(TRACE|DEBUG|INFO|SUCCESS|WARNING|ERROR|CRITICAL)$",
        description="Loguru level for the stderr sink",
    )
    git_binary:    str = Field(default="git", description="Git executable used for ref resolution and content")


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from srctrack.yaml, then SRCTRACK_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e

    for name in Settings.model_fields:
        if val := os.getenv(f"SRCTRACK_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    if isinstance(data.get("log_level"), str):
        data["log_level"] = data["log_level"].upper()
    return Settings(**data)

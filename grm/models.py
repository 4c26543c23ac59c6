"""Dataclasses shared across modules."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class RepoInfo:
    """Identity of a logical repository, optionally with the checked-out branch."""

    host: str
    user: str
    repo: str
    branch: str | None = None

    @property
    def slug(self) -> str:
        return f"{self.host}/{self.user}/{self.repo}"


@dataclass(frozen=True)
class Config:
    """Resolved runtime settings."""

    root: Path

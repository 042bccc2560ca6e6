"""Data models for raw repository metadata fetched from GitHub."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class Branch:
    """A branch head as listed by the host."""

    name: str
    head_sha: str
    protected: bool = False


@dataclass
class Commit:
    """A single commit on the default branch."""

    sha: str
    message: str
    author_name: str
    authored_at: datetime
    author_login: Optional[str] = None

    @property
    def identity(self) -> str:
        """The author handle when known, otherwise the display name."""
        return self.author_login or self.author_name


@dataclass
class RawRepository:
    """Everything the transformer and the scoring engine need.

    ``commits`` is ordered most-recent-first and bounded by the fetch window.
    """

    name: str
    full_name: str
    default_branch: str
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    github_id: Optional[int] = None
    branches: List[Branch] = field(default_factory=list)
    commits: List[Commit] = field(default_factory=list)

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def url(self) -> str:
        return f"https://github.com/{self.full_name}"

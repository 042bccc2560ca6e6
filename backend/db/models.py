"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

VISUALIZATION_MODES = ("brain", "tree")


@dataclass
class RepositoryUpsert:
    """Column values written by an upsert keyed on ``full_name``."""

    full_name: str
    owner: str
    name: str
    url: str
    github_repo_id: Optional[int] = None
    description: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    score: int = 0
    complexity_score: float = 0.0
    activity_score: float = 0.0
    social_score: float = 0.0
    health_score: float = 0.0
    branches_count: int = 0
    commits_count: int = 0
    contributors_count: int = 0
    recent_commits_7d: int = 0


@dataclass
class Repository:
    id: str
    github_repo_id: Optional[int]
    owner: str
    name: str
    full_name: str
    url: str
    description: Optional[str]
    language: Optional[str]
    stars: int
    forks: int
    watchers: int
    score: int
    complexity_score: float
    activity_score: float
    social_score: float
    health_score: float
    branches_count: int
    commits_count: int
    contributors_count: int
    recent_commits_7d: int
    created_at: int
    updated_at: int
    last_scored_at: Optional[int]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class UserVisualization:
    id: str
    user_id: str
    repository_id: str
    repo_score: int
    complexity_score: Optional[float]
    activity_score: Optional[float]
    social_score: Optional[float]
    health_score: Optional[float]
    visualization_mode: Optional[str]
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

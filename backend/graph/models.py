"""Dataclass models for the visualization graph.

These are plain Python objects.  :meth:`Graph.to_dict` produces the JSON
shape the renderer consumes (camelCase metadata keys).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

ROOT = "root"
BRANCH = "branch"
COMMIT = "commit"

MERGE_LINK = "merge"
COMMIT_LINK = "commit"


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Render an aware datetime as a GitHub-style ``...Z`` timestamp."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class GraphNode:
    id: str
    size: float
    color: str
    type: str
    label: str
    commits: Optional[int] = None
    last_commit: Optional[datetime] = None
    author: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {}
        if self.commits is not None:
            metadata["commits"] = self.commits
        if self.last_commit is not None:
            metadata["lastCommit"] = isoformat(self.last_commit)
        if self.author is not None:
            metadata["author"] = self.author
        data: dict[str, Any] = {
            "id": self.id,
            "size": self.size,
            "color": self.color,
            "type": self.type,
            "label": self.label,
        }
        if metadata:
            data["metadata"] = metadata
        return data


@dataclass
class GraphLink:
    source: str
    target: str
    weight: float
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "weight": self.weight,
            "type": self.type,
        }


@dataclass
class GraphMetadata:
    repo_name: str
    total_branches: int = 0
    total_commits: int = 0
    last_updated: Optional[datetime] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "repoName": self.repo_name,
            "totalBranches": self.total_branches,
            "totalCommits": self.total_commits,
            "lastUpdated": isoformat(self.last_updated),
            "language": self.language,
            "stars": self.stars,
            "forks": self.forks,
        }


@dataclass
class Graph:
    metadata: GraphMetadata
    nodes: list[GraphNode] = field(default_factory=list)
    links: list[GraphLink] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------
    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def root(self) -> GraphNode:
        """Return the single root node."""
        return next(n for n in self.nodes if n.type == ROOT)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [link.to_dict() for link in self.links],
            "metadata": self.metadata.to_dict(),
        }

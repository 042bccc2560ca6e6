"""Raw repository metadata → bounded star graph.

The root node always has the id ``"main"`` regardless of the repository's
actual default branch name; every other node links into it.  Output size is
capped at ``len(branches) + 10`` nodes.
"""

from __future__ import annotations

from typing import Optional

from backend.errors import EmptyRepository
from backend.github.models import Branch, Commit, RawRepository
from backend.graph.models import (
    BRANCH,
    COMMIT,
    COMMIT_LINK,
    MERGE_LINK,
    ROOT,
    Graph,
    GraphLink,
    GraphMetadata,
    GraphNode,
)

ROOT_ID = "main"
ROOT_SIZE = 8
ROOT_COLOR = "#00ffaa"

COMMIT_COLOR = "#ffffff"
COMMIT_NODE_LIMIT = 10
COMMIT_LABEL_LENGTH = 30

BRANCH_MIN_SIZE = 2
BRANCH_MAX_SIZE = 6

BRANCH_PALETTE = (
    "#ff6b6b",  # red
    "#4ecdc4",  # teal
    "#45b7d1",  # blue
    "#96ceb4",  # green
    "#feca57",  # yellow
    "#ff9ff3",  # pink
    "#54a0ff",  # light blue
    "#5f27cd",  # purple
    "#00d2d3",  # cyan
    "#ff9f43",  # orange
)

FALLBACK_BRANCH_ID = "fallback-branch"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def branch_color(index: int) -> str:
    """Palette colour for the branch at position *index* in the branch list."""
    return BRANCH_PALETTE[index % len(BRANCH_PALETTE)]


def _default_branch(raw: RawRepository) -> Branch:
    if not raw.branches:
        raise EmptyRepository(f"{raw.full_name} has no branches")
    for branch in raw.branches:
        if branch.name == raw.default_branch:
            return branch
    return raw.branches[0]


def relevant_commits(branch_name: str, commits: list[Commit]) -> list[Commit]:
    """Commits whose message mentions *branch_name* or the word "merge"."""
    needle = branch_name.lower()
    return [
        c for c in commits
        if needle in c.message.lower() or "merge" in c.message.lower()
    ]


def _commit_label(message: str) -> str:
    return message[:COMMIT_LABEL_LENGTH] + "..."


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def transform(raw: RawRepository) -> Graph:
    """Build the visualization graph for *raw*.

    Raises:
        EmptyRepository: If ``raw.branches`` is empty.
    """
    default = _default_branch(raw)
    newest: Optional[Commit] = raw.commits[0] if raw.commits else None

    graph = Graph(
        metadata=GraphMetadata(
            repo_name=raw.full_name,
            total_branches=len(raw.branches),
            total_commits=len(raw.commits),
            last_updated=raw.updated_at,
            language=raw.language,
            stars=raw.stars,
            forks=raw.forks,
        )
    )
    graph.nodes.append(
        GraphNode(
            id=ROOT_ID,
            size=ROOT_SIZE,
            color=ROOT_COLOR,
            type=ROOT,
            label=default.name,
            commits=len(raw.commits),
            last_commit=newest.authored_at if newest else None,
        )
    )
    seen = {ROOT_ID}

    for index, branch in enumerate(raw.branches):
        # Node ids must stay unique: a non-default branch literally named
        # "main" would collide with the root.
        if branch.name == raw.default_branch or branch.name in seen:
            continue
        subset = relevant_commits(branch.name, raw.commits)
        count = len(subset)
        graph.nodes.append(
            GraphNode(
                id=branch.name,
                size=max(BRANCH_MIN_SIZE, min(BRANCH_MAX_SIZE, count)),
                color=branch_color(index),
                type=BRANCH,
                label=branch.name,
                commits=count,
                last_commit=subset[0].authored_at if subset else None,
            )
        )
        seen.add(branch.name)
        graph.links.append(
            GraphLink(source=branch.name, target=ROOT_ID, weight=max(count, 1), type=MERGE_LINK)
        )

    for commit in raw.commits[:COMMIT_NODE_LIMIT]:
        node_id = f"commit-{commit.sha[:7]}"
        if node_id in seen:
            continue
        graph.nodes.append(
            GraphNode(
                id=node_id,
                size=1,
                color=COMMIT_COLOR,
                type=COMMIT,
                label=_commit_label(commit.message),
                last_commit=commit.authored_at,
                author=commit.identity,
            )
        )
        seen.add(node_id)
        graph.links.append(
            GraphLink(source=node_id, target=ROOT_ID, weight=1, type=COMMIT_LINK)
        )

    return graph


def fallback_graph(full_name: str, default_branch: str = "main") -> Graph:
    """Minimal renderable graph used when the fetch or transform fails.

    A root node plus one synthetic branch node linked into it.
    """
    graph = Graph(metadata=GraphMetadata(repo_name=full_name))
    graph.nodes.append(
        GraphNode(id=ROOT_ID, size=ROOT_SIZE, color=ROOT_COLOR, type=ROOT, label=default_branch)
    )
    graph.nodes.append(
        GraphNode(
            id=FALLBACK_BRANCH_ID,
            size=BRANCH_MIN_SIZE,
            color=branch_color(0),
            type=BRANCH,
            label=full_name,
        )
    )
    graph.links.append(
        GraphLink(source=FALLBACK_BRANCH_ID, target=ROOT_ID, weight=1, type=MERGE_LINK)
    )
    return graph

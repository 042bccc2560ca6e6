"""Utilities for rendering graphs and scores in the CLI."""

from __future__ import annotations

from backend.graph.models import BRANCH, Graph, GraphNode
from backend.scoring.engine import format_score_display, score_tier
from backend.scoring.models import ScoreComponents, ScoringMetadata


def render_tree(graph: Graph) -> str:
    """Render a star-topology graph as an ASCII tree.

    Every link points into the root, so the tree is one level deep: branches
    first (in graph order), then commit nodes.
    """
    root = graph.root()
    node_map = {n.id: n for n in graph.nodes}
    children = [node_map[link.source] for link in graph.links if link.target == root.id]
    children.sort(key=lambda n: 0 if n.type == BRANCH else 1)

    lines = [f"{_get_icon(root)} {root.label}"]
    count = len(children)
    for i, node in enumerate(children):
        connector = "└── " if i == count - 1 else "├── "
        lines.append(f"{connector}{_get_icon(node)} {node.label}{_describe(node)}")
    return "\n".join(lines)


def render_score(components: ScoreComponents, metadata: ScoringMetadata) -> str:
    """Multi-line summary of a score and the counts behind it."""
    return "\n".join([
        f"Score      : {format_score_display(components)}  (tier {score_tier(components.raw_final_score)})",
        f"Complexity : {components.complexity_score:.1f}",
        f"Activity   : {components.activity_score:.1f}",
        f"Social     : {components.social_score:.1f}",
        f"Health     : {components.health_score:.1f}",
        f"Branches {metadata.branches_count}  Commits {metadata.commits_count}  "
        f"Contributors {metadata.contributors_count}  Last 7d {metadata.recent_commits_7d}",
    ])


def _describe(node: GraphNode) -> str:
    if node.type == BRANCH and node.commits is not None:
        return f"  ({node.commits} commits)"
    if node.author:
        return f"  — {node.author}"
    return ""


def _get_icon(node: GraphNode) -> str:
    icons = {
        "root": "🧠",
        "branch": "🌿",
        "commit": "•",
    }
    return icons.get(node.type, "📦")

"""Graph package — repository → node/link graph for visualization."""

from backend.graph.models import Graph, GraphLink, GraphMetadata, GraphNode
from backend.graph.transformer import ROOT_ID, fallback_graph, transform

__all__ = [
    "Graph",
    "GraphLink",
    "GraphMetadata",
    "GraphNode",
    "ROOT_ID",
    "fallback_graph",
    "transform",
]

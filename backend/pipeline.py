"""Visualization pipeline: fetch once, then transform and score independently.

The caller always gets a renderable graph.  When the fetch fails, or the
repository has no branches, the fallback graph is substituted; scoring is
skipped only when there is no fetched data to score.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from backend.db.models import Repository, UserVisualization
from backend.errors import EmptyRepository, FetchFailure
from backend.github.fetcher import fetch_repository, parse_repo_url
from backend.github.models import RawRepository
from backend.graph.models import Graph
from backend.graph.transformer import fallback_graph, transform
from backend.leaderboard import record_scored_visualization
from backend.scoring.engine import score, score_color, score_tier
from backend.scoring.models import ScoreComponents, ScoringMetadata

logger = logging.getLogger(__name__)


@dataclass
class VisualizationResult:
    full_name: str
    graph: Graph
    fallback: bool = False
    error: Optional[str] = None
    raw: Optional[RawRepository] = None
    components: Optional[ScoreComponents] = None
    metadata: Optional[ScoringMetadata] = None
    repository: Optional[Repository] = None
    visualization: Optional[UserVisualization] = None

    @property
    def tier(self) -> Optional[str]:
        return score_tier(self.components.raw_final_score) if self.components else None

    def to_dict(self) -> dict[str, Any]:
        score_block: Optional[dict[str, Any]] = None
        if self.components is not None:
            score_block = self.components.to_dict()
            score_block["tier"] = self.tier
            score_block["color"] = score_color(self.components.raw_final_score)
        return {
            "graph": self.graph.to_dict(),
            "score": score_block,
            "scoring_metadata": self.metadata.to_dict() if self.metadata else None,
            "fallback": self.fallback,
            "error": self.error,
            "repository_id": self.repository.id if self.repository else None,
            "visualization_id": self.visualization.id if self.visualization else None,
        }


def process_repository(
    repo_url: str,
    *,
    conn: Optional[sqlite3.Connection] = None,
    user_id: Optional[str] = None,
    visualization_mode: str = "brain",
    now: Optional[datetime] = None,
) -> VisualizationResult:
    """Fetch *repo_url*, build its graph and, when possible, its score.

    When both *conn* and *user_id* are given, the scored repository is
    upserted and the visualization event recorded.

    Raises:
        InvalidRepositoryUrl: If *repo_url* cannot be parsed.
        UpsertConflictFailure: If recording was requested and the upsert failed.
    """
    owner, name = parse_repo_url(repo_url)
    full_name = f"{owner}/{name}"

    try:
        raw = fetch_repository(owner, name)
    except FetchFailure as exc:
        logger.warning("using fallback graph for %s: %s", full_name, exc)
        return VisualizationResult(
            full_name=full_name,
            graph=fallback_graph(full_name),
            fallback=True,
            error=str(exc),
        )

    result = VisualizationResult(full_name=raw.full_name, graph=fallback_graph(raw.full_name), raw=raw)
    try:
        result.graph = transform(raw)
    except EmptyRepository as exc:
        logger.warning("using fallback graph for %s: %s", raw.full_name, exc)
        result.graph = fallback_graph(raw.full_name, raw.default_branch)
        result.fallback = True
        result.error = str(exc)

    result.components, result.metadata = score(raw, now)

    if conn is not None and user_id:
        result.repository, result.visualization = record_scored_visualization(
            conn, user_id, raw, result.components, result.metadata, visualization_mode
        )
    return result

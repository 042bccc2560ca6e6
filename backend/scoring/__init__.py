"""Scoring package — repository metadata → sub-scores, composite and tier."""

from backend.scoring.engine import (
    commit_spread,
    format_score_display,
    score,
    score_color,
    score_tier,
)
from backend.scoring.models import ScoreComponents, ScoringMetadata

__all__ = [
    "commit_spread",
    "format_score_display",
    "score",
    "score_color",
    "score_tier",
    "ScoreComponents",
    "ScoringMetadata",
]

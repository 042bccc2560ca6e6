"""Result types produced by the scoring engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class ScoreComponents:
    complexity_score: float
    activity_score: float
    social_score: float
    health_score: float
    final_score: int
    # Unrounded composite, used for tier and colour thresholds.
    raw_final_score: float

    def sub_scores(self) -> dict[str, float]:
        return {
            "complexity_score": self.complexity_score,
            "activity_score": self.activity_score,
            "social_score": self.social_score,
            "health_score": self.health_score,
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScoringMetadata:
    branches_count: int
    commits_count: int
    contributors_count: int
    recent_commits_7d: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

"""Repository scoring engine.

Reduces a :class:`~backend.github.models.RawRepository` to four sub-scores
and an equally weighted composite:

``complexity``
    Branch count, commit count and branch/commit density.
``activity``
    Commits in the trailing week, historical volume and contributor count.
``social``
    Stars and forks on a log scale.
``health``
    Days since the last commit, day-to-day commit consistency and the share
    of protected branches.

Every term is capped on its own before summing so that no single signal can
dominate a sub-score.  The evaluation instant is an explicit argument; the
engine never reads the clock unless the caller omits it.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from backend.github.models import Commit, RawRepository
from backend.scoring.models import ScoreComponents, ScoringMetadata

RECENT_WINDOW_DAYS = 7
WEIGHT = 0.25

# (max days since last commit, points); anything older scores STALE_POINTS.
RECENCY_STEPS = ((7, 50), (30, 45), (90, 40), (365, 25))
STALE_POINTS = 10

TIER_THRESHOLDS = ((85, "S"), (70, "A"), (55, "B"), (40, "C"))
LOWEST_TIER = "D"

SCORE_COLORS = (
    (85, "from-green-500 to-emerald-600"),
    (70, "from-blue-500 to-cyan-600"),
    (55, "from-yellow-500 to-orange-600"),
    (40, "from-orange-500 to-red-600"),
)
LOWEST_COLOR = "from-red-500 to-red-700"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def contributor_count(commits: Iterable[Commit]) -> int:
    """Distinct author identities (login, falling back to display name)."""
    return len({c.identity for c in commits if c.identity})


def recent_commit_count(commits: Iterable[Commit], now: datetime, days: int = RECENT_WINDOW_DAYS) -> int:
    """Commits authored strictly after ``now - days``."""
    cutoff = _as_utc(now) - timedelta(days=days)
    return sum(1 for c in commits if _as_utc(c.authored_at) > cutoff)


def commit_spread(commits: Iterable[Commit]) -> float:
    """How evenly commits are spread over UTC calendar days, in ``[0, 1]``.

    Uses the population standard deviation of the per-day counts divided by
    ``mean + 1``.  Depends only on the day buckets, so the order of
    *commits* is irrelevant.  An empty list scores 0.
    """
    per_day = Counter(_as_utc(c.authored_at).date() for c in commits)
    if not per_day:
        return 0.0
    counts = list(per_day.values())
    mean = sum(counts) / len(counts)
    variance = sum((n - mean) ** 2 for n in counts) / len(counts)
    cv = math.sqrt(variance) / (mean + 1)
    return max(0.0, 1.0 - min(cv, 1.0))


def protected_ratio(raw: RawRepository) -> float:
    if not raw.branches:
        return 0.0
    return sum(1 for b in raw.branches if b.protected) / len(raw.branches)


def recency_points(days_since_last_commit: int) -> int:
    for limit, points in RECENCY_STEPS:
        if days_since_last_commit <= limit:
            return points
    return STALE_POINTS


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------

def complexity_score(meta: ScoringMetadata) -> float:
    branches, commits = meta.branches_count, meta.commits_count
    branch_term = min(40.0, branches * 3.0)
    commit_term = min(40.0, commits / 100 * 40)
    density_term = min(20.0, branches / max(commits, 1) * 20)
    return _clamp(branch_term + commit_term + density_term)


def activity_score(meta: ScoringMetadata) -> float:
    recent_term = min(40.0, meta.recent_commits_7d * 5.0)
    historical_term = min(35.0, meta.commits_count / 1000 * 35)
    contributor_term = min(25.0, math.sqrt(meta.contributors_count) * 5)
    return _clamp(recent_term + historical_term + contributor_term)


def social_score(raw: RawRepository) -> float:
    star_term = min(60.0, math.log10(max(raw.stars, 0) + 1) * 15)
    fork_term = min(40.0, math.log10(max(raw.forks, 0) + 1) * 10)
    return _clamp(star_term + fork_term)


def health_score(raw: RawRepository, now: datetime) -> float:
    last_activity = raw.commits[0].authored_at if raw.commits else raw.updated_at
    elapsed = _as_utc(now) - _as_utc(last_activity)
    days = math.floor(elapsed.total_seconds() / 86400)
    consistency_term = commit_spread(raw.commits) * 30
    protection_term = protected_ratio(raw) * 20
    return _clamp(recency_points(days) + consistency_term + protection_term)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_metadata(raw: RawRepository, now: datetime) -> ScoringMetadata:
    return ScoringMetadata(
        branches_count=len(raw.branches),
        commits_count=len(raw.commits),
        contributors_count=contributor_count(raw.commits),
        recent_commits_7d=recent_commit_count(raw.commits, now),
    )


def composite(complexity: float, activity: float, social: float, health: float) -> float:
    """Equally weighted mean of the four sub-scores."""
    return WEIGHT * complexity + WEIGHT * activity + WEIGHT * social + WEIGHT * health


def score(
    raw: RawRepository,
    now: Optional[datetime] = None,
) -> tuple[ScoreComponents, ScoringMetadata]:
    """Score *raw* as of *now* (defaults to the current UTC time).

    Returns:
        ``(components, metadata)``.  ``components.final_score`` is the
        composite rounded half-up and clamped to ``[0, 100]``.
    """
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    meta = extract_metadata(raw, now)

    complexity = complexity_score(meta)
    activity = activity_score(meta)
    social = social_score(raw)
    health = health_score(raw, now)
    raw_final = composite(complexity, activity, social, health)

    components = ScoreComponents(
        complexity_score=complexity,
        activity_score=activity,
        social_score=social,
        health_score=health,
        final_score=int(_clamp(round_half_up(raw_final))),
        raw_final_score=raw_final,
    )
    return components, meta


def score_tier(value: float) -> str:
    """Map a 0–100 score to ``S``/``A``/``B``/``C``/``D`` (inclusive lower bounds)."""
    for threshold, tier in TIER_THRESHOLDS:
        if value >= threshold:
            return tier
    return LOWEST_TIER


def score_color(value: float) -> str:
    """Gradient token used by the UI for a score."""
    for threshold, color in SCORE_COLORS:
        if value >= threshold:
            return color
    return LOWEST_COLOR


def format_score_display(components: ScoreComponents) -> str:
    return f"{components.final_score}/100"

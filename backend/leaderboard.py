"""Leaderboard service — scored repositories and per-user visualization history.

Thin orchestration over :mod:`backend.db.repositories` and
:mod:`backend.db.visualizations`.  The only multi-statement operation is
recording a visualization for a repository that may not be stored yet: the
repository upsert and the visualization insert share one transaction, and a
failed upsert aborts before the insert is attempted.
"""

from __future__ import annotations

import logging
import math
import sqlite3
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from backend.config import settings
from backend.db.models import (
    VISUALIZATION_MODES,
    Repository,
    RepositoryUpsert,
    UserVisualization,
)
from backend.db.repositories import (
    get_repository,
    list_top_repositories,
    upsert_repository,
)
from backend.db.visualizations import insert_visualization, list_user_visualizations
from backend.errors import UpsertConflictFailure, ValidationFailure
from backend.github.models import RawRepository
from backend.scoring.engine import round_half_up
from backend.scoring.models import ScoreComponents, ScoringMetadata

logger = logging.getLogger(__name__)

# Serialises write transactions on connections shared across threads.
_write_lock = threading.RLock()

SUB_SCORE_FIELDS = ("complexity_score", "activity_score", "social_score", "health_score")


# ---------------------------------------------------------------------------
# Request / response types
# ---------------------------------------------------------------------------

@dataclass
class VisualizationRequest:
    """A visualization event as submitted by a client.

    Either ``repository_id`` (repository already stored) or ``full_name``
    (repository upserted first) must be given.
    """

    user_id: str
    visualization_mode: Optional[str]
    repo_score: Optional[float]
    repository_id: Optional[str] = None
    full_name: Optional[str] = None
    github_repo_id: Optional[int] = None
    owner: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    stars: Optional[int] = 0
    forks: Optional[int] = 0
    watchers: Optional[int] = 0
    complexity_score: Optional[float] = None
    activity_score: Optional[float] = None
    social_score: Optional[float] = None
    health_score: Optional[float] = None
    branches_count: Optional[int] = 0
    commits_count: Optional[int] = 0
    contributors_count: Optional[int] = 0
    recent_commits_7d: Optional[int] = 0


@dataclass
class RankedRepository:
    rank: int
    repository: Repository

    def to_dict(self) -> dict[str, Any]:
        data = self.repository.to_dict()
        data["rank"] = self.rank
        return data


@dataclass
class LeaderboardPage:
    limit: int
    offset: int
    total: int
    entries: list[RankedRepository] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _check_score(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationFailure(f"{name} must be a number")
    if not math.isfinite(value) or not 0 <= value <= 100:
        raise ValidationFailure(f"{name} must be between 0 and 100")
    return float(value)


def validate_request(request: VisualizationRequest) -> None:
    """Reject a request before any database call.

    Raises:
        ValidationFailure: Describing the first problem found.
    """
    if not request.user_id:
        raise ValidationFailure("user_id is required")
    if not request.visualization_mode or request.repo_score is None:
        raise ValidationFailure("Missing required fields: visualization_mode, repo_score")
    if request.visualization_mode not in VISUALIZATION_MODES:
        raise ValidationFailure(
            f"visualization_mode must be one of {', '.join(VISUALIZATION_MODES)}"
        )
    _check_score("repo_score", request.repo_score)
    for name in SUB_SCORE_FIELDS:
        value = getattr(request, name)
        if value is not None:
            _check_score(name, value)
    if not request.repository_id:
        if not request.full_name:
            raise ValidationFailure("Either repository_id or full_name is required")
        owner, _, name = request.full_name.partition("/")
        if not owner or not name or "/" in name:
            raise ValidationFailure(f"full_name must look like 'owner/name': {request.full_name!r}")


def _clamp_limit(limit: int) -> int:
    if limit < 1:
        raise ValidationFailure("limit must be at least 1")
    return min(limit, settings.leaderboard_max_limit)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def repository_record(
    raw: RawRepository,
    components: ScoreComponents,
    metadata: ScoringMetadata,
) -> RepositoryUpsert:
    """Column values for a freshly scored repository."""
    return RepositoryUpsert(
        full_name=raw.full_name,
        owner=raw.owner,
        name=raw.name,
        url=raw.url,
        github_repo_id=raw.github_id,
        description=raw.description,
        language=raw.language,
        stars=raw.stars,
        forks=raw.forks,
        watchers=raw.watchers,
        score=components.final_score,
        complexity_score=components.complexity_score,
        activity_score=components.activity_score,
        social_score=components.social_score,
        health_score=components.health_score,
        **metadata.to_dict(),
    )


def _record_from_request(request: VisualizationRequest) -> RepositoryUpsert:
    full_name = request.full_name or ""
    owner, _, name = full_name.partition("/")
    return RepositoryUpsert(
        full_name=full_name,
        owner=request.owner or owner,
        name=request.name or name,
        url=request.url or f"https://github.com/{full_name}",
        github_repo_id=request.github_repo_id,
        description=request.description,
        language=request.language,
        stars=request.stars or 0,
        forks=request.forks or 0,
        watchers=request.watchers or 0,
        score=round_half_up(float(request.repo_score or 0)),
        complexity_score=request.complexity_score or 0.0,
        activity_score=request.activity_score or 0.0,
        social_score=request.social_score or 0.0,
        health_score=request.health_score or 0.0,
        branches_count=request.branches_count or 0,
        commits_count=request.commits_count or 0,
        contributors_count=request.contributors_count or 0,
        recent_commits_7d=request.recent_commits_7d or 0,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def upsert_scored_repository(
    conn: sqlite3.Connection,
    raw: RawRepository,
    components: ScoreComponents,
    metadata: ScoringMetadata,
) -> Repository:
    """Create or refresh the repository row with the latest scores.

    Raises:
        UpsertConflictFailure: If the database rejects the write.
    """
    try:
        with _write_lock:
            return upsert_repository(conn, repository_record(raw, components, metadata))
    except sqlite3.Error as exc:
        logger.error("repository upsert failed for %s: %s", raw.full_name, exc)
        raise UpsertConflictFailure(f"Could not store repository {raw.full_name}: {exc}") from exc


def _upsert_then_insert(
    conn: sqlite3.Connection,
    user_id: str,
    record: RepositoryUpsert,
    repo_score: int,
    mode: str,
    scores: dict[str, Optional[float]],
) -> tuple[Repository, UserVisualization]:
    with _write_lock, conn:
        try:
            repository = upsert_repository(conn, record, commit=False)
        except sqlite3.Error as exc:
            logger.error("repository upsert failed for %s: %s", record.full_name, exc)
            raise UpsertConflictFailure(
                f"Could not store repository {record.full_name}: {exc}"
            ) from exc
        visualization = insert_visualization(
            conn, user_id, repository.id, repo_score, mode, **scores, commit=False
        )
    return repository, visualization


def record_visualization(conn: sqlite3.Connection, request: VisualizationRequest) -> UserVisualization:
    """Validate and persist a client-submitted visualization event.

    Raises:
        ValidationFailure: Missing/invalid fields or unknown ``repository_id``.
        UpsertConflictFailure: The repository upsert failed; nothing is written.
    """
    validate_request(request)
    repo_score = round_half_up(float(request.repo_score))  # type: ignore[arg-type]
    scores = {name: getattr(request, name) or 0.0 for name in SUB_SCORE_FIELDS}
    mode = request.visualization_mode or ""

    if request.repository_id:
        if get_repository(conn, request.repository_id) is None:
            raise ValidationFailure(f"Repository not found: {request.repository_id!r}")
        with _write_lock:
            visualization = insert_visualization(
                conn, request.user_id, request.repository_id, repo_score, mode, **scores
            )
    else:
        _, visualization = _upsert_then_insert(
            conn, request.user_id, _record_from_request(request), repo_score, mode, scores
        )

    logger.info(
        "recorded %s visualization %s for user %s",
        mode, visualization.id, request.user_id,
    )
    return visualization


def record_scored_visualization(
    conn: sqlite3.Connection,
    user_id: str,
    raw: RawRepository,
    components: ScoreComponents,
    metadata: ScoringMetadata,
    visualization_mode: str = "brain",
) -> tuple[Repository, UserVisualization]:
    """Upsert a freshly scored repository and append the user's event.

    Raises:
        ValidationFailure: Empty user id or unknown mode.
        UpsertConflictFailure: The repository upsert failed; nothing is written.
    """
    if not user_id:
        raise ValidationFailure("user_id is required")
    if visualization_mode not in VISUALIZATION_MODES:
        raise ValidationFailure(
            f"visualization_mode must be one of {', '.join(VISUALIZATION_MODES)}"
        )
    return _upsert_then_insert(
        conn,
        user_id,
        repository_record(raw, components, metadata),
        components.final_score,
        visualization_mode,
        components.sub_scores(),
    )


def get_leaderboard(conn: sqlite3.Connection, limit: int = 50, offset: int = 0) -> LeaderboardPage:
    """Ranked page of repositories, best composite score first.

    Ranks are 1-based over the top ``limit + offset`` rows; the page is the
    slice ``[offset, offset + limit)`` of that window.
    """
    limit = _clamp_limit(limit)
    if offset < 0:
        raise ValidationFailure("offset must not be negative")
    window = list_top_repositories(conn, limit + offset)
    entries = [
        RankedRepository(rank=offset + i + 1, repository=repo)
        for i, repo in enumerate(window[offset:offset + limit])
    ]
    return LeaderboardPage(limit=limit, offset=offset, total=len(window), entries=entries)


def get_user_history(
    conn: sqlite3.Connection,
    user_id: str,
    limit: int = 20,
) -> list[tuple[UserVisualization, Repository]]:
    """The user's most recent visualizations joined with their repositories."""
    if not user_id:
        raise ValidationFailure("user_id is required")
    return list_user_visualizations(conn, user_id, _clamp_limit(limit))

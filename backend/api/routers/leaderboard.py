"""Leaderboard endpoints.

Routes
------
GET  /leaderboard                        Ranked repositories (?limit=&offset=)
POST /leaderboard                        Record a visualization (requires X-User-Id)
GET  /leaderboard/user                   Caller's visualization history (?limit=)
GET  /leaderboard/search                 Search stored repositories (?q=&limit=)
GET  /leaderboard/repos/{owner}/{name}   One repository plus its visualization count
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.api.deps import require_user_id
from backend.config import settings
from backend.db.repositories import get_repository_with_stats, search_repositories
from backend.errors import UpsertConflictFailure, ValidationFailure
from backend.leaderboard import (
    VisualizationRequest,
    get_leaderboard,
    get_user_history,
    record_visualization,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class VisualizationCreate(BaseModel):
    visualization_mode: Optional[str] = None
    repo_score: Any = None
    repository_id: Optional[str] = None
    full_name: Optional[str] = None
    github_repo_id: Optional[int] = None
    owner: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    stars: Optional[int] = None
    forks: Optional[int] = None
    watchers: Optional[int] = None
    complexity_score: Optional[float] = None
    activity_score: Optional[float] = None
    social_score: Optional[float] = None
    health_score: Optional[float] = None
    branches_count: Optional[int] = None
    commits_count: Optional[int] = None
    contributors_count: Optional[int] = None
    recent_commits_7d: Optional[int] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("")
def leaderboard_endpoint(request: Request, limit: int = 50, offset: int = 0) -> Any:
    """Top repositories by composite score, with 1-based ranks."""
    conn = request.app.state.db
    try:
        page = get_leaderboard(conn, limit=limit, offset=offset)
    except ValidationFailure as exc:
        return _failure(400, str(exc))
    return {
        "success": True,
        "data": [entry.to_dict() for entry in page.entries],
        "total": page.total,
        "limit": page.limit,
        "offset": page.offset,
    }


@router.post("")
def record_endpoint(
    body: VisualizationCreate,
    request: Request,
    user_id: str = Depends(require_user_id),
) -> Any:
    """Record a visualization, upserting the repository first when needed."""
    conn = request.app.state.db
    try:
        visualization = record_visualization(
            conn, VisualizationRequest(user_id=user_id, **body.model_dump())
        )
    except ValidationFailure as exc:
        return _failure(400, str(exc))
    except UpsertConflictFailure:
        return _failure(500, "Failed to record visualization")
    return {"success": True, "data": visualization.to_dict()}


@router.get("/user")
def history_endpoint(
    request: Request,
    limit: int = 20,
    user_id: str = Depends(require_user_id),
) -> Any:
    """The caller's visualizations, newest first, each with its repository."""
    conn = request.app.state.db
    try:
        history = get_user_history(conn, user_id, limit=limit)
    except ValidationFailure as exc:
        return _failure(400, str(exc))
    data = []
    for visualization, repository in history:
        row = visualization.to_dict()
        row["repository"] = repository.to_dict()
        data.append(row)
    return {"success": True, "data": data, "count": len(data)}


@router.get("/search")
def search_endpoint(request: Request, q: str, limit: int = 20) -> Any:
    """Stored repositories whose owner or name contains *q*."""
    conn = request.app.state.db
    if limit < 1:
        return _failure(400, "limit must be at least 1")
    repos = search_repositories(conn, q, limit=min(limit, settings.leaderboard_max_limit))
    return {"success": True, "data": [r.to_dict() for r in repos], "count": len(repos)}


@router.get("/repos/{owner}/{name}")
def repository_endpoint(owner: str, name: str, request: Request) -> Any:
    """A stored repository with its visualization count."""
    conn = request.app.state.db
    data = get_repository_with_stats(conn, f"{owner}/{name}")
    if data is None:
        raise HTTPException(status_code=404, detail=f"Repository not found: {owner}/{name}")
    return {"success": True, "data": data}

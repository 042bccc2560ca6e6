"""Repository processing endpoint.

Routes
------
GET /github/process?repo=<url>&mode=brain|tree
    Fetch, transform and score a repository.  Always returns a renderable
    graph; ``fallback`` is true when the fetch failed or the repository has
    no branches.  When ``X-User-Id`` is present the visualization is also
    recorded on the leaderboard.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from backend.api.deps import optional_user_id
from backend.errors import InvalidRepositoryUrl, UpsertConflictFailure
from backend.pipeline import process_repository

router = APIRouter()


@router.get("/process", response_model=dict[str, Any])
def process_endpoint(
    request: Request,
    repo: str,
    mode: Literal["brain", "tree"] = "brain",
    user_id: Optional[str] = Depends(optional_user_id),
) -> dict[str, Any]:
    """Return ``{graph, score, scoring_metadata, fallback, ...}`` for *repo*."""
    conn = request.app.state.db
    try:
        result = process_repository(
            repo, conn=conn, user_id=user_id, visualization_mode=mode
        )
    except InvalidRepositoryUrl as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UpsertConflictFailure as exc:
        raise HTTPException(status_code=500, detail="Failed to record visualization") from exc
    return result.to_dict()

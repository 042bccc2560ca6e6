"""Caption endpoint.

Routes
------
POST /ai/caption    Body: {"repoData": <graph>}  → {"caption": "...", "fallback": bool}
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from backend.caption import caption_or_fallback

router = APIRouter()


class CaptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo_data: Optional[dict[str, Any]] = Field(default=None, alias="repoData")


@router.post("/caption")
def caption_endpoint(body: CaptionRequest) -> dict[str, Any]:
    """Generate a ≤100 character caption from the graph's metadata block."""
    if not body.repo_data:
        raise HTTPException(status_code=400, detail="Repository data is required")
    caption, fallback = caption_or_fallback(body.repo_data.get("metadata") or {})
    return {"caption": caption, "fallback": fallback}

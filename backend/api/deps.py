"""Shared request dependencies.

Authentication is handled upstream; the authenticated user's id arrives in
the ``X-User-Id`` header.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException


def optional_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Return the caller's user id, or ``None`` for anonymous requests."""
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


def require_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Return the caller's user id or reject the request with 401."""
    user_id = optional_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id

"""Operations on the append-only ``user_visualizations`` table."""

from __future__ import annotations

import sqlite3
import uuid
from time import time
from typing import Optional

from backend.db.models import Repository, UserVisualization
from backend.db.repositories import REPOSITORY_COLUMNS, _row_to_repository


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_visualization(row: sqlite3.Row) -> UserVisualization:
    return UserVisualization(
        id=row["id"],
        user_id=row["user_id"],
        repository_id=row["repository_id"],
        repo_score=row["repo_score"],
        complexity_score=row["complexity_score"],
        activity_score=row["activity_score"],
        social_score=row["social_score"],
        health_score=row["health_score"],
        visualization_mode=row["visualization_mode"],
        created_at=row["created_at"],
    )


_JOINED_REPO_COLUMNS = ", ".join(f"r.{c} AS repo_{c}" for c in REPOSITORY_COLUMNS)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def insert_visualization(
    conn: sqlite3.Connection,
    user_id: str,
    repository_id: str,
    repo_score: int,
    visualization_mode: Optional[str],
    complexity_score: Optional[float] = None,
    activity_score: Optional[float] = None,
    social_score: Optional[float] = None,
    health_score: Optional[float] = None,
    *,
    commit: bool = True,
) -> UserVisualization:
    """Append one visualization event and return it.

    The scores are a snapshot as observed at this event; the row is never
    updated afterwards (the schema rejects UPDATE and DELETE).

    Raises:
        sqlite3.IntegrityError: If *repository_id* does not exist.
    """
    vid = str(uuid.uuid4())
    params = (
        vid, user_id, repository_id, repo_score,
        complexity_score, activity_score, social_score, health_score,
        visualization_mode, int(time()),
    )
    sql = """
        INSERT INTO user_visualizations (
            id, user_id, repository_id, repo_score,
            complexity_score, activity_score, social_score, health_score,
            visualization_mode, created_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """
    if commit:
        with conn:
            conn.execute(sql, params)
    else:
        conn.execute(sql, params)
    return get_visualization(conn, vid)  # type: ignore[return-value]


def get_visualization(conn: sqlite3.Connection, visualization_id: str) -> Optional[UserVisualization]:
    row = conn.execute(
        "SELECT * FROM user_visualizations WHERE id = ?", (visualization_id,)
    ).fetchone()
    return _row_to_visualization(row) if row else None


def list_user_visualizations(
    conn: sqlite3.Connection,
    user_id: str,
    limit: int = 20,
) -> list[tuple[UserVisualization, Repository]]:
    """Return *user_id*'s visualizations, newest first, each with its repository."""
    rows = conn.execute(
        f"""
        SELECT v.*, {_JOINED_REPO_COLUMNS}
        FROM   user_visualizations v
        JOIN   repositories r ON r.id = v.repository_id
        WHERE  v.user_id = ?
        ORDER BY v.created_at DESC, v.rowid DESC
        LIMIT ?
        """,  # noqa: S608
        (user_id, limit),
    ).fetchall()
    return [(_row_to_visualization(r), _row_to_repository(r, prefix="repo_")) for r in rows]


def count_visualizations(conn: sqlite3.Connection, repository_id: str) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM user_visualizations WHERE repository_id = ?",
        (repository_id,),
    ).fetchone()
    return row[0] if row else 0

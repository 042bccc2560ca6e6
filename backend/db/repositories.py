"""Operations on the ``repositories`` table.

``full_name`` is the natural key: :func:`upsert_repository` relies on the
UNIQUE constraint and SQLite's ``ON CONFLICT … DO UPDATE`` so two concurrent
writers for the same new repository can never create two rows.
"""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import astuple, fields
from time import time
from typing import Any, Optional

from backend.db.models import Repository, RepositoryUpsert

REPOSITORY_COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(Repository))
_UPSERT_COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(RepositoryUpsert))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_repository(row: sqlite3.Row, prefix: str = "") -> Repository:
    return Repository(**{col: row[prefix + col] for col in REPOSITORY_COLUMNS})


def _upsert_sql() -> str:
    insert_cols = ("id",) + _UPSERT_COLUMNS + ("created_at", "updated_at", "last_scored_at")
    placeholders = ", ".join("?" for _ in insert_cols)
    updates = [
        f"{col} = excluded.{col}"
        for col in _UPSERT_COLUMNS
        if col not in ("full_name", "github_repo_id")
    ]
    updates.append("github_repo_id = COALESCE(excluded.github_repo_id, repositories.github_repo_id)")
    updates.append("updated_at = excluded.updated_at")
    updates.append("last_scored_at = excluded.last_scored_at")
    return (
        f"INSERT INTO repositories ({', '.join(insert_cols)}) "
        f"VALUES ({placeholders}) "
        f"ON CONFLICT(full_name) DO UPDATE SET {', '.join(updates)}"
    )


_UPSERT_SQL = _upsert_sql()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def upsert_repository(
    conn: sqlite3.Connection,
    record: RepositoryUpsert,
    *,
    commit: bool = True,
) -> Repository:
    """Insert *record* or refresh the existing row with the same ``full_name``.

    ``id`` and ``created_at`` are preserved on conflict; everything else,
    including the scores, is overwritten with the new values.

    Args:
        conn: Open DB connection.
        record: Column values to write.
        commit: When ``False`` the statement joins the caller's open
            transaction instead of committing on its own.

    Returns:
        The stored :class:`~backend.db.models.Repository`.

    Raises:
        sqlite3.Error: If the write is rejected.
    """
    now = int(time())
    params = (str(uuid.uuid4()),) + astuple(record) + (now, now, now)
    if commit:
        with conn:
            conn.execute(_UPSERT_SQL, params)
    else:
        conn.execute(_UPSERT_SQL, params)
    return get_repository_by_full_name(conn, record.full_name)  # type: ignore[return-value]


def get_repository(conn: sqlite3.Connection, repository_id: str) -> Optional[Repository]:
    """Fetch a repository by its generated id.  Returns ``None`` if not found."""
    row = conn.execute(
        "SELECT * FROM repositories WHERE id = ?", (repository_id,)
    ).fetchone()
    return _row_to_repository(row) if row else None


def get_repository_by_full_name(conn: sqlite3.Connection, full_name: str) -> Optional[Repository]:
    """Fetch a repository by ``owner/name``.  Returns ``None`` if not found."""
    row = conn.execute(
        "SELECT * FROM repositories WHERE full_name = ?", (full_name,)
    ).fetchone()
    return _row_to_repository(row) if row else None


def list_top_repositories(conn: sqlite3.Connection, limit: int = 50) -> list[Repository]:
    """Return the *limit* highest-scoring repositories.

    Ties are broken by stars, then alphabetically, so ranks are stable.
    """
    rows = conn.execute(
        """
        SELECT * FROM repositories
        ORDER BY score DESC, stars DESC, full_name ASC
        LIMIT ?
        """,
        (limit,),
    ).fetchall()
    return [_row_to_repository(r) for r in rows]


def search_repositories(conn: sqlite3.Connection, query: str, limit: int = 20) -> list[Repository]:
    """Case-insensitive substring match on owner or name, best score first."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    rows = conn.execute(
        """
        SELECT * FROM repositories
        WHERE owner LIKE ? ESCAPE '\\' OR name LIKE ? ESCAPE '\\'
        ORDER BY score DESC, full_name ASC
        LIMIT ?
        """,
        (pattern, pattern, limit),
    ).fetchall()
    return [_row_to_repository(r) for r in rows]


def get_repository_with_stats(conn: sqlite3.Connection, full_name: str) -> Optional[dict[str, Any]]:
    """Return the repository as a dict plus its ``visualization_count``."""
    row = conn.execute(
        """
        SELECT r.*, COUNT(v.id) AS visualization_count
        FROM   repositories r
        LEFT JOIN user_visualizations v ON v.repository_id = r.id
        WHERE  r.full_name = ?
        GROUP BY r.id
        """,
        (full_name,),
    ).fetchone()
    if row is None:
        return None
    data = _row_to_repository(row).to_dict()
    data["visualization_count"] = row["visualization_count"]
    return data

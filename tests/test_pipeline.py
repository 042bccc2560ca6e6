"""Tests for the visualization pipeline's failure policy.

``fetch_repository`` is patched where the pipeline imports it, so no network
calls are made.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from backend.db.connection import get_connection
from backend.db.migrations import init_db
from backend.errors import FetchFailure, InvalidRepositoryUrl, UpsertConflictFailure
from backend.github.models import Branch, Commit, RawRepository
from backend.graph.transformer import FALLBACK_BRANCH_ID
from backend.pipeline import process_repository

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _raw(branches: list[str] | None = None) -> RawRepository:
    names = ["main", "dev"] if branches is None else branches
    return RawRepository(
        name="demo",
        full_name="octo/demo",
        default_branch="main",
        created_at=NOW - timedelta(days=100),
        updated_at=NOW,
        stars=3,
        branches=[Branch(n, "sha") for n in names],
        commits=[Commit("abc1234", "dev: first", "Alice", NOW - timedelta(days=2), "alice")],
    )


@pytest.fixture()
def conn():
    c = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(c)
    yield c
    c.close()


@pytest.fixture()
def fetched(monkeypatch):
    calls = []

    def fake_fetch(owner, name):
        calls.append((owner, name))
        return _raw()

    monkeypatch.setattr("backend.pipeline.fetch_repository", fake_fetch)
    return calls


class TestProcessRepository:
    def test_success(self, fetched):
        result = process_repository("https://github.com/octo/demo", now=NOW)
        assert fetched == [("octo", "demo")]
        assert result.fallback is False
        assert result.error is None
        assert {n.id for n in result.graph.nodes} >= {"main", "dev", "commit-abc1234"}
        assert result.components is not None
        assert result.tier in {"S", "A", "B", "C", "D"}
        assert result.repository is None

    def test_to_dict_shape(self, fetched):
        data = process_repository("octo/demo", now=NOW).to_dict()
        assert set(data) == {
            "graph", "score", "scoring_metadata", "fallback", "error",
            "repository_id", "visualization_id",
        }
        assert data["score"]["tier"]
        assert data["score"]["color"].startswith("from-")
        assert data["scoring_metadata"]["branches_count"] == 2
        assert data["graph"]["metadata"]["repoName"] == "octo/demo"

    def test_fetch_failure_uses_fallback_without_score(self, monkeypatch):
        def boom(owner, name):
            raise FetchFailure("GitHub returned HTTP 404 for octo/demo")

        monkeypatch.setattr("backend.pipeline.fetch_repository", boom)
        result = process_repository("octo/demo", now=NOW)
        assert result.fallback is True
        assert "404" in result.error
        assert result.components is None
        assert result.to_dict()["score"] is None
        assert [n.id for n in result.graph.nodes] == ["main", FALLBACK_BRANCH_ID]

    def test_fetch_failure_never_records(self, monkeypatch, conn):
        def down(owner, name):
            raise FetchFailure("down")

        monkeypatch.setattr("backend.pipeline.fetch_repository", down)
        process_repository("octo/demo", conn=conn, user_id="u1", now=NOW)
        assert conn.execute("SELECT COUNT(*) FROM repositories").fetchone()[0] == 0

    def test_empty_repository_uses_fallback(self, monkeypatch):
        monkeypatch.setattr("backend.pipeline.fetch_repository", lambda owner, name: _raw([]))
        result = process_repository("octo/demo", now=NOW)
        assert result.fallback is True
        assert result.graph.nodes[1].id == FALLBACK_BRANCH_ID
        assert result.components is not None

    def test_invalid_url(self, fetched):
        with pytest.raises(InvalidRepositoryUrl):
            process_repository("not a repo")
        assert fetched == []

    def test_records_when_user_given(self, fetched, conn):
        result = process_repository("octo/demo", conn=conn, user_id="u1", visualization_mode="tree", now=NOW)
        assert result.repository is not None
        assert result.visualization is not None
        assert result.visualization.visualization_mode == "tree"
        assert result.visualization.repo_score == result.components.final_score
        data = result.to_dict()
        assert data["repository_id"] == result.repository.id

    def test_anonymous_does_not_record(self, fetched, conn):
        process_repository("octo/demo", conn=conn, now=NOW)
        assert conn.execute("SELECT COUNT(*) FROM repositories").fetchone()[0] == 0

    def test_upsert_failure_propagates(self, fetched, conn):
        conn.executescript(
            "CREATE TRIGGER block BEFORE INSERT ON repositories "
            "BEGIN SELECT RAISE(ABORT, 'read-only'); END;"
        )
        with pytest.raises(UpsertConflictFailure):
            process_repository("octo/demo", conn=conn, user_id="u1", now=NOW)
        assert conn.execute("SELECT COUNT(*) FROM user_visualizations").fetchone()[0] == 0

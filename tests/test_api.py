"""Tests for the HTTP API.

All tests use an in-memory SQLite database via the FastAPI TestClient.
No network or OpenAI/Ollama calls are made: the GitHub fetcher and the
caption LLM are patched.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from backend.api.app import create_app
from backend.caption import FALLBACK_CAPTION
from backend.db.connection import get_connection
from backend.db.migrations import init_db
from backend.errors import FetchFailure
from backend.github.models import Branch, Commit, RawRepository

NOW = datetime.now(timezone.utc)
USER = {"X-User-Id": "user-1"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def client(tmp_path, monkeypatch):
    """Return a TestClient backed by an isolated in-memory DB.

    The lifespan opens its own connection under ``tmp_path``; it is replaced
    with a fresh in-memory connection so each test is fully isolated.
    """
    monkeypatch.setattr("backend.config.settings.workspace_dir", tmp_path)
    conn = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(conn)
    app = create_app()

    with TestClient(app, raise_server_exceptions=True) as c:
        c.app.state.db = conn
        yield c

    conn.close()


@pytest.fixture()
def github(monkeypatch):
    raw = RawRepository(
        name="demo",
        full_name="octo/demo",
        default_branch="main",
        created_at=NOW - timedelta(days=100),
        updated_at=NOW,
        language="Python",
        stars=40,
        forks=5,
        branches=[Branch("main", "a"), Branch("dev", "b")],
        commits=[Commit("abcdef0", "dev: work", "Alice", NOW - timedelta(hours=3), "alice")],
    )
    monkeypatch.setattr("backend.pipeline.fetch_repository", lambda owner, name: raw)
    return raw


def _payload(**overrides) -> dict:
    body = {
        "visualization_mode": "brain",
        "repo_score": 66,
        "full_name": "octo/demo",
        "stars": 12,
        "complexity_score": 40.0,
        "activity_score": 50.0,
        "social_score": 60.0,
        "health_score": 70.0,
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# /github/process
# ---------------------------------------------------------------------------

class TestProcess:
    def test_anonymous(self, client, github):
        resp = client.get("/github/process", params={"repo": "https://github.com/octo/demo"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["fallback"] is False
        assert data["graph"]["metadata"]["repoName"] == "octo/demo"
        assert data["score"]["final_score"] >= 0
        assert data["visualization_id"] is None

    def test_records_for_user(self, client, github):
        resp = client.get("/github/process", params={"repo": "octo/demo", "mode": "tree"}, headers=USER)
        data = resp.json()
        assert data["visualization_id"]
        board = client.get("/leaderboard").json()
        assert board["data"][0]["full_name"] == "octo/demo"
        assert board["data"][0]["score"] == data["score"]["final_score"]

    def test_fetch_failure_returns_fallback(self, client, monkeypatch):
        def down(owner, name):
            raise FetchFailure("GitHub returned HTTP 404 for octo/gone")

        monkeypatch.setattr("backend.pipeline.fetch_repository", down)
        resp = client.get("/github/process", params={"repo": "octo/gone"}, headers=USER)
        assert resp.status_code == 200
        data = resp.json()
        assert data["fallback"] is True
        assert data["score"] is None
        assert len(data["graph"]["nodes"]) == 2
        assert client.get("/leaderboard").json()["data"] == []

    def test_invalid_url(self, client):
        resp = client.get("/github/process", params={"repo": "not a repo"})
        assert resp.status_code == 400

    def test_invalid_mode(self, client, github):
        resp = client.get("/github/process", params={"repo": "octo/demo", "mode": "3d"})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# /leaderboard
# ---------------------------------------------------------------------------

class TestLeaderboard:
    def test_empty(self, client):
        resp = client.get("/leaderboard")
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "data": [], "total": 0, "limit": 50, "offset": 0}

    def test_record_requires_user(self, client):
        resp = client.post("/leaderboard", json=_payload())
        assert resp.status_code == 401

    def test_record_and_rank(self, client):
        client.post("/leaderboard", json=_payload(full_name="a/low", repo_score=20), headers=USER)
        resp = client.post("/leaderboard", json=_payload(full_name="a/high", repo_score=90), headers=USER)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["repo_score"] == 90

        board = client.get("/leaderboard", params={"limit": 1, "offset": 1}).json()
        assert [(r["rank"], r["full_name"]) for r in board["data"]] == [(2, "a/low")]
        assert board["limit"] == 1
        assert board["offset"] == 1

    def test_record_missing_fields(self, client):
        resp = client.post("/leaderboard", json={"full_name": "octo/demo"}, headers=USER)
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert "Missing required fields" in resp.json()["error"]

    def test_record_bad_score(self, client):
        resp = client.post("/leaderboard", json=_payload(repo_score="lots"), headers=USER)
        assert resp.status_code == 400

    def test_record_null_counts(self, client):
        body = _payload(stars=None, forks=None, branches_count=None, commits_count=None)
        resp = client.post("/leaderboard", json=body, headers=USER)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        detail = client.get("/leaderboard/repos/octo/demo").json()["data"]
        assert detail["stars"] == 0
        assert detail["branches_count"] == 0

    def test_record_unknown_mode(self, client):
        resp = client.post("/leaderboard", json=_payload(visualization_mode="3d"), headers=USER)
        assert resp.status_code == 400

    def test_record_upsert_failure(self, client):
        client.app.state.db.executescript(
            "CREATE TRIGGER block BEFORE INSERT ON repositories "
            "BEGIN SELECT RAISE(ABORT, 'read-only'); END;"
        )
        resp = client.post("/leaderboard", json=_payload(), headers=USER)
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Failed to record visualization"}

    def test_invalid_limit(self, client):
        assert client.get("/leaderboard", params={"limit": 0}).status_code == 400

    def test_user_history(self, client):
        client.post("/leaderboard", json=_payload(full_name="o/a"), headers=USER)
        client.post("/leaderboard", json=_payload(full_name="o/b"), headers=USER)
        client.post("/leaderboard", json=_payload(full_name="o/c"), headers={"X-User-Id": "someone"})

        resp = client.get("/leaderboard/user", headers=USER)
        body = resp.json()
        assert body["count"] == 2
        assert [row["repository"]["full_name"] for row in body["data"]] == ["o/b", "o/a"]

    def test_user_history_requires_user(self, client):
        assert client.get("/leaderboard/user").status_code == 401

    def test_search(self, client):
        client.post("/leaderboard", json=_payload(full_name="torvalds/linux"), headers=USER)
        client.post("/leaderboard", json=_payload(full_name="octo/demo"), headers=USER)
        body = client.get("/leaderboard/search", params={"q": "linux"}).json()
        assert [r["full_name"] for r in body["data"]] == ["torvalds/linux"]

    def test_search_limit_capped(self, client, monkeypatch):
        monkeypatch.setattr("backend.config.settings.leaderboard_max_limit", 1)
        client.post("/leaderboard", json=_payload(full_name="octo/one"), headers=USER)
        client.post("/leaderboard", json=_payload(full_name="octo/two"), headers=USER)
        body = client.get("/leaderboard/search", params={"q": "octo", "limit": 50}).json()
        assert body["count"] == 1

    def test_repository_detail(self, client):
        client.post("/leaderboard", json=_payload(), headers=USER)
        client.post("/leaderboard", json=_payload(), headers={"X-User-Id": "u2"})
        resp = client.get("/leaderboard/repos/octo/demo")
        assert resp.status_code == 200
        assert resp.json()["data"]["visualization_count"] == 2

    def test_repository_detail_missing(self, client):
        assert client.get("/leaderboard/repos/octo/none").status_code == 404


# ---------------------------------------------------------------------------
# /ai/caption
# ---------------------------------------------------------------------------

class TestCaption:
    def test_caption(self, client):
        llm = MagicMock()
        llm.invoke.return_value = MagicMock(content="Watching octo/demo come alive! 🧠")
        with patch("backend.caption._get_llm", return_value=llm):
            resp = client.post("/ai/caption", json={"repoData": {"metadata": {"repoName": "octo/demo"}}})
        assert resp.status_code == 200
        assert resp.json() == {"caption": "Watching octo/demo come alive! 🧠", "fallback": False}

    def test_caption_fallback(self, client):
        with patch("backend.caption._get_llm", side_effect=RuntimeError("no key")):
            resp = client.post("/ai/caption", json={"repoData": {"metadata": {}}})
        assert resp.json() == {"caption": FALLBACK_CAPTION, "fallback": True}

    def test_caption_requires_repo_data(self, client):
        assert client.post("/ai/caption", json={}).status_code == 400

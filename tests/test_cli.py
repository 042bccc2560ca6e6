"""Tests for the gitneuron CLI."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from backend.db import get_connection, init_db
from backend.errors import FetchFailure
from backend.github.models import Branch, Commit, RawRepository
from backend.leaderboard import VisualizationRequest, record_visualization
from cli.main import app

runner = CliRunner()
NOW = datetime.now(timezone.utc)


@pytest.fixture(autouse=True)
def no_log_handlers(monkeypatch):
    """Keep log handlers off CliRunner's short-lived output streams."""
    monkeypatch.setattr("cli.main.configure_logging", lambda level=None: None)


@pytest.fixture
def clean_db(tmp_path, monkeypatch):
    """Point the workspace (and so the DB) at a temp directory."""
    monkeypatch.setattr("backend.config.settings.workspace_dir", tmp_path)
    return tmp_path / "leaderboard.db"


@pytest.fixture
def github(monkeypatch):
    raw = RawRepository(
        name="demo",
        full_name="octo/demo",
        default_branch="main",
        created_at=NOW - timedelta(days=30),
        updated_at=NOW,
        stars=8,
        branches=[Branch("main", "a"), Branch("feature-ui", "b")],
        commits=[
            Commit("1111111", "feature-ui: buttons", "Alice", NOW - timedelta(hours=1), "alice"),
            Commit("2222222", "init", "Bob", NOW - timedelta(days=3)),
        ],
    )
    monkeypatch.setattr("backend.pipeline.fetch_repository", lambda owner, name: raw)
    return raw


def _seed(user: str, full_name: str, score: float) -> None:
    conn = get_connection()
    init_db(conn)
    record_visualization(
        conn,
        VisualizationRequest(user_id=user, visualization_mode="brain", repo_score=score, full_name=full_name),
    )
    conn.close()


def test_db_init(clean_db):
    result = runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0
    assert "Database ready" in result.stdout
    assert clean_db.exists()


class TestVisualize:
    def test_tree_and_score(self, clean_db, github):
        result = runner.invoke(app, ["visualize", "https://github.com/octo/demo"])
        assert result.exit_code == 0
        assert "🧠 main" in result.stdout
        assert "feature-ui" in result.stdout
        assert "Score" in result.stdout
        assert not clean_db.exists()

    def test_json(self, clean_db, github):
        result = runner.invoke(app, ["visualize", "octo/demo", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["graph"]["metadata"]["repoName"] == "octo/demo"
        assert data["fallback"] is False

    def test_records_for_user(self, clean_db, github):
        result = runner.invoke(app, ["visualize", "octo/demo", "--user", "u1", "--mode", "tree"])
        assert result.exit_code == 0
        assert "Recorded visualization" in result.stdout

        history = runner.invoke(app, ["history", "--user", "u1"])
        assert "[tree]" in history.stdout
        assert "octo/demo" in history.stdout

    def test_fallback(self, clean_db, monkeypatch):
        def down(owner, name):
            raise FetchFailure("offline")

        monkeypatch.setattr("backend.pipeline.fetch_repository", down)
        result = runner.invoke(app, ["visualize", "octo/demo"])
        assert result.exit_code == 0
        assert "fallback graph" in result.stdout
        assert "Score" not in result.stdout

    def test_invalid_url(self, clean_db):
        result = runner.invoke(app, ["visualize", "nope"])
        assert result.exit_code == 1


class TestScore:
    def test_score(self, clean_db, github):
        result = runner.invoke(app, ["score", "octo/demo"])
        assert result.exit_code == 0
        assert "/100" in result.stdout
        assert "Contributors 2" in result.stdout

    def test_score_unavailable(self, clean_db, monkeypatch):
        def down(owner, name):
            raise FetchFailure("offline")

        monkeypatch.setattr("backend.pipeline.fetch_repository", down)
        result = runner.invoke(app, ["score", "octo/demo"])
        assert result.exit_code == 1


class TestLeaderboard:
    def test_empty(self, clean_db):
        result = runner.invoke(app, ["leaderboard"])
        assert result.exit_code == 0
        assert "No repositories" in result.stdout

    def test_ranked(self, clean_db):
        _seed("u1", "o/low", 20)
        _seed("u1", "o/high", 90)
        result = runner.invoke(app, ["leaderboard", "--limit", "1", "--offset", "1"])
        assert result.exit_code == 0
        assert "#2" in result.stdout
        assert "o/low" in result.stdout
        assert "o/high" not in result.stdout

    def test_invalid_limit(self, clean_db):
        result = runner.invoke(app, ["leaderboard", "--limit", "0"])
        assert result.exit_code == 1


class TestHistory:
    def test_empty(self, clean_db):
        result = runner.invoke(app, ["history", "--user", "nobody"])
        assert result.exit_code == 0
        assert "No visualizations" in result.stdout


def test_caption(clean_db, github):
    llm = MagicMock()
    llm.invoke.return_value = MagicMock(content="octo/demo neurons firing 🧠")
    with patch("backend.caption._get_llm", return_value=llm):
        result = runner.invoke(app, ["caption", "octo/demo"])
    assert result.exit_code == 0
    assert "octo/demo neurons firing" in result.stdout
    prompt = llm.invoke.call_args[0][0]
    assert "Repository: octo/demo" in prompt

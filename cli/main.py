"""GitNeuron CLI — entry-point for all backend operations.

Usage:
    python cli/main.py --help

Command groups:
    db           → database setup
    visualize    → fetch, transform, score (and optionally record)
    score        → score only
    leaderboard  → ranked repositories
    history      → a user's visualizations
    caption      → LLM caption for a repository graph
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from backend.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import Optional

import typer

from backend.caption import caption_or_fallback
from backend.config import settings
from backend.db import get_connection, init_db
from backend.errors import GitNeuronError, ValidationFailure
from backend.leaderboard import get_leaderboard, get_user_history
from backend.logging_setup import configure_logging
from backend.pipeline import process_repository

from cli.rendering import render_score, render_tree

app = typer.Typer(
    name="gitneuron",
    help="GitNeuron backend CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    configure_logging("DEBUG" if verbose else None)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Visualization commands
# ---------------------------------------------------------------------------
@app.command("visualize")
def visualize(
    url: str = typer.Argument(..., help="GitHub URL or owner/name."),
    mode: str = typer.Option("brain", "--mode", help="Visualization mode: brain | tree."),
    user: Optional[str] = typer.Option(None, "--user", help="Record the visualization for this user id."),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
) -> None:
    """Fetch a repository, print its graph and score, optionally record it."""
    conn = None
    if user:
        conn = get_connection()
        init_db(conn)
    try:
        result = process_repository(url, conn=conn, user_id=user, visualization_mode=mode)
    except GitNeuronError as exc:
        typer.echo(f"[visualize] Error: {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        if conn is not None:
            conn.close()

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    if result.fallback:
        typer.echo(f"[visualize] Using fallback graph: {result.error}")
    typer.echo(render_tree(result.graph))
    if result.components is not None and result.metadata is not None:
        typer.echo("")
        typer.echo(render_score(result.components, result.metadata))
    if result.visualization is not None:
        typer.echo(f"[visualize] Recorded visualization {result.visualization.id}")


@app.command("score")
def score_cmd(
    url: str = typer.Argument(..., help="GitHub URL or owner/name."),
) -> None:
    """Print the score breakdown for a repository."""
    try:
        result = process_repository(url)
    except GitNeuronError as exc:
        typer.echo(f"[score] Error: {exc}", err=True)
        raise typer.Exit(code=1)
    if result.components is None or result.metadata is None:
        typer.echo(f"[score] Could not score {result.full_name}: {result.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"[score] {result.full_name}")
    typer.echo(render_score(result.components, result.metadata))


@app.command("caption")
def caption_cmd(
    url: str = typer.Argument(..., help="GitHub URL or owner/name."),
) -> None:
    """Generate a short social caption for a repository visualization."""
    try:
        result = process_repository(url)
    except GitNeuronError as exc:
        typer.echo(f"[caption] Error: {exc}", err=True)
        raise typer.Exit(code=1)
    caption, fallback = caption_or_fallback(result.graph.metadata.to_dict())
    if fallback:
        typer.echo("[caption] LLM unavailable, using default caption.", err=True)
    typer.echo(caption)


# ---------------------------------------------------------------------------
# Leaderboard commands
# ---------------------------------------------------------------------------
@app.command("leaderboard")
def leaderboard(
    limit: int = typer.Option(50, help="Number of repositories to show (max 100)."),
    offset: int = typer.Option(0, help="Number of top repositories to skip."),
) -> None:
    """Show the top repositories by composite score."""
    conn = get_connection()
    init_db(conn)
    try:
        page = get_leaderboard(conn, limit=limit, offset=offset)
    except ValidationFailure as exc:
        typer.echo(f"[leaderboard] Error: {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        conn.close()

    if not page.entries:
        typer.echo("[leaderboard] No repositories scored yet.")
        return
    for entry in page.entries:
        repo = entry.repository
        typer.echo(f"  #{entry.rank:<3} {repo.score:>3}  {repo.full_name}  ★{repo.stars}")


@app.command("history")
def history(
    user: str = typer.Option(..., "--user", help="User id."),
    limit: int = typer.Option(20, help="Number of visualizations to show."),
) -> None:
    """List a user's most recent visualizations."""
    conn = get_connection()
    init_db(conn)
    try:
        rows = get_user_history(conn, user, limit=limit)
    except ValidationFailure as exc:
        typer.echo(f"[history] Error: {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        conn.close()

    if not rows:
        typer.echo(f"[history] No visualizations for {user!r}.")
        return
    for visualization, repo in rows:
        typer.echo(
            f"  {visualization.id}  [{visualization.visualization_mode}]  "
            f"{repo.full_name}  {visualization.repo_score}"
        )


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()

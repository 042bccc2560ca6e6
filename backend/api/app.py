"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging, opens a single SQLite connection
(shared across all requests via ``request.app.state.db``) and initialises the
schema.  On shutdown it closes the connection cleanly.

Routers
-------
    /github        — fetch, transform and score a repository
    /leaderboard   — ranked repositories and per-user history
    /ai            — visualization captions
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.db import get_connection, init_db
from backend.logging_setup import configure_logging

from backend.api.routers import caption as caption_router
from backend.api.routers import github as github_router
from backend.api.routers import leaderboard as leaderboard_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    configure_logging()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="GitNeuron API",
        description=(
            "Turns a GitHub repository's branches and commits into a "
            "visualization graph and a 0–100 score, and keeps a leaderboard "
            "of scored repositories and per-user visualization history."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(github_router.router, prefix="/github", tags=["github"])
    app.include_router(leaderboard_router.router, prefix="/leaderboard", tags=["leaderboard"])
    app.include_router(caption_router.router, prefix="/ai", tags=["ai"])

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# Module-level instance used by uvicorn:
#   uvicorn backend.api.app:app --reload
app = create_app()

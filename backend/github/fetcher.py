"""GitHub REST fetcher.

Three calls per repository: the repository itself, its branches and the most
recent commits of the default branch.  Every transport, HTTP and decoding
problem is re-raised as :class:`~backend.errors.FetchFailure` so callers only
need to handle one exception type.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from backend.config import settings
from backend.errors import FetchFailure, InvalidRepositoryUrl
from backend.github.models import Branch, Commit, RawRepository

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(r"github\.com[/:]([^/\s]+)/([^/\s?#]+)", re.IGNORECASE)
_SLUG_PATTERN = re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)$")

_DEFAULT_HEADERS = {
    "Accept": "application/vnd.github+json",
    "User-Agent": "gitneuron/1.0",
    "X-GitHub-Api-Version": "2022-11-28",
}


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def parse_repo_url(value: str) -> tuple[str, str]:
    """Return ``(owner, name)`` for a GitHub URL or an ``owner/name`` slug.

    Raises:
        InvalidRepositoryUrl: If neither form matches.
    """
    value = (value or "").strip()
    match = _URL_PATTERN.search(value) or _SLUG_PATTERN.match(value)
    if not match:
        raise InvalidRepositoryUrl(f"Invalid GitHub repository URL: {value!r}")
    owner, name = match.group(1), match.group(2)
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not name:
        raise InvalidRepositoryUrl(f"Invalid GitHub repository URL: {value!r}")
    return owner, name


def _parse_timestamp(value: str | None) -> datetime:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime."""
    if not value:
        raise ValueError("missing timestamp")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _to_branch(data: dict[str, Any]) -> Branch:
    return Branch(
        name=data["name"],
        head_sha=(data.get("commit") or {}).get("sha", ""),
        protected=bool(data.get("protected", False)),
    )


def _to_commit(data: dict[str, Any]) -> Commit:
    detail = data["commit"]
    author = detail.get("author") or {}
    account = data.get("author") or {}
    return Commit(
        sha=data["sha"],
        message=detail.get("message") or "",
        author_name=author.get("name") or "",
        authored_at=_parse_timestamp(author.get("date")),
        author_login=account.get("login") or None,
    )


def _to_repository(
    info: dict[str, Any],
    branches: list[dict[str, Any]],
    commits: list[dict[str, Any]],
) -> RawRepository:
    return RawRepository(
        name=info["name"],
        full_name=info["full_name"],
        description=info.get("description"),
        language=info.get("language"),
        stars=int(info.get("stargazers_count") or 0),
        forks=int(info.get("forks_count") or 0),
        watchers=int(info.get("subscribers_count") or 0),
        github_id=info.get("id"),
        created_at=_parse_timestamp(info.get("created_at")),
        updated_at=_parse_timestamp(info.get("updated_at")),
        default_branch=info.get("default_branch") or "main",
        branches=[_to_branch(b) for b in branches],
        commits=[_to_commit(c) for c in commits],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _headers() -> dict[str, str]:
    headers = dict(_DEFAULT_HEADERS)
    if settings.github_token:
        headers["Authorization"] = f"Bearer {settings.github_token}"
    return headers


def fetch_repository(owner: str, name: str) -> RawRepository:
    """Fetch repository info, branches and recent commits.

    Args:
        owner: Repository owner (user or organisation).
        name: Repository name.

    Returns:
        A :class:`RawRepository` with at most ``settings.branch_fetch_limit``
        branches and ``settings.commit_fetch_limit`` commits.

    Raises:
        FetchFailure: On network errors, non-2xx responses or payloads that
            do not have the expected shape.
    """
    base = f"{settings.github_api_url.rstrip('/')}/repos/{owner}/{name}"
    try:
        with httpx.Client(
            headers=_headers(),
            timeout=settings.request_timeout,
            follow_redirects=True,
        ) as client:
            info_resp = client.get(base)
            info_resp.raise_for_status()
            info = info_resp.json()

            branches_resp = client.get(
                f"{base}/branches", params={"per_page": settings.branch_fetch_limit}
            )
            branches_resp.raise_for_status()

            commits_resp = client.get(
                f"{base}/commits",
                params={
                    "sha": info.get("default_branch") or "main",
                    "per_page": settings.commit_fetch_limit,
                },
            )
            # An empty repository answers 409 on the commits endpoint.
            if commits_resp.status_code == 409:
                commits = []
            else:
                commits_resp.raise_for_status()
                commits = commits_resp.json()

            repo = _to_repository(info, branches_resp.json(), commits)
    except httpx.HTTPStatusError as exc:
        logger.warning(
            "github fetch failed for %s/%s: HTTP %s",
            owner, name, exc.response.status_code,
        )
        raise FetchFailure(
            f"GitHub returned HTTP {exc.response.status_code} for {owner}/{name}"
        ) from exc
    except httpx.HTTPError as exc:
        logger.warning("github fetch failed for %s/%s: %s", owner, name, exc)
        raise FetchFailure(f"Could not reach GitHub for {owner}/{name}: {exc}") from exc
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("malformed github payload for %s/%s: %s", owner, name, exc)
        raise FetchFailure(f"Malformed GitHub response for {owner}/{name}: {exc}") from exc

    logger.info(
        "fetched %s: %d branches, %d commits",
        repo.full_name, len(repo.branches), len(repo.commits),
    )
    return repo

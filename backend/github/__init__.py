"""GitHub package — repository metadata fetch."""

from backend.github.fetcher import fetch_repository, parse_repo_url
from backend.github.models import Branch, Commit, RawRepository

__all__ = ["fetch_repository", "parse_repo_url", "Branch", "Commit", "RawRepository"]

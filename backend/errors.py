"""Exception taxonomy shared by the fetcher, transformer and leaderboard."""

from __future__ import annotations


class GitNeuronError(Exception):
    """Base class for every error raised by the backend."""


class FetchFailure(GitNeuronError):
    """The source-control host was unreachable or returned malformed data."""


class EmptyRepository(GitNeuronError):
    """The repository has no branches, so no root node can be built."""


class UpsertConflictFailure(GitNeuronError):
    """The repository upsert was rejected by the database."""


class ValidationFailure(GitNeuronError, ValueError):
    """Required fields are missing or malformed on a write request."""


class InvalidRepositoryUrl(ValidationFailure):
    """The input could not be parsed as ``owner/name`` or a GitHub URL."""

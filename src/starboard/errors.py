"""Exception hierarchy for Starboard.

Collaborators raise these; the refresh coordinator catches them at its
boundary and turns them into log entries and a ``RefreshReport``.
"""

from typing import Optional


class StarboardError(Exception):
    """Base exception for the entire application."""


# ── Directory fetch ─────────────────────────────────────────────────────────


class FetchError(StarboardError):
    """Fetching the repository directory or a repository detail failed."""


class TransportError(FetchError):
    """The request never produced a usable HTTP response (network, timeout, 4xx/5xx)."""


class DecodeError(FetchError):
    """The response arrived but its payload could not be decoded."""


# ── Live updates ────────────────────────────────────────────────────────────


class SubscriptionError(StarboardError):
    """The push source refused or failed to open a subscription."""

    def __init__(self, repository_id: int, reason: Optional[str] = None):
        self.repository_id = repository_id
        self.reason = reason
        message = f"Cannot subscribe to repository {repository_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# ── Lookups ─────────────────────────────────────────────────────────────────


class RepositoryNotFoundError(StarboardError):
    """The repository id is not part of the current directory."""

    def __init__(self, repository_id: int):
        self.repository_id = repository_id
        super().__init__(f"Repository {repository_id} is not in the current directory")

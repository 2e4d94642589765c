"""Repository and live star-count models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


def format_stars(count: int) -> str:
    """Format a star count with thousands separators."""
    return f"{count:,}"


@dataclass(frozen=True)
class RepositorySummary:
    """A repository as listed for an organisation.

    ``star_count`` is the baseline from the last full fetch. Live pushes
    override it without touching this object.
    """

    id: int
    name: str
    description: Optional[str] = None
    star_count: int = 0
    owner: Optional[str] = None
    html_url: Optional[str] = None

    def __post_init__(self) -> None:
        if self.star_count < 0:
            raise ValueError(f"star_count must be non-negative, got {self.star_count}")

    @property
    def full_name(self) -> str:
        """Return owner/name format, or just the name when the owner is unknown."""
        if self.owner:
            return f"{self.owner}/{self.name}"
        return self.name


@dataclass(frozen=True)
class RepositoryDetail:
    """Full repository information shown on the detail screen."""

    id: int
    name: str
    full_name: str
    description: Optional[str] = None
    star_count: int = 0
    forks_count: int = 0
    watchers_count: int = 0
    open_issues_count: int = 0
    language: Optional[str] = None
    default_branch: str = "main"
    html_url: Optional[str] = None
    topics: tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class LiveStarRecord:
    """Most recently pushed star count for a subscribed repository."""

    repository_id: int
    star_count: int


@dataclass
class RefreshReport:
    """Outcome of a single refresh cycle."""

    organisation: str
    fetched: int = 0
    subscribed: list[int] = field(default_factory=list)
    failed: list[tuple[int, str]] = field(default_factory=list)  # (repository_id, error)
    error: Optional[str] = None  # directory fetch failure
    superseded: bool = False  # a newer refresh took over mid-way

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        if self.error:
            return f"Refresh failed: {self.error}"
        parts = [f"Repositories: {self.fetched}", f"Live: {len(self.subscribed)}"]
        if self.failed:
            parts.append(f"Failed: {len(self.failed)}")
        if self.superseded:
            parts.append("(superseded)")
        return " | ".join(parts)

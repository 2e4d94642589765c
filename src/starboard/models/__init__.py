"""Data models for Starboard."""

from .schemas import (
    LiveStarRecord,
    RefreshReport,
    RepositoryDetail,
    RepositorySummary,
    format_stars,
)

__all__ = [
    "LiveStarRecord",
    "RefreshReport",
    "RepositoryDetail",
    "RepositorySummary",
    "format_stars",
]

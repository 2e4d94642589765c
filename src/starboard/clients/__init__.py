"""REST collaborators for Starboard."""

from .github import GitHubClient, RateLimitInfo

__all__ = [
    "GitHubClient",
    "RateLimitInfo",
]

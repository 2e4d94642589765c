"""GitHub REST client for Starboard.

This module provides functionality to:
- List an organisation's repositories with their baseline star counts
- Fetch full repository details by numeric id
- Retry transient failures and respect GitHub rate limits
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import httpx

from starboard.errors import DecodeError, TransportError
from starboard.models import RepositoryDetail, RepositorySummary


logger = logging.getLogger(__name__)

MAX_RATE_LIMIT_WAIT = 900  # seconds


@dataclass
class RateLimitInfo:
    """GitHub API rate limit information."""
    
    limit: int = 60
    remaining: int = 60
    reset_at: float = 0.0
    
    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> "RateLimitInfo":
        """Parse rate limit info from response headers."""
        return cls(
            limit=int(headers.get("x-ratelimit-limit", 60)),
            remaining=int(headers.get("x-ratelimit-remaining", 60)),
            reset_at=float(headers.get("x-ratelimit-reset", 0)),
        )
    
    @property
    def is_exhausted(self) -> bool:
        """Check if rate limit is exhausted."""
        return self.remaining <= 0
    
    @property
    def seconds_until_reset(self) -> float:
        """Seconds until rate limit resets."""
        return max(0, self.reset_at - time.time())


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def summary_from_payload(item: dict[str, Any]) -> RepositorySummary:
    """Build a RepositorySummary from a repository JSON object.
    
    Raises:
        DecodeError: If required fields are missing or malformed
    """
    try:
        return RepositorySummary(
            id=int(item["id"]),
            name=item["name"],
            description=item.get("description"),
            star_count=int(item.get("stargazers_count") or 0),
            owner=(item.get("owner") or {}).get("login"),
            html_url=item.get("html_url"),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed repository payload: {e!r}") from e


def detail_from_payload(item: dict[str, Any]) -> RepositoryDetail:
    """Build a RepositoryDetail from a repository JSON object.
    
    Raises:
        DecodeError: If required fields are missing or malformed
    """
    try:
        return RepositoryDetail(
            id=int(item["id"]),
            name=item["name"],
            full_name=item.get("full_name") or item["name"],
            description=item.get("description"),
            star_count=int(item.get("stargazers_count") or 0),
            forks_count=int(item.get("forks_count") or 0),
            watchers_count=int(item.get("subscribers_count") or item.get("watchers_count") or 0),
            open_issues_count=int(item.get("open_issues_count") or 0),
            language=item.get("language"),
            default_branch=item.get("default_branch") or "main",
            html_url=item.get("html_url"),
            topics=tuple(item.get("topics") or ()),
            created_at=_parse_timestamp(item.get("created_at")),
            updated_at=_parse_timestamp(item.get("updated_at")),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed repository payload: {e!r}") from e


class GitHubClient:
    """Client for interacting with GitHub API with rate limit handling."""
    
    BASE_URL = "https://api.github.com"
    
    def __init__(
        self,
        token: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        respect_rate_limit: bool = True,
        timeout: float = 30.0,
    ):
        """Initialize GitHub client.
        
        Args:
            token: Optional GitHub personal access token for higher rate limits.
            max_retries: Maximum number of retries for failed requests.
            retry_delay: Base delay between retries (exponential backoff).
            respect_rate_limit: If True, wait when rate limited instead of failing.
            timeout: Per-request timeout in seconds.
        """
        self.token = token
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.respect_rate_limit = respect_rate_limit
        self.timeout = timeout
        self._client: Optional[httpx.Client] = None
        self._rate_limit = RateLimitInfo()
    
    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": "Starboard-Live-Stars",
            }
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.Client(
                base_url=self.BASE_URL,
                headers=headers,
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._client
    
    @property
    def rate_limit(self) -> RateLimitInfo:
        """Current rate limit info."""
        return self._rate_limit
    
    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None
    
    def __enter__(self) -> "GitHubClient":
        return self
    
    def __exit__(self, *args) -> None:
        self.close()
    
    def _wait_for_reset(self) -> bool:
        wait_time = self._rate_limit.seconds_until_reset + 1
        if 0 < wait_time < MAX_RATE_LIMIT_WAIT:
            logger.info("Rate limit exhausted, waiting %.0fs for reset", wait_time)
            time.sleep(wait_time)
            return True
        return False
    
    def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        """Make a request with retry and rate limit handling.
        
        Args:
            method: HTTP method
            url: Request URL
            **kwargs: Additional arguments for httpx
            
        Returns:
            HTTP response
            
        Raises:
            httpx.HTTPError: If request fails after retries
        """
        for attempt in range(self.max_retries + 1):
            try:
                if self._rate_limit.is_exhausted and self.respect_rate_limit:
                    self._wait_for_reset()
                
                response = self.client.request(method, url, **kwargs)
                self._rate_limit = RateLimitInfo.from_headers(response.headers)
                
                if response.status_code == 403 and "rate limit" in response.text.lower():
                    if self.respect_rate_limit and self._wait_for_reset():
                        continue
                    raise httpx.HTTPStatusError(
                        f"Rate limit exceeded. Resets in {self._rate_limit.seconds_until_reset:.0f}s",
                        request=response.request,
                        response=response,
                    )
                
                # Server errors are retried
                if response.status_code >= 500:
                    response.raise_for_status()
                
                return response
                
            except (httpx.ConnectError, httpx.ReadTimeout, httpx.HTTPStatusError) as e:
                if attempt < self.max_retries:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.debug("%s %s failed (%s), retrying in %.1fs", method, url, e, delay)
                    time.sleep(delay)
                    continue
                raise
        
        raise RuntimeError("Request failed without error")
    
    def get(self, url: str, **kwargs) -> httpx.Response:
        """Make GET request with retry handling."""
        response = self._request_with_retry("GET", url, **kwargs)
        response.raise_for_status()
        return response
    
    def _get_json(self, url: str, **kwargs) -> Any:
        try:
            response = self.get(url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"GET {url} returned invalid JSON") from e
    
    def list_org_repos(self, org: str, per_page: int = 100) -> list[RepositorySummary]:
        """List repositories for an organization.
        
        Args:
            org: GitHub organization name
            per_page: Number of results per page (max 100)
            
        Returns:
            List of RepositorySummary objects in API order
            
        Raises:
            TransportError: If a page could not be fetched
            DecodeError: If a page is not a list of repositories
        """
        repos: list[RepositorySummary] = []
        page_size = min(per_page, 100)
        page = 1
        
        while True:
            data = self._get_json(
                f"/orgs/{org}/repos",
                params={"type": "all", "per_page": page_size, "page": page},
            )
            if not isinstance(data, list):
                raise DecodeError(f"Expected a list of repositories for {org}, got {type(data).__name__}")
            if not data:
                break
            
            repos.extend(summary_from_payload(item) for item in data)
            
            if len(data) < page_size:
                break
            page += 1
        
        logger.debug("Fetched %d repositories for %s", len(repos), org)
        return repos
    
    def get_repository(self, repository_id: int) -> RepositoryDetail:
        """Fetch repository information by numeric id.
        
        Raises:
            TransportError: If the repository could not be fetched
            DecodeError: If the payload is malformed
        """
        data = self._get_json(f"/repositories/{repository_id}")
        if not isinstance(data, dict):
            raise DecodeError(f"Expected a repository object, got {type(data).__name__}")
        return detail_from_payload(data)
    
    # RepositoryFetcher port
    
    def fetch_repositories(self, organisation: str) -> list[RepositorySummary]:
        return self.list_org_repos(organisation)
    
    def fetch_detail(self, repository_id: int) -> RepositoryDetail:
        return self.get_repository(repository_id)

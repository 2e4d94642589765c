"""Tests for the GitHub REST client."""

import time

import pytest
import respx
from httpx import Response

from starboard.clients import GitHubClient, RateLimitInfo
from starboard.errors import DecodeError, TransportError


RATE_HEADERS = {
    "x-ratelimit-remaining": "100",
    "x-ratelimit-limit": "5000",
    "x-ratelimit-reset": "0",
}


def repo_payload(repository_id: int, name: str, stars: int = 0) -> dict:
    return {
        "id": repository_id,
        "name": name,
        "full_name": f"swiftlang/{name}",
        "owner": {"login": "swiftlang"},
        "description": f"The {name} repository",
        "html_url": f"https://github.com/swiftlang/{name}",
        "stargazers_count": stars,
    }


class TestRateLimitInfo:
    """Tests for RateLimitInfo dataclass."""
    
    def test_is_exhausted_true(self):
        """Test rate limit is exhausted when remaining is 0."""
        info = RateLimitInfo(limit=5000, remaining=0, reset_at=9999999999)
        assert info.is_exhausted is True
    
    def test_is_exhausted_false(self):
        """Test rate limit is not exhausted when remaining > 0."""
        info = RateLimitInfo(limit=5000, remaining=100, reset_at=9999999999)
        assert info.is_exhausted is False
    
    def test_seconds_until_reset(self):
        """Test seconds until reset calculation."""
        future_time = int(time.time()) + 60
        info = RateLimitInfo(limit=5000, remaining=0, reset_at=future_time)
        assert 55 <= info.seconds_until_reset <= 65


class TestGitHubClient:
    """Tests for GitHubClient class."""
    
    def test_init_without_token(self):
        """Test client initialization without token."""
        client = GitHubClient()
        assert client.token is None
        assert "Authorization" not in client.client.headers
        client.close()
    
    def test_init_with_token(self):
        """Test the token is sent as a bearer token."""
        with GitHubClient(token="test-token") as client:
            assert client.client.headers["Authorization"] == "Bearer test-token"
    
    @respx.mock
    def test_list_org_repos(self):
        """Test listing an organisation's repositories in API order."""
        respx.get("https://api.github.com/orgs/swiftlang/repos").mock(
            return_value=Response(
                200,
                json=[repo_payload(2, "swift", 68000), repo_payload(1, "swift-format", 2500)],
                headers=RATE_HEADERS,
            )
        )
        
        with GitHubClient() as client:
            repos = client.list_org_repos("swiftlang")
        
        assert [r.id for r in repos] == [2, 1]
        assert repos[0].name == "swift"
        assert repos[0].star_count == 68000
        assert repos[0].owner == "swiftlang"
        assert client.rate_limit.remaining == 100
    
    @respx.mock
    def test_list_org_repos_paginates(self):
        """Test every page is fetched until a short page arrives."""
        route = respx.get("https://api.github.com/orgs/swiftlang/repos").mock(
            side_effect=[
                Response(200, json=[repo_payload(1, "a"), repo_payload(2, "b")]),
                Response(200, json=[repo_payload(3, "c")]),
            ]
        )
        
        with GitHubClient() as client:
            repos = client.list_org_repos("swiftlang", per_page=2)
        
        assert [r.id for r in repos] == [1, 2, 3]
        assert route.call_count == 2
        assert route.calls[1].request.url.params["page"] == "2"
    
    @respx.mock
    def test_list_org_repos_not_found(self):
        """Test an unknown organisation is a transport failure."""
        respx.get("https://api.github.com/orgs/nobody/repos").mock(return_value=Response(404))
        
        with GitHubClient() as client:
            with pytest.raises(TransportError):
                client.fetch_repositories("nobody")
    
    @respx.mock
    def test_server_error_is_retried(self):
        """Test 5xx responses are retried."""
        route = respx.get("https://api.github.com/orgs/swiftlang/repos").mock(
            side_effect=[Response(502), Response(200, json=[repo_payload(1, "a")])]
        )
        
        with GitHubClient(retry_delay=0) as client:
            repos = client.fetch_repositories("swiftlang")
        
        assert len(repos) == 1
        assert route.call_count == 2
    
    @respx.mock
    def test_server_error_after_retries(self):
        """Test persistent 5xx responses end as a transport failure."""
        respx.get("https://api.github.com/orgs/swiftlang/repos").mock(return_value=Response(503))
        
        with GitHubClient(max_retries=1, retry_delay=0) as client:
            with pytest.raises(TransportError):
                client.fetch_repositories("swiftlang")
    
    @respx.mock
    def test_invalid_json_is_decode_error(self):
        """Test a non-JSON body is a decode failure."""
        respx.get("https://api.github.com/orgs/swiftlang/repos").mock(
            return_value=Response(200, text="<html>oops</html>")
        )
        
        with GitHubClient() as client:
            with pytest.raises(DecodeError):
                client.fetch_repositories("swiftlang")
    
    @respx.mock
    def test_malformed_repository_is_decode_error(self):
        """Test a repository without an id is a decode failure."""
        respx.get("https://api.github.com/orgs/swiftlang/repos").mock(
            return_value=Response(200, json=[{"name": "no-id"}])
        )
        
        with GitHubClient() as client:
            with pytest.raises(DecodeError, match="Malformed"):
                client.fetch_repositories("swiftlang")
    
    @respx.mock
    def test_unexpected_shape_is_decode_error(self):
        """Test an object where a list is expected is a decode failure."""
        respx.get("https://api.github.com/orgs/swiftlang/repos").mock(
            return_value=Response(200, json={"message": "hello"})
        )
        
        with GitHubClient() as client:
            with pytest.raises(DecodeError, match="Expected a list"):
                client.fetch_repositories("swiftlang")
    
    @respx.mock
    def test_fetch_detail(self):
        """Test fetching repository details by id."""
        payload = repo_payload(42, "swift", 68000)
        payload.update({
            "forks_count": 10000,
            "subscribers_count": 2400,
            "open_issues_count": 7000,
            "language": "C++",
            "default_branch": "main",
            "topics": ["swift", "compiler"],
            "created_at": "2015-10-23T21:15:07Z",
            "updated_at": "2026-10-18T08:00:00Z",
        })
        respx.get("https://api.github.com/repositories/42").mock(
            return_value=Response(200, json=payload, headers=RATE_HEADERS)
        )
        
        with GitHubClient() as client:
            detail = client.fetch_detail(42)
        
        assert detail.full_name == "swiftlang/swift"
        assert detail.star_count == 68000
        assert detail.watchers_count == 2400
        assert detail.topics == ("swift", "compiler")
        assert detail.created_at.year == 2015
        assert detail.updated_at.tzinfo is not None

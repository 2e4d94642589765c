"""Shared fixtures and fakes for Starboard tests."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Union

import pytest

from starboard.config import StarboardConfig
from starboard.errors import SubscriptionError
from starboard.live import LiveSubscription
from starboard.models import RepositoryDetail, RepositorySummary


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep every test away from the real ~/.starboard/config.json."""
    config_path = tmp_path / "starboard" / "config.json"
    monkeypatch.setattr(StarboardConfig, "get_config_path", classmethod(lambda cls: config_path))
    return config_path


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo handlers installed by CLI invocations."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def repo(repository_id: int, star_count: int = 0, name: str = "") -> RepositorySummary:
    """Build a summary with sensible defaults."""
    return RepositorySummary(
        id=repository_id,
        name=name or f"repo-{repository_id}",
        description=f"Repository {repository_id}",
        star_count=star_count,
        owner="swiftlang",
        html_url=f"https://github.com/swiftlang/{name or f'repo-{repository_id}'}",
    )


async def settle(rounds: int = 3) -> None:
    """Let callbacks posted with call_soon_threadsafe run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll the event loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class FakeFetcher:
    """RepositoryFetcher returning canned results, one per call.
    
    The last result is repeated once the others are used up. A result may be
    an exception instance, which is raised instead.
    """
    
    def __init__(self, *results: Union[list[RepositorySummary], Exception]):
        self.results = list(results)
        self.calls = 0
    
    def fetch_repositories(self, organisation: str) -> list[RepositorySummary]:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return list(result)
    
    def fetch_detail(self, repository_id: int) -> RepositoryDetail:
        return RepositoryDetail(
            id=repository_id,
            name=f"repo-{repository_id}",
            full_name=f"swiftlang/repo-{repository_id}",
            description="Detailed description",
            star_count=1,
            forks_count=2,
            language="Swift",
        )


@dataclass
class FakeFeed:
    handle: LiveSubscription
    on_update: Callable[[int], None]
    
    def send(self, star_count: int) -> None:
        """Deliver even if cancelled, like a callback already in flight."""
        self.on_update(star_count)


class FakePushSource:
    """PushSource whose pushes are driven by the test."""
    
    def __init__(self, reject=()):
        self.reject = set(reject)
        self.requests: list[int] = []
        self.feeds: list[FakeFeed] = []
        self.waiting: set[int] = set()
        self._gates: dict[int, asyncio.Event] = {}
    
    def hold(self, repository_id: int) -> None:
        """Make the next subscribe() for this id wait until release()."""
        self._gates[repository_id] = asyncio.Event()
    
    def release(self, repository_id: int) -> None:
        self._gates.pop(repository_id).set()
    
    async def subscribe(self, repository_id, current_stars, on_update) -> LiveSubscription:
        self.requests.append(repository_id)
        if repository_id in self.reject:
            raise SubscriptionError(repository_id, "rejected by test")
        feed = FakeFeed(LiveSubscription(repository_id), on_update)
        self.feeds.append(feed)
        gate = self._gates.get(repository_id)
        if gate is not None:
            self.waiting.add(repository_id)
            await gate.wait()
            self.waiting.discard(repository_id)
        return feed.handle
    
    def feeds_for(self, repository_id: int) -> list[FakeFeed]:
        return [feed for feed in self.feeds if feed.handle.repository_id == repository_id]
    
    @property
    def active(self) -> list[FakeFeed]:
        return [feed for feed in self.feeds if not feed.handle.cancelled]
    
    def push(self, repository_id: int, star_count: int) -> None:
        """Push to every open feed of a repository."""
        for feed in self.feeds_for(repository_id):
            if not feed.handle.cancelled:
                feed.send(star_count)


class RecordingListener:
    """DirectoryListener that records what it was told."""
    
    def __init__(self):
        self.events: list[tuple] = []
    
    def on_directory_replaced(self) -> None:
        self.events.append(("replaced",))
    
    def on_row_updated(self, repository_id: int) -> None:
        self.events.append(("row", repository_id))
    
    def on_refresh_finished(self) -> None:
        self.events.append(("finished",))
    
    def count(self, kind: str) -> int:
        return sum(1 for event in self.events if event[0] == kind)


@pytest.fixture
def source() -> FakePushSource:
    return FakePushSource()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()

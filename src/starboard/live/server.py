"""Simulated live server pushing star count updates.

Feeds are driven by one daemon scheduler thread. Each tick adds a small
random number of stars to a feed and calls its callback from that thread,
outside the scheduler lock, the way a network push client would.
"""

import asyncio
import heapq
import itertools
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional

from starboard.errors import SubscriptionError
from starboard.live.ports import LiveSubscription, StarCallback


logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Feed:
    repository_id: int
    star_count: int
    on_update: StarCallback
    handle: Optional[LiveSubscription] = field(default=None, repr=False)


class MockLiveServer:
    """In-process push source with randomised star growth."""
    
    def __init__(
        self,
        min_interval: float = 1.0,
        max_interval: float = 4.0,
        max_increment: int = 5,
        ack_delay: float = 0.05,
        reject_ids: Iterable[int] = (),
        rng: Optional[random.Random] = None,
    ):
        """Initialize the server.
        
        Args:
            min_interval: Shortest delay between two pushes on one feed.
            max_interval: Longest delay between two pushes on one feed.
            max_increment: Upper bound of stars added per push.
            ack_delay: Simulated time to acknowledge a subscription.
            reject_ids: Repository ids whose subscription requests fail.
            rng: Random source, seed it for reproducible runs.
        """
        if min_interval <= 0 or max_interval < min_interval:
            raise ValueError("Intervals must satisfy 0 < min_interval <= max_interval")
        if max_increment < 1:
            raise ValueError("max_increment must be at least 1")
        self.min_interval = min_interval
        self.max_interval = max_interval
        self.max_increment = max_increment
        self.ack_delay = ack_delay
        self.reject_ids = frozenset(reject_ids)
        self._rng = rng or random.Random()
        self._lock = threading.Condition()
        self._queue: list[tuple[float, int, _Feed]] = []
        self._feeds: set[_Feed] = set()
        self._sequence = itertools.count()
        self._thread: Optional[threading.Thread] = None
        self._closed = False
        self.pushes_sent = 0
    
    @property
    def active_feeds(self) -> int:
        with self._lock:
            return len(self._feeds)
    
    async def subscribe(
        self,
        repository_id: int,
        current_stars: int,
        on_update: StarCallback,
    ) -> LiveSubscription:
        """Open a feed starting from ``current_stars``.
        
        Raises:
            SubscriptionError: If the id is rejected or the server is closed
        """
        if self.ack_delay > 0:
            await asyncio.sleep(self.ack_delay)
        if self._closed:
            raise SubscriptionError(repository_id, "live server is closed")
        if repository_id <= 0 or repository_id in self.reject_ids:
            raise SubscriptionError(repository_id, "unknown repository")
        
        feed = _Feed(repository_id, current_stars, on_update)
        feed.handle = LiveSubscription(repository_id, on_cancel=lambda: self._remove(feed))
        with self._lock:
            self._feeds.add(feed)
            self._schedule(feed)
            self._ensure_thread()
            self._lock.notify()
        logger.debug("Live feed opened for repository %d at %d stars", repository_id, current_stars)
        return feed.handle
    
    def close(self) -> None:
        """Stop the scheduler and cancel every feed."""
        with self._lock:
            self._closed = True
            feeds = list(self._feeds)
            self._lock.notify_all()
        for feed in feeds:
            feed.handle.cancel()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
    
    def __enter__(self) -> "MockLiveServer":
        return self
    
    def __exit__(self, *args) -> None:
        self.close()
    
    def _remove(self, feed: _Feed) -> None:
        with self._lock:
            self._feeds.discard(feed)
    
    def _schedule(self, feed: _Feed) -> None:
        delay = self._rng.uniform(self.min_interval, self.max_interval)
        heapq.heappush(self._queue, (time.monotonic() + delay, next(self._sequence), feed))
    
    def _ensure_thread(self) -> None:
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(target=self._run, name="mock-live-server", daemon=True)
            self._thread.start()
    
    def _next_due(self) -> Optional[tuple[_Feed, int]]:
        """Wait for the next due feed. Returns None once closed."""
        with self._lock:
            while not self._closed:
                # Cancelled feeds are dropped lazily
                while self._queue and self._queue[0][2] not in self._feeds:
                    heapq.heappop(self._queue)
                if not self._queue:
                    self._lock.wait()
                    continue
                due_at, _, feed = self._queue[0]
                remaining = due_at - time.monotonic()
                if remaining > 0:
                    self._lock.wait(timeout=remaining)
                    continue
                heapq.heappop(self._queue)
                feed.star_count += self._rng.randint(1, self.max_increment)
                self._schedule(feed)
                return feed, feed.star_count
        return None
    
    def _run(self) -> None:
        while True:
            due = self._next_due()
            if due is None:
                return
            feed, star_count = due
            self.pushes_sent += 1
            try:
                feed.on_update(star_count)
            except Exception:
                logger.exception("Live update callback for repository %d failed", feed.repository_id)

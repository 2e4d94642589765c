"""Ports: the collaborator contracts of the live star-count layer."""

import threading
from typing import Callable, Optional, Protocol

from starboard.models import RepositoryDetail, RepositorySummary


StarCallback = Callable[[int], None]


class LiveSubscription:
    """Handle for one open feed of a repository's star counts.
    
    ``cancel()`` is idempotent and safe to call from any thread. It does not
    stop a callback the push source has already scheduled; the subscription
    manager filters those.
    """
    
    def __init__(self, repository_id: int, on_cancel: Optional[Callable[[], None]] = None):
        self.repository_id = repository_id
        self._on_cancel = on_cancel
        self._cancelled = threading.Event()
    
    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()
    
    def cancel(self) -> None:
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        if self._on_cancel is not None:
            self._on_cancel()
            self._on_cancel = None
    
    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<LiveSubscription repository_id={self.repository_id} {state}>"


class RepositoryFetcher(Protocol):
    """Blocking REST collaborator. Called from a worker thread."""
    
    def fetch_repositories(self, organisation: str) -> list[RepositorySummary]:
        """Return the organisation's repositories in display order.
        
        Raises TransportError or DecodeError.
        """
        ...
    
    def fetch_detail(self, repository_id: int) -> RepositoryDetail:
        """Return full details for one repository."""
        ...


class PushSource(Protocol):
    """Push-style source of star count updates.
    
    ``on_update`` may be invoked from any thread, any number of times, until
    the returned handle is cancelled (and possibly once more if a delivery
    was already in flight).
    """
    
    async def subscribe(
        self,
        repository_id: int,
        current_stars: int,
        on_update: StarCallback,
    ) -> LiveSubscription:
        """Open a feed for ``repository_id``. Raises SubscriptionError."""
        ...


class DirectoryListener(Protocol):
    """Notifications from the live layer to the presentation adapter."""
    
    def on_directory_replaced(self) -> None:
        """The whole directory changed; redraw every row."""
        ...
    
    def on_row_updated(self, repository_id: int) -> None:
        """One repository's star count changed; redraw that row if visible."""
        ...
    
    def on_refresh_finished(self) -> None:
        """A refresh() call ended, successfully or not."""
        ...

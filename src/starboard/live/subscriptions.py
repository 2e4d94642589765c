"""Per-repository live subscriptions with generation-based staleness filtering.

Every subscription opened by the manager is tagged with the generation that
was current when it was opened. ``cancel_all()`` bumps the generation, so a
push that was already in flight when its subscription was torn down is
recognised at delivery time and dropped instead of resurrecting a value.

Push sources may call back from any thread. The manager never touches state
from those threads; it posts the delivery onto the event loop that opened the
subscription and does all bookkeeping there.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from starboard.errors import SubscriptionError
from starboard.live.ports import LiveSubscription, PushSource, StarCallback
from starboard.live.store import StarStore


logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Entry:
    """Bookkeeping for one repository's feed. Compared by identity."""
    
    repository_id: int
    generation: int
    on_update: Optional[StarCallback]
    handle: Optional[LiveSubscription] = None  # None while the source is acknowledging


class SubscriptionManager:
    """Owns at most one live subscription per repository id."""
    
    def __init__(self, source: PushSource, store: StarStore):
        self._source = source
        self._store = store
        self._generation = 0
        self._entries: dict[int, _Entry] = {}
        self.stale_drops = 0
    
    @property
    def generation(self) -> int:
        """Current generation token. Increases on every effective cancel_all()."""
        return self._generation
    
    @property
    def active_ids(self) -> list[int]:
        """Repository ids with an acknowledged, live subscription."""
        return [rid for rid, entry in self._entries.items() if entry.handle is not None]
    
    def __len__(self) -> int:
        return len(self.active_ids)
    
    def is_subscribed(self, repository_id: int) -> bool:
        entry = self._entries.get(repository_id)
        return entry is not None and entry.handle is not None
    
    async def subscribe(
        self,
        repository_id: int,
        baseline_count: int,
        on_update: Optional[StarCallback] = None,
    ) -> LiveSubscription:
        """Open a feed for one repository, replacing any existing one.
        
        Accepted pushes are written to the store first, then ``on_update`` is
        called with the new count on the event loop.
        
        If ``cancel_all()`` runs while the push source is still acknowledging,
        the returned handle is cancelled straight away and nothing is recorded.
        
        Raises:
            SubscriptionError: If the push source rejects the request
        """
        loop = asyncio.get_running_loop()
        previous = self._entries.pop(repository_id, None)
        if previous is not None and previous.handle is not None:
            previous.handle.cancel()
        
        entry = _Entry(repository_id, self._generation, on_update)
        self._entries[repository_id] = entry
        
        def push(star_count: int) -> None:
            # Runs on the push source's thread
            try:
                loop.call_soon_threadsafe(self._deliver, entry, star_count)
            except RuntimeError:
                logger.debug("Event loop closed, dropping push for repository %d", repository_id)
        
        try:
            handle = await self._source.subscribe(repository_id, baseline_count, push)
        except (SubscriptionError, asyncio.CancelledError):
            self._forget(entry)
            raise
        except Exception as e:
            self._forget(entry)
            raise SubscriptionError(repository_id, str(e)) from e
        
        if self._entries.get(repository_id) is not entry:
            # Superseded by cancel_all() or a newer subscribe() while we waited
            handle.cancel()
            logger.debug("Subscription for repository %d superseded before acknowledgement", repository_id)
            return handle
        
        entry.handle = handle
        return handle
    
    def cancel_all(self) -> int:
        """Cancel every subscription and clear bookkeeping.
        
        Idempotent: with nothing tracked this does nothing, the generation
        included. Stale pushes are still caught then, because delivery checks
        both the generation and the identity of the entry it was issued for.
        Returns the generation that is current afterwards.
        """
        if not self._entries:
            return self._generation
        
        entries = list(self._entries.values())
        self._entries.clear()
        self._generation += 1
        
        cancelled = 0
        for entry in entries:
            if entry.handle is not None:
                entry.handle.cancel()
                cancelled += 1
        logger.debug("Cancelled %d subscriptions, generation is now %d", cancelled, self._generation)
        return self._generation
    
    def _forget(self, entry: _Entry) -> None:
        if self._entries.get(entry.repository_id) is entry:
            del self._entries[entry.repository_id]
    
    def _deliver(self, entry: _Entry, star_count: int) -> None:
        """Apply a push on the event loop, unless it is stale."""
        if entry.generation != self._generation or self._entries.get(entry.repository_id) is not entry:
            self.stale_drops += 1
            logger.debug(
                "Dropped stale push for repository %d (generation %d, current %d)",
                entry.repository_id, entry.generation, self._generation,
            )
            return
        
        if not self._store.set_live(entry.repository_id, star_count):
            self.stale_drops += 1
            logger.debug("Dropped push for repository %d, not in directory", entry.repository_id)
            return
        
        if entry.on_update is not None:
            entry.on_update(star_count)

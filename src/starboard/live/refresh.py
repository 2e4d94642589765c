"""Refresh cycle: fetch the directory, then rebuild the live subscriptions."""

import asyncio
import logging
from typing import Optional

from starboard.errors import DecodeError, FetchError, SubscriptionError
from starboard.live.ports import DirectoryListener, RepositoryFetcher
from starboard.live.store import StarStore
from starboard.live.subscriptions import SubscriptionManager
from starboard.models import RefreshReport, RepositorySummary


logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """Runs refresh cycles on the event loop.
    
    Overlapping refreshes are not serialised. Each one that gets a directory
    resets the subscription manager, so the last fetch to complete decides
    the final state, and an older refresh still subscribing notices the
    generation change and stops.
    """
    
    def __init__(
        self,
        organisation: str,
        fetcher: RepositoryFetcher,
        manager: SubscriptionManager,
        store: StarStore,
        listener: DirectoryListener,
    ):
        self.organisation = organisation
        self._fetcher = fetcher
        self._manager = manager
        self._store = store
        self._listener = listener
        self.last_report: Optional[RefreshReport] = None
        self.in_flight = 0
    
    async def refresh(self) -> RefreshReport:
        """Fetch the directory and resubscribe every repository.
        
        Never raises for collaborator failures: a failed fetch keeps the
        previous directory, a failed subscription leaves that repository on
        its baseline. ``on_refresh_finished`` fires exactly once per call.
        """
        report = RefreshReport(organisation=self.organisation)
        self.in_flight += 1
        try:
            try:
                repositories = await self._fetch()
            except FetchError as e:
                logger.warning("Fetching repositories for %s failed: %s", self.organisation, e)
                report.error = str(e)
                return report
            except Exception as e:
                logger.exception("Unexpected error fetching repositories for %s", self.organisation)
                report.error = f"{type(e).__name__}: {e}"
                return report
            
            # No suspension point until the listener has been told
            generation = self._manager.cancel_all()
            self._store.clear_live()
            self._store.replace_directory(repositories)
            report.fetched = len(repositories)
            self._listener.on_directory_replaced()
            
            for repo in repositories:
                if self._manager.generation != generation:
                    break
                try:
                    await self._manager.subscribe(repo.id, repo.star_count, self._row_hook(repo.id))
                except SubscriptionError as e:
                    logger.warning("%s", e)
                    report.failed.append((repo.id, str(e)))
                    continue
                if self._manager.is_subscribed(repo.id):
                    report.subscribed.append(repo.id)
            
            if self._manager.generation != generation:
                logger.info("Refresh for %s superseded by a newer one", self.organisation)
                report.superseded = True
            
            logger.info("Refreshed %s: %s", self.organisation, report)
            return report
        finally:
            self.in_flight -= 1
            self.last_report = report
            self._listener.on_refresh_finished()
    
    async def _fetch(self) -> list[RepositorySummary]:
        repositories = list(
            await asyncio.to_thread(self._fetcher.fetch_repositories, self.organisation)
        )
        seen: set[int] = set()
        for repo in repositories:
            if repo.id in seen:
                raise DecodeError(f"Repository id {repo.id} listed twice")
            seen.add(repo.id)
        return repositories
    
    def _row_hook(self, repository_id: int):
        def on_update(star_count: int) -> None:
            self._listener.on_row_updated(repository_id)
        return on_update
    
    def close(self) -> None:
        """Tear down every subscription and forget live values."""
        self._manager.cancel_all()
        self._store.clear_live()

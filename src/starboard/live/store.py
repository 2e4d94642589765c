"""Repository directory and live star-count overrides."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from starboard.errors import RepositoryNotFoundError
from starboard.models import LiveStarRecord, RepositorySummary


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Directory:
    """Immutable, ordered snapshot of the repositories on screen."""

    entries: tuple[RepositorySummary, ...] = ()
    index: dict[int, int] = field(default_factory=dict)  # repository id -> position

    @classmethod
    def build(cls, repositories: Iterable[RepositorySummary]) -> "Directory":
        entries = tuple(repositories)
        index: dict[int, int] = {}
        for position, repo in enumerate(entries):
            if repo.id in index:
                raise ValueError(f"Duplicate repository id {repo.id} in directory")
            index[repo.id] = position
        return cls(entries=entries, index=index)

    def get(self, repository_id: int) -> Optional[RepositorySummary]:
        position = self.index.get(repository_id)
        if position is None:
            return None
        return self.entries[position]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[RepositorySummary]:
        return iter(self.entries)

    def __contains__(self, repository_id: object) -> bool:
        return repository_id in self.index


class StarStore:
    """The current directory plus the live value overrides.

    The directory is swapped by reference, so a reader holding
    ``store.directory`` always sees one complete snapshot. Mutations happen
    on the event loop only.
    """

    def __init__(self, repositories: Iterable[RepositorySummary] = ()):
        self._directory = Directory.build(repositories)
        self._live: dict[int, int] = {}

    @property
    def directory(self) -> Directory:
        return self._directory

    def replace_directory(self, repositories: Iterable[RepositorySummary]) -> None:
        """Install a new directory in a single swap.

        Live values for ids that are not in the new directory are dropped.
        """
        directory = Directory.build(repositories)
        self._live = {rid: count for rid, count in self._live.items() if rid in directory}
        self._directory = directory
        logger.debug("Directory replaced with %d repositories", len(directory))

    def clear_live(self) -> None:
        """Drop every live override. The directory is left alone."""
        self._live = {}

    def set_live(self, repository_id: int, star_count: int) -> bool:
        """Record a pushed star count.

        Returns False, leaving the store untouched, when the repository is
        not in the current directory.
        """
        if repository_id not in self._directory:
            return False
        self._live[repository_id] = star_count
        return True

    def live_value(self, repository_id: int) -> Optional[int]:
        return self._live.get(repository_id)

    def live_records(self) -> list[LiveStarRecord]:
        return [LiveStarRecord(rid, count) for rid, count in self._live.items()]

    def current_star_count(self, repository_id: int) -> int:
        """Return the live star count if known, else the baseline.

        Raises:
            RepositoryNotFoundError: If the id is not in the current directory
        """
        repo = self._directory.get(repository_id)
        if repo is None:
            raise RepositoryNotFoundError(repository_id)
        return self._live.get(repository_id, repo.star_count)

    def rows(self) -> list[tuple[RepositorySummary, int]]:
        """Repositories in display order with their effective star counts."""
        directory = self._directory
        live = self._live
        return [(repo, live.get(repo.id, repo.star_count)) for repo in directory]

    def __len__(self) -> int:
        return len(self._directory)

    def __contains__(self, repository_id: object) -> bool:
        return repository_id in self._directory

"""Live star-count layer: directory, subscriptions and refresh cycles."""

from .ports import DirectoryListener, LiveSubscription, PushSource, RepositoryFetcher
from .refresh import RefreshCoordinator
from .server import MockLiveServer
from .store import Directory, StarStore
from .subscriptions import SubscriptionManager

__all__ = [
    "Directory",
    "DirectoryListener",
    "LiveSubscription",
    "MockLiveServer",
    "PushSource",
    "RefreshCoordinator",
    "RepositoryFetcher",
    "StarStore",
    "SubscriptionManager",
]

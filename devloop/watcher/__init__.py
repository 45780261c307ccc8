"""devloop watcher -- run a rebuild callback when watched files change.

Quick usage::

    from devloop.watcher import WatchCoordinator

    coordinator = WatchCoordinator()
    coordinator.listen("./app/*", rebuild)
    coordinator.listen("./views", rebuild)   # never overlaps with the above
"""

from devloop.watcher.coordinator import (
    NotificationBackend,
    Op,
    Subscription,
    WatchCoordinator,
    WatchEvent,
    restart_required,
)
from devloop.watcher.glob import is_recursive, resolve

__all__ = [
    "NotificationBackend",
    "Op",
    "Subscription",
    "WatchCoordinator",
    "WatchEvent",
    "is_recursive",
    "resolve",
    "restart_required",
]

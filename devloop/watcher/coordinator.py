"""Watch coordinator.

Resolves watch patterns, registers the resulting directories with a
notification backend and runs a callback whenever a file is written.  All
subscriptions of one coordinator share a single lock, so callbacks never run
concurrently.  This is not debouncing: a burst of N writes still produces up
to N sequential callback runs.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Flag, auto
from typing import Protocol

from devloop.utils import ConsoleLog, Log
from devloop.watcher.glob import resolve


class Op(Flag):
    """File operation reported by a notification backend."""

    CREATE = auto()
    WRITE = auto()
    REMOVE = auto()
    RENAME = auto()
    CHMOD = auto()


@dataclass(frozen=True)
class WatchEvent:
    path: str
    op: Op


def restart_required(event: WatchEvent) -> bool:
    """True when *event* says a file's content has been modified."""
    return bool(event.op & Op.WRITE)


class NotificationBackend(Protocol):
    """OS change-notification capability.

    ``stop`` must put a ``None`` sentinel on both queues so that consumers
    blocked on ``get`` wake up.
    """

    events: queue.Queue[WatchEvent | None]
    errors: queue.Queue[BaseException | None]

    def start(self) -> None: ...

    def add_path(self, path: str) -> None: ...

    def stop(self) -> None: ...


class Subscription:
    """Handle returned by :meth:`WatchCoordinator.listen`."""

    def __init__(
        self,
        pattern: str,
        directories: list[str],
        backend: NotificationBackend,
    ) -> None:
        self.pattern = pattern
        self.directories = directories
        self.backend = backend
        self._cancelled = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def active(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def cancel(self) -> None:
        """Stop the backend and let both consumer threads exit."""
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        self.backend.stop()

    def spawn(self, name: str, target: Callable[..., None], *args: object) -> None:
        """Start a daemon consumer thread owned by this subscription."""
        thread = threading.Thread(target=target, args=args, name=name, daemon=True)
        self._threads.append(thread)
        thread.start()

    def join(self, timeout: float | None = None) -> None:
        for thread in self._threads:
            thread.join(timeout)


class WatchCoordinator:
    """Registers pattern/callback pairs and serialises callback execution.

    Args:
        backend_factory: Builds one notification backend per ``listen`` call.
            Defaults to the watchdog-based backend.
        log: Where warnings and trace messages go.
        truncate_on_file: Passed through to :func:`devloop.watcher.glob.resolve`.
    """

    def __init__(
        self,
        backend_factory: Callable[[], NotificationBackend] | None = None,
        log: Log | None = None,
        truncate_on_file: bool = False,
    ) -> None:
        if backend_factory is None:
            from devloop.watcher.backend import WatchdogBackend

            backend_factory = WatchdogBackend
        self.backend_factory = backend_factory
        self.log = log or ConsoleLog()
        self.truncate_on_file = truncate_on_file
        self.subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def listen(self, pattern: str, callback: Callable[[], None]) -> Subscription:
        """Start watching *pattern*; *callback* runs after every file write.

        Returns immediately.  Registration failures are logged and skipped.
        """
        directories = resolve(pattern, log=self.log, truncate_on_file=self.truncate_on_file)

        backend = self.backend_factory()
        backend.start()
        for directory in directories:
            self.log.trace(f'Adding "{directory}" to the list of watched directories...')
            try:
                backend.add_path(directory)
            except OSError as exc:
                self.log.warning(f'Cannot watch "{directory}": {exc}')

        subscription = Subscription(pattern, directories, backend)
        subscription.spawn(f"devloop-events[{pattern}]", self.notify_on_update, subscription, callback)
        subscription.spawn(f"devloop-errors[{pattern}]", self.report_errors, subscription)
        self.subscriptions.append(subscription)
        return subscription

    def notify_on_update(self, subscription: Subscription, callback: Callable[[], None]) -> None:
        """Consume change events until the subscription is cancelled."""
        events = subscription.backend.events
        while not subscription.cancelled:
            event = events.get()
            if event is None:
                break
            if not restart_required(event):
                continue
            with self._lock:
                if subscription.cancelled:
                    break
                try:
                    callback()
                except Exception as exc:
                    self.log.error(f'Callback for "{subscription.pattern}" failed: {exc!r}')

    def report_errors(self, subscription: Subscription) -> None:
        """Log backend errors until the subscription is cancelled."""
        errors = subscription.backend.errors
        while not subscription.cancelled:
            error = errors.get()
            if error is None:
                break
            self.log.warning(f"Watcher error: {error}")

    def close(self, timeout: float | None = None) -> None:
        """Cancel every subscription and wait for their threads."""
        for subscription in self.subscriptions:
            subscription.cancel()
        for subscription in self.subscriptions:
            subscription.join(timeout)

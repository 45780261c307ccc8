"""watchdog-based notification backend.

Each watched directory is scheduled non-recursively: recursion is expressed
by the watch pattern, which already lists every subdirectory.

watchdog reports attribute-only changes (``chmod``) as modifications too.  The
backend keeps the ``(st_mtime_ns, st_size)`` of every file in a watched
directory and reports a modification that changes neither as ``Op.CHMOD``.
Files without a recorded signature (new or renamed ones) always count as
written.
"""

from __future__ import annotations

import errno
import os
import queue
import threading

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from devloop.watcher.coordinator import Op, WatchEvent

_OPS: dict[str, Op] = {
    "created": Op.CREATE,
    "modified": Op.WRITE,
    "deleted": Op.REMOVE,
    "moved": Op.RENAME,
}


def _signature(path: str) -> tuple[int, int] | None:
    try:
        st = os.stat(path, follow_symlinks=False)
    except OSError:
        return None
    return st.st_mtime_ns, st.st_size


class _QueueingHandler(FileSystemEventHandler):
    """Translates watchdog events into ``WatchEvent`` items on a queue."""

    def __init__(self, backend: WatchdogBackend) -> None:
        super().__init__()
        self.backend = backend

    def on_any_event(self, event: FileSystemEvent) -> None:
        op = _OPS.get(event.event_type)
        if op is None:
            return
        # A directory's mtime changes whenever its entries do; that isn't a write.
        if op is Op.WRITE and event.is_directory:
            return

        path = os.path.normpath(os.fsdecode(event.src_path))
        if op is Op.WRITE:
            op = self.backend.classify_modification(path)
        elif op is Op.CREATE:
            self.backend.forget(path)
        elif op in (Op.REMOVE, Op.RENAME):
            self.backend.forget(path)
            if op is Op.RENAME:
                self.backend.forget(os.path.normpath(os.fsdecode(event.dest_path)))
            if path in self.backend.watched:
                self.backend.errors.put(
                    FileNotFoundError(errno.ENOENT, "watched directory is gone", path)
                )
        self.backend.events.put(WatchEvent(path=path, op=op))


class WatchdogBackend:
    """``NotificationBackend`` on top of ``watchdog.observers.Observer``."""

    def __init__(self, timeout: float = 1.0) -> None:
        self.events: queue.Queue[WatchEvent | None] = queue.Queue()
        self.errors: queue.Queue[BaseException | None] = queue.Queue()
        self.watched: set[str] = set()
        self.timeout = timeout
        self._observer = Observer(timeout=timeout)
        self._handler = _QueueingHandler(self)
        self._signatures: dict[str, tuple[int, int]] = {}
        self._signatures_lock = threading.Lock()
        self._stopped = False

    def start(self) -> None:
        self._observer.start()

    def add_path(self, path: str) -> None:
        """Schedule *path* for notifications.

        Raises:
            FileNotFoundError: *path* does not exist.
            NotADirectoryError: *path* is not a directory.
            OSError: The OS refused the watch (e.g. inotify limits).
        """
        if not os.path.exists(path):
            raise FileNotFoundError(errno.ENOENT, "no such directory", path)
        if not os.path.isdir(path):
            raise NotADirectoryError(errno.ENOTDIR, "not a directory", path)
        with os.scandir(path) as entries:
            for entry in entries:
                if entry.is_file(follow_symlinks=False):
                    self.remember(os.path.normpath(entry.path))
        self._observer.schedule(self._handler, path, recursive=False)
        self.watched.add(os.path.normpath(path))

    # ------------------------------------------------------------------
    # File signatures
    # ------------------------------------------------------------------

    def remember(self, path: str) -> None:
        signature = _signature(path)
        if signature is None:
            return
        with self._signatures_lock:
            self._signatures[path] = signature

    def forget(self, path: str) -> None:
        with self._signatures_lock:
            self._signatures.pop(path, None)

    def classify_modification(self, path: str) -> Op:
        """``Op.CHMOD`` when neither mtime nor size moved, ``Op.WRITE`` otherwise."""
        signature = _signature(path)
        with self._signatures_lock:
            previous = self._signatures.get(path)
            if signature is not None:
                self._signatures[path] = signature
        if signature is not None and signature == previous:
            return Op.CHMOD
        return Op.WRITE

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(self.timeout * 2)
        self.events.put(None)
        self.errors.put(None)

"""Shared pytest fixtures for the devloop test suite.

Provides reusable fixtures for:
- A recording ``Log`` implementation
- Template (skeleton) trees built under ``tmp_path``
- A fake notification backend driven by the tests
"""

from __future__ import annotations

import queue
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from devloop.watcher.coordinator import Op, WatchEvent

SKELETON_MODULE = "github.com/anonx/sunplate/example"
NEW_MODULE = "github.com/acme/widget"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class RecordingLog:
    """``Log`` that keeps every message as a ``(level, message)`` pair."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def _record(self, level: str, message: str) -> None:
        self.records.append((level, message))

    def trace(self, message: str) -> None:
        self._record("trace", message)

    def info(self, message: str) -> None:
        self._record("info", message)

    def success(self, message: str) -> None:
        self._record("success", message)

    def warning(self, message: str) -> None:
        self._record("warning", message)

    def error(self, message: str) -> None:
        self._record("error", message)

    def messages(self, level: str) -> list[str]:
        return [message for lvl, message in self.records if lvl == level]


@pytest.fixture
def log() -> RecordingLog:
    return RecordingLog()


# ---------------------------------------------------------------------------
# Template trees
# ---------------------------------------------------------------------------


def build_tree(root: Path, layout: dict[str, str | bytes | None]) -> Path:
    """Create files and directories under *root*.

    Keys are ``/``-separated relative paths.  ``None`` makes a directory,
    ``str``/``bytes`` values become file contents.
    """
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in layout.items():
        path = root.joinpath(*relative.split("/"))
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def skeleton(tmp_path: Path) -> Path:
    """A small skeleton app: two directories, a static file, Go sources."""
    return build_tree(
        tmp_path / "skeleton",
        {
            "assets": None,
            "controllers": None,
            "README.md": "hello",
            "controllers/init.go": (
                "package controllers\n\n"
                "import (\n"
                f'\t"{SKELETON_MODULE}/assets"\n'
                f'\tv "{SKELETON_MODULE}/assets/views"\n'
                ")\n"
            ),
            "main.go": f'package main\n\nimport "{SKELETON_MODULE}/controllers"\n',
            "assets/views/index.html": f"<p>{SKELETON_MODULE}</p>\n",
        },
    )


# ---------------------------------------------------------------------------
# Fake notification backend
# ---------------------------------------------------------------------------


class FakeBackend:
    """In-memory ``NotificationBackend`` whose events are pushed by tests."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.events: queue.Queue[WatchEvent | None] = queue.Queue()
        self.errors: queue.Queue[BaseException | None] = queue.Queue()
        self.failing = failing if failing is not None else set()
        self.paths: list[str] = []
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def add_path(self, path: str) -> None:
        if path in self.failing:
            raise FileNotFoundError(2, "no such directory", path)
        self.paths.append(path)

    def stop(self) -> None:
        self.stopped = True
        self.events.put(None)
        self.errors.put(None)

    def emit(self, path: str, op: Op = Op.WRITE) -> None:
        self.events.put(WatchEvent(path=path, op=op))


@pytest.fixture
def backends() -> list[FakeBackend]:
    """Every ``FakeBackend`` created through ``backend_factory``."""
    return []


@pytest.fixture
def failing_paths() -> set[str]:
    """Paths every ``FakeBackend`` refuses to register; tests may add to it."""
    return set()


@pytest.fixture
def backend_factory(
    backends: list[FakeBackend], failing_paths: set[str]
) -> Callable[[], FakeBackend]:
    def factory() -> FakeBackend:
        backend = FakeBackend(failing=failing_paths)
        backends.append(backend)
        return backend

    return factory


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll *predicate* until it holds or *timeout* elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def make_tree() -> Callable[[Path, dict[str, str | bytes | None]], Path]:
    return build_tree


@pytest.fixture
def eventually() -> Callable[..., bool]:
    return wait_until

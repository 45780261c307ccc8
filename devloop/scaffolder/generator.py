"""Skeleton copier.

Walks a template tree, classifies every entry as a directory, a static file
or a source file, and materialises the tree at a destination that must not
exist yet.  Source files get a literal import-path substitution on the way.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from devloop.utils import ConsoleLog, Log


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ScaffoldError(Exception):
    """Raised when a skeleton cannot be materialised."""

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class DestinationExistsError(ScaffoldError):
    """The destination directory is already present; nothing was written."""


class ScaffoldIOError(ScaffoldError):
    """Reading the template or writing the destination failed.

    Output written before the failure is left on disk.
    """


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class RewriteRule(BaseModel):
    """Literal ``old -> new`` substitution applied to source files."""

    model_config = ConfigDict(frozen=True)

    old: str = Field(..., min_length=1)
    new: str

    def apply(self, content: bytes) -> bytes:
        """Replace every occurrence of ``old`` in *content*."""
        return content.replace(self.old.encode("utf-8"), self.new.encode("utf-8"))


class EntryKind(str, Enum):
    DIRECTORY = "directory"
    STATIC_FILE = "static_file"
    SOURCE_FILE = "source_file"


@dataclass(frozen=True)
class ScaffoldEntry:
    """One template entry, in traversal order."""

    kind: EntryKind
    source_path: Path
    relative_path: Path


@dataclass
class ScaffoldResult:
    """Ordered list of entries found while scanning a template tree."""

    template_root: Path
    entries: list[ScaffoldEntry] = field(default_factory=list)

    def _of_kind(self, kind: EntryKind) -> dict[Path, Path]:
        return {e.source_path: e.relative_path for e in self.entries if e.kind is kind}

    @property
    def directories(self) -> dict[Path, Path]:
        return self._of_kind(EntryKind.DIRECTORY)

    @property
    def static_files(self) -> dict[Path, Path]:
        return self._of_kind(EntryKind.STATIC_FILE)

    @property
    def source_files(self) -> dict[Path, Path]:
        return self._of_kind(EntryKind.SOURCE_FILE)


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


def _raise_walk_error(exc: OSError) -> None:
    raise exc


def scan_template(template_root: str | Path, source_suffixes: Iterable[str]) -> ScaffoldResult:
    """Classify every entry beneath *template_root*.

    The walk is pre-order with names sorted, so a directory always appears
    before anything inside it.  Symbolic links are never followed and are
    classified as static files.  A file is a source file when its name ends
    with one of *source_suffixes*, so a file named exactly ``.go`` counts.

    Raises:
        ScaffoldIOError: If the root is missing or any directory can't be read.
    """
    root = Path(template_root).absolute()
    suffixes = tuple(source_suffixes)
    if not root.is_dir():
        raise ScaffoldIOError(f"Template directory not found: {root}", path=root)

    result = ScaffoldResult(template_root=root)
    result.entries.append(ScaffoldEntry(EntryKind.DIRECTORY, root, Path(".")))

    try:
        for dirpath, dirnames, filenames in os.walk(
            root, onerror=_raise_walk_error, followlinks=False
        ):
            current = Path(dirpath)
            linked = [name for name in dirnames if (current / name).is_symlink()]
            dirnames[:] = sorted(name for name in dirnames if name not in linked)

            for name in dirnames:
                path = current / name
                result.entries.append(
                    ScaffoldEntry(EntryKind.DIRECTORY, path, path.relative_to(root))
                )
            for name in sorted([*filenames, *linked]):
                path = current / name
                kind = (
                    EntryKind.SOURCE_FILE
                    if name.endswith(suffixes) and not path.is_symlink()
                    else EntryKind.STATIC_FILE
                )
                result.entries.append(ScaffoldEntry(kind, path, path.relative_to(root)))
    except OSError as exc:
        raise ScaffoldIOError(
            f"An error occurred while scanning the skeleton: {exc}",
            path=getattr(exc, "filename", None),
        ) from exc

    return result


# ---------------------------------------------------------------------------
# Scaffolder
# ---------------------------------------------------------------------------


class Scaffolder:
    """Copies a skeleton application into a new project directory.

    Directories are created first (in traversal order), then static files are
    copied verbatim and source files are copied through the rewrite rule.
    """

    def __init__(
        self,
        source_suffixes: Iterable[str] = (".go",),
        log: Log | None = None,
    ) -> None:
        self.source_suffixes = tuple(source_suffixes)
        self.log = log or ConsoleLog()

    def generate(
        self,
        template_root: str | Path,
        destination_root: str | Path,
        rule: RewriteRule,
    ) -> ScaffoldResult:
        """Materialise *template_root* at *destination_root*.

        Args:
            template_root: Skeleton tree to copy.
            destination_root: Where the new project goes.  Must not exist.
            rule: Import-path substitution for source files.  ``rule.new`` is
                the new project's module identity.

        Returns:
            The scan result describing everything that was written.

        Raises:
            DestinationExistsError: *destination_root* already exists.
            ScaffoldIOError: Any read or write failure.  Partial output stays.
        """
        destination = Path(destination_root)
        if os.path.lexists(destination):
            raise DestinationExistsError(
                f'Abort: Import path "{rule.new}" already exists at {destination}.',
                path=destination,
            )

        result = scan_template(template_root, self.source_suffixes)
        by_kind: dict[EntryKind, list[ScaffoldEntry]] = {kind: [] for kind in EntryKind}
        for entry in result.entries:
            by_kind[entry.kind].append(entry)

        for entry in by_kind[EntryKind.DIRECTORY]:
            target = destination / entry.relative_path
            self.log.trace(f'Creating directory "{target}"...')
            self._run(entry, target, lambda src, dst: dst.mkdir(parents=True, exist_ok=True))

        for entry in by_kind[EntryKind.STATIC_FILE]:
            self._run(entry, destination / entry.relative_path, _copy_static)

        for entry in by_kind[EntryKind.SOURCE_FILE]:
            self._run(
                entry,
                destination / entry.relative_path,
                lambda src, dst: _copy_rewritten(src, dst, rule),
            )

        self.log.success(_READY_NOTICE.format(module=rule.new, destination=destination))
        return result

    def _run(
        self,
        entry: ScaffoldEntry,
        target: Path,
        step: Callable[[Path, Path], object],
    ) -> None:
        try:
            step(entry.source_path, target)
        except OSError as exc:
            raise ScaffoldIOError(
                f"Failed to materialise {entry.relative_path}: {exc}",
                path=target,
            ) from exc


def _copy_static(src: Path, dst: Path) -> None:
    shutil.copy(src, dst, follow_symlinks=False)


def _copy_rewritten(src: Path, dst: Path, rule: RewriteRule) -> None:
    dst.write_bytes(rule.apply(src.read_bytes()))
    shutil.copymode(src, dst)


_READY_NOTICE = (
    'Your application "{module}" is ready:\n'
    "  {destination}\n"
    "You can start the rebuild loop with:\n"
    '  python -m devloop watch "{destination}/*" --command "<build command>"'
)

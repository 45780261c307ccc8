"""Watch pattern resolution.

The only special character is a trailing ``*``: ``"app/*"`` means ``app`` and
every directory beneath it.  Anything else is returned as-is, because the
notification backend watches directories, not individual files.
"""

from __future__ import annotations

import os

from devloop.utils import Log

WILDCARD = "*"


def is_recursive(pattern: str) -> bool:
    return pattern.endswith(WILDCARD)


def resolve(
    pattern: str,
    *,
    log: Log | None = None,
    truncate_on_file: bool = False,
) -> list[str]:
    """Return the directories selected by *pattern*.

    A pattern without the trailing wildcard is returned verbatim as a
    single-element list without touching the filesystem.

    Otherwise the prefix is scanned pre-order, entries sorted by name.  By
    default plain files are skipped and unreadable directories are reported
    through *log* and left out.  With *truncate_on_file* the first plain file
    (or scan error) ends the whole scan and the directories gathered so far
    are returned.
    """
    if not is_recursive(pattern):
        return [pattern]

    root = os.path.normpath(pattern[: -len(WILDCARD)])
    found: list[str] = []
    _scan(root, found, log, truncate_on_file)
    return found


def _warn(log: Log | None, message: str) -> None:
    if log is not None:
        log.warning(message)


def _scan(path: str, found: list[str], log: Log | None, truncate_on_file: bool) -> bool:
    """Collect *path* and its subdirectories. Returns False once the scan must stop."""
    if os.path.islink(path) or not os.path.isdir(path):
        if not os.path.lexists(path):
            _warn(log, f'Cannot watch "{path}": no such directory.')
        return not truncate_on_file

    found.append(path)
    try:
        names = sorted(os.listdir(path))
    except OSError as exc:
        _warn(log, f'Cannot scan "{path}": {exc}')
        return not truncate_on_file

    for name in names:
        if not _scan(os.path.join(path, name), found, log, truncate_on_file):
            return False
    return True

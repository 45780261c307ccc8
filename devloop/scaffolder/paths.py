"""Turn a ``new`` command target into a module identity and a destination.

A target is either a filesystem path (``./sample``, ``../acme/sample``,
``/abs/path``) or an import path (``github.com/acme/sample``).  Import paths
live under the workspace root, so the two forms are interchangeable.
"""

from __future__ import annotations

import os
from pathlib import Path

from devloop.scaffolder.generator import ScaffoldError


class TargetResolutionError(ScaffoldError):
    """The target can't be mapped onto the workspace."""


def is_filesystem_target(target: str) -> bool:
    return target.startswith(".") or os.path.isabs(target)


def resolve_target(target: str, workspace_root: str | Path) -> tuple[str, Path]:
    """Return ``(module_identity, destination)`` for *target*.

    Raises:
        TargetResolutionError: Empty target, or a filesystem path outside
            *workspace_root*.
    """
    target = target.strip()
    if not target:
        raise TargetResolutionError("No target given: expected a path or an import path.")

    workspace = Path(workspace_root).resolve()

    if is_filesystem_target(target):
        destination = Path(target).resolve()
        try:
            relative = destination.relative_to(workspace)
        except ValueError:
            raise TargetResolutionError(
                f'"{target}" is outside the workspace root {workspace}.',
                path=destination,
            ) from None
        module = relative.as_posix()
        if module == ".":
            raise TargetResolutionError(
                f'"{target}" is the workspace root itself.', path=destination
            )
        return module, destination

    module = target.strip("/")
    return module, workspace / Path(*module.split("/"))

"""devloop scaffolder -- copies a skeleton application to a new project.

Quick usage::

    from devloop.scaffolder import RewriteRule, Scaffolder

    rule = RewriteRule(
        old="github.com/anonx/sunplate/skeleton",
        new="github.com/acme/widget",
    )
    Scaffolder().generate("./skeleton", "./widget", rule)
"""

from devloop.scaffolder.generator import (
    DestinationExistsError,
    EntryKind,
    RewriteRule,
    ScaffoldEntry,
    ScaffoldError,
    ScaffoldIOError,
    ScaffoldResult,
    Scaffolder,
    scan_template,
)
from devloop.scaffolder.paths import TargetResolutionError, resolve_target

__all__ = [
    "DestinationExistsError",
    "EntryKind",
    "RewriteRule",
    "ScaffoldEntry",
    "ScaffoldError",
    "ScaffoldIOError",
    "ScaffoldResult",
    "Scaffolder",
    "TargetResolutionError",
    "resolve_target",
    "scan_template",
]

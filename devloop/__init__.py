"""devloop -- project scaffolding and watch-and-rebuild helpers.

Two workflows are exposed:

* ``devloop.scaffolder`` copies a skeleton tree to a new location and
  rewrites the skeleton's import path inside source files.
* ``devloop.watcher`` resolves watch patterns to directories and runs a
  rebuild callback, one invocation at a time, whenever a file is written.
"""

__version__ = "0.1.0"

"""devloop configuration.

Typed configuration for the ``new`` and ``watch`` commands. All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_SKELETON_MODULE = "github.com/anonx/sunplate/skeleton"

_TRUTHY = {"1", "true", "yes", "on"}


def _default_workspace() -> Path:
    """Workspace root used to turn targets into import paths.

    ``$GOPATH/src`` when ``GOPATH`` is set (first entry only), otherwise the
    current directory.
    """
    gopath = os.environ.get("GOPATH", "")
    if gopath:
        return Path(gopath.split(os.pathsep)[0]) / "src"
    return Path.cwd()


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class ScaffoldConfig(BaseModel):
    """Settings for materialising a new project from the skeleton tree."""

    template_dir: Path = Field(default=Path("./skeleton"))
    skeleton_module: str = Field(
        default=DEFAULT_SKELETON_MODULE,
        min_length=1,
        description="Import path used inside the skeleton sources; rewritten on copy",
    )
    source_suffixes: list[str] = Field(
        default_factory=lambda: [".go"],
        min_length=1,
        description="File extensions whose content is rewritten",
    )
    workspace_root: Path = Field(default_factory=_default_workspace)

    @field_validator("source_suffixes")
    @classmethod
    def _suffixes_start_with_dot(cls, value: list[str]) -> list[str]:
        for suffix in value:
            if not suffix.startswith(".") or len(suffix) < 2:
                raise ValueError(f"source suffix must look like '.ext', got {suffix!r}")
        return value


class WatchConfig(BaseModel):
    """Settings for the watch-and-rebuild loop."""

    patterns: list[str] = Field(default_factory=lambda: ["./*"])
    command: str = Field(default="", description="Shell command run on every change")
    truncate_on_file: bool = Field(
        default=False,
        description="Stop a recursive pattern scan at the first plain file",
    )
    initial_run: bool = Field(default=True, description="Run the command once before watching")


class Config(BaseModel):
    """Global devloop configuration.

    Instances are created once by the CLI entry point, usually through
    :meth:`from_env`, then overridden by command-line flags.
    """

    scaffold: ScaffoldConfig = Field(default_factory=ScaffoldConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    verbose: bool = Field(default=False)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            DEVLOOP_TEMPLATE_DIR, DEVLOOP_SKELETON_MODULE,
            DEVLOOP_SOURCE_SUFFIXES, DEVLOOP_WORKSPACE,
            DEVLOOP_WATCH_PATTERNS, DEVLOOP_WATCH_COMMAND,
            DEVLOOP_TRUNCATE_ON_FILE, DEVLOOP_VERBOSE.
        """
        scaffold_kwargs: dict[str, Any] = {}
        if os.environ.get("DEVLOOP_TEMPLATE_DIR"):
            scaffold_kwargs["template_dir"] = Path(os.environ["DEVLOOP_TEMPLATE_DIR"])
        if os.environ.get("DEVLOOP_SKELETON_MODULE"):
            scaffold_kwargs["skeleton_module"] = os.environ["DEVLOOP_SKELETON_MODULE"]
        if os.environ.get("DEVLOOP_SOURCE_SUFFIXES"):
            scaffold_kwargs["source_suffixes"] = _split_list(os.environ["DEVLOOP_SOURCE_SUFFIXES"])
        if os.environ.get("DEVLOOP_WORKSPACE"):
            scaffold_kwargs["workspace_root"] = Path(os.environ["DEVLOOP_WORKSPACE"])

        watch_kwargs: dict[str, Any] = {}
        if os.environ.get("DEVLOOP_WATCH_PATTERNS"):
            watch_kwargs["patterns"] = _split_list(os.environ["DEVLOOP_WATCH_PATTERNS"])
        if os.environ.get("DEVLOOP_WATCH_COMMAND"):
            watch_kwargs["command"] = os.environ["DEVLOOP_WATCH_COMMAND"]
        if os.environ.get("DEVLOOP_TRUNCATE_ON_FILE"):
            watch_kwargs["truncate_on_file"] = (
                os.environ["DEVLOOP_TRUNCATE_ON_FILE"].strip().lower() in _TRUTHY
            )

        return cls(
            scaffold=ScaffoldConfig(**scaffold_kwargs),
            watch=WatchConfig(**watch_kwargs),
            verbose=os.environ.get("DEVLOOP_VERBOSE", "").strip().lower() in _TRUTHY,
        )

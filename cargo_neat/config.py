"""Analysis configuration — explicit options layered over environment defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


@dataclass(frozen=True)
class AnalysisConfig:
    """Everything the engine needs for one run.

    ``strict_globs`` makes a literal workspace member that matches nothing
    abort the run; otherwise it is reported as an issue and skipped.
    ``require_version_match`` restricts policy violations to local entries
    whose version equals the shared one.
    """

    root: Path = field(default_factory=lambda: Path("."))
    mandatory_workspace_dependencies: bool = False
    strict_globs: bool = True
    require_version_match: bool = False
    jobs: int | None = None  # None → os.cpu_count()

    @classmethod
    def from_env(cls, root: Path | str = ".", **overrides: Any) -> AnalysisConfig:
        """Build a config from ``CARGO_NEAT_*`` variables; non-None overrides win.

        Reads:
            CARGO_NEAT_STRICT_GLOBS           — default true
            CARGO_NEAT_REQUIRE_VERSION_MATCH  — default false
            CARGO_NEAT_JOBS                   — default: one worker per core
        """
        config = cls(
            root=Path(root),
            strict_globs=_env_bool("CARGO_NEAT_STRICT_GLOBS", True),
            require_version_match=_env_bool("CARGO_NEAT_REQUIRE_VERSION_MATCH", False),
            jobs=_env_int("CARGO_NEAT_JOBS"),
        )
        explicit = {k: v for k, v in overrides.items() if v is not None}
        return replace(config, **explicit)

    @property
    def max_workers(self) -> int:
        return self.jobs or os.cpu_count() or 1

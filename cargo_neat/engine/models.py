"""Data models for the dependency-usage engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

# Stable ordering of dependency kinds in reports
KIND_ORDER: dict[str, int] = {"normal": 0, "dev": 1, "build": 2}


def canonical_name(name: str) -> str:
    """Normalize a crate name or identifier: lowercase, ``-`` folded into ``_``."""
    return name.strip().lower().replace("-", "_")


@dataclass(frozen=True)
class DependencySpec:
    """A single dependency entry declared in a manifest."""

    name: str  # manifest key
    kind: str = "normal"  # "normal" | "dev" | "build"
    target: str | None = None  # e.g. "cfg(unix)" for [target.'cfg(unix)'.dependencies]
    package_rename: str | None = None  # `package = "..."`
    inherits_workspace: bool = False  # `workspace = true`
    version: str | None = None
    path: str | None = None
    git: str | None = None
    features: tuple[str, ...] = ()
    optional: bool = False

    @property
    def package_name(self) -> str:
        """The crate actually depended on (rename target, else the key)."""
        return self.package_rename or self.name

    @property
    def version_or_path(self) -> str | None:
        if self.version is not None:
            return self.version
        if self.path is not None:
            return f"path+{self.path}"
        if self.git is not None:
            return f"git+{self.git}"
        return None

    @property
    def sort_key(self) -> tuple[str, int, str]:
        return (self.name, KIND_ORDER.get(self.kind, len(KIND_ORDER)), self.target or "")

    @property
    def label(self) -> str:
        """Display form: the key, qualified when not a plain normal dependency."""
        qualifiers = []
        if self.kind != "normal":
            qualifiers.append(self.kind)
        if self.target:
            qualifiers.append(self.target)
        if not qualifiers:
            return self.name
        return f"{self.name} ({', '.join(qualifiers)})"


@dataclass
class Workspace:
    """Parsed `[workspace]` section of a root manifest."""

    manifest_path: Path
    shared_dependencies: dict[str, DependencySpec] = field(default_factory=dict)
    member_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    members: list[Path] = field(default_factory=list)  # resolved member manifests

    @property
    def root_dir(self) -> Path:
        return self.manifest_path.parent


@dataclass
class CrateManifest:
    """Parsed `[package]` manifest of a crate."""

    manifest_path: Path
    name: str | None = None
    dependencies: dict[str, DependencySpec] = field(default_factory=dict)
    dev_dependencies: dict[str, DependencySpec] = field(default_factory=dict)
    build_dependencies: dict[str, DependencySpec] = field(default_factory=dict)
    # target cfg → every target-scoped entry under it (all kinds)
    target_dependencies: dict[str, list[DependencySpec]] = field(default_factory=dict)
    build_script: str | None = "build.rs"  # None when `build = false`
    target_paths: list[str] = field(default_factory=list)  # [lib]/[[bin]]/... `path` keys
    workspace: Path | None = None  # manifest path of the owning workspace

    @property
    def crate_dir(self) -> Path:
        return self.manifest_path.parent

    def all_dependencies(self) -> list[DependencySpec]:
        """Every declared entry across all scopes, in a stable order."""
        deps = [
            *self.dependencies.values(),
            *self.dev_dependencies.values(),
            *self.build_dependencies.values(),
        ]
        for target in sorted(self.target_dependencies):
            deps.extend(self.target_dependencies[target])
        return sorted(deps, key=lambda d: d.sort_key)


@dataclass(frozen=True)
class AnalysisIssue:
    """A non-fatal error, isolated to one manifest or source file."""

    kind: str  # "parse-error" | "glob-error" | "io-error" | "analysis-error"
    path: Path
    message: str


@dataclass
class SourceScan:
    """Identifiers referenced in a crate's source tree."""

    identifiers: frozenset[str]
    files: list[Path] = field(default_factory=list)
    issues: list[AnalysisIssue] = field(default_factory=list)


@dataclass
class UsageResult:
    """Declared dependencies of one crate that its sources never reference."""

    manifest_path: Path
    unused_dependencies: list[DependencySpec] = field(default_factory=list)


@dataclass
class PolicyViolation:
    """Crate dependencies that duplicate a workspace-shared entry."""

    manifest_path: Path
    dependencies: list[DependencySpec] = field(default_factory=list)


@dataclass
class WorkspaceUsage:
    """Shared workspace dependencies no member crate uses.

    *incomplete_members* lists member manifests that could not be parsed;
    their usage is unknown, so the result may over-report.
    """

    manifest_path: Path
    unused_dependencies: list[DependencySpec] = field(default_factory=list)
    incomplete_members: list[Path] = field(default_factory=list)

    @property
    def incomplete(self) -> bool:
        return bool(self.incomplete_members)


@dataclass
class CrateAnalysis:
    """Per-crate worker output, merged into the report."""

    manifest_path: Path
    usage: UsageResult
    violation: PolicyViolation | None = None
    issues: list[AnalysisIssue] = field(default_factory=list)

"""Usage resolver — match declared dependencies against source identifiers."""

from __future__ import annotations

from collections.abc import Container, Mapping
from pathlib import Path

from cargo_neat.engine.models import (
    CrateManifest,
    DependencySpec,
    UsageResult,
    Workspace,
    WorkspaceUsage,
    canonical_name,
)


def search_identifier(dep: DependencySpec) -> str:
    """The token that marks *dep* as used: its rename target, else its key."""
    return canonical_name(dep.package_name)


def is_used(dep: DependencySpec, identifiers: Container[str]) -> bool:
    return search_identifier(dep) in identifiers


def resolve_usage(crate: CrateManifest, identifiers: frozenset[str]) -> UsageResult:
    """Every declared entry, in any scope, whose search identifier never appears.

    Feature-only or link-only dependencies cannot be told apart from dead ones
    and are reported as unused.
    """
    unused = [dep for dep in crate.all_dependencies() if not is_used(dep, identifiers)]
    return UsageResult(manifest_path=crate.manifest_path, unused_dependencies=unused)


def unused_workspace_dependencies(
    workspace: Workspace,
    crates: Mapping[Path, CrateManifest],
    results: Mapping[Path, UsageResult],
) -> WorkspaceUsage:
    """Shared entries that no member crate both declares and references.

    A member declaration counts when it targets the same package, whether it
    inherits with ``workspace = true`` or not.
    """
    used: set[str] = set()
    for path, crate in crates.items():
        if crate.workspace != workspace.manifest_path:
            continue
        result = results.get(path)
        unused = set(result.unused_dependencies) if result else set()
        for dep in crate.all_dependencies():
            if dep not in unused:
                used.add(canonical_name(dep.package_name))

    unused_shared = [
        dep
        for dep in workspace.shared_dependencies.values()
        if canonical_name(dep.package_name) not in used
    ]
    unused_shared.sort(key=lambda d: d.sort_key)
    return WorkspaceUsage(manifest_path=workspace.manifest_path, unused_dependencies=unused_shared)

"""Workspace policy checker — flag crates that bypass the shared dependency table."""

from __future__ import annotations

from cargo_neat.engine.models import (
    CrateManifest,
    DependencySpec,
    PolicyViolation,
    Workspace,
    canonical_name,
)


def _shared_index(workspace: Workspace) -> dict[str, DependencySpec]:
    index: dict[str, DependencySpec] = {}
    for key, dep in workspace.shared_dependencies.items():
        index.setdefault(canonical_name(dep.package_name), dep)
        index.setdefault(canonical_name(key), dep)
    return index


def check_policy(
    crate: CrateManifest,
    workspace: Workspace | None,
    *,
    require_version_match: bool = False,
) -> PolicyViolation:
    """Collect dependencies declared locally although the workspace shares them.

    By default the presence of a shared entry is enough: a local override with
    a different version is exactly what the policy forbids. With
    *require_version_match* only exact duplicates are flagged.
    """
    violation = PolicyViolation(manifest_path=crate.manifest_path)
    if workspace is None:
        return violation

    index = _shared_index(workspace)
    for dep in crate.all_dependencies():
        if dep.inherits_workspace:
            continue
        shared = index.get(canonical_name(dep.package_name)) or index.get(canonical_name(dep.name))
        if shared is None:
            continue
        if require_version_match and dep.version_or_path != shared.version_or_path:
            continue
        violation.dependencies.append(dep)
    return violation

"""Report model — deterministic merge of per-crate and per-workspace results."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cargo_neat.engine.models import (
    AnalysisIssue,
    CrateAnalysis,
    DependencySpec,
    PolicyViolation,
    UsageResult,
    WorkspaceUsage,
)


@dataclass
class Report:
    """Findings of one run, every list sorted by manifest path."""

    root: Path
    unused_workspace_dependencies: list[WorkspaceUsage] = field(default_factory=list)
    unused_dependencies: list[UsageResult] = field(default_factory=list)
    policy_violations: list[PolicyViolation] = field(default_factory=list)
    issues: list[AnalysisIssue] = field(default_factory=list)
    mandatory_workspace_dependencies: bool = False

    @property
    def has_unused(self) -> bool:
        return bool(self.unused_workspace_dependencies or self.unused_dependencies)

    @property
    def has_violations(self) -> bool:
        return bool(self.policy_violations)

    @property
    def has_findings(self) -> bool:
        return self.has_unused or self.has_violations

    def unused_for(self, manifest_path: Path) -> list[DependencySpec]:
        for result in self.unused_dependencies:
            if result.manifest_path == manifest_path:
                return result.unused_dependencies
        return []

    def unused_workspace_for(self, manifest_path: Path) -> list[DependencySpec]:
        for usage in self.unused_workspace_dependencies:
            if usage.manifest_path == manifest_path:
                return usage.unused_dependencies
        return []

    def violations_for(self, manifest_path: Path) -> list[DependencySpec]:
        for violation in self.policy_violations:
            if violation.manifest_path == manifest_path:
                return violation.dependencies
        return []

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": str(self.root),
            "unused_workspace_dependencies": [
                {
                    **_group(u.manifest_path, u.unused_dependencies),
                    "incomplete_members": [str(m) for m in u.incomplete_members],
                }
                for u in self.unused_workspace_dependencies
            ],
            "unused_dependencies": [
                _group(u.manifest_path, u.unused_dependencies) for u in self.unused_dependencies
            ],
            "non_workspace_dependencies": [
                _group(v.manifest_path, v.dependencies) for v in self.policy_violations
            ],
            "issues": [
                {"kind": i.kind, "path": str(i.path), "message": i.message} for i in self.issues
            ],
        }


def _dep_to_dict(dep: DependencySpec) -> dict[str, Any]:
    return {
        "name": dep.name,
        "package": dep.package_name,
        "kind": dep.kind,
        "target": dep.target,
        "workspace": dep.inherits_workspace,
        "version": dep.version_or_path,
    }


def _group(manifest_path: Path, deps: list[DependencySpec]) -> dict[str, Any]:
    return {"manifest": str(manifest_path), "dependencies": [_dep_to_dict(d) for d in deps]}


def _sorted_deps(deps: Iterable[DependencySpec]) -> list[DependencySpec]:
    return sorted(deps, key=lambda d: d.sort_key)


def build_report(
    root: Path,
    workspace_usages: Iterable[WorkspaceUsage],
    analyses: Iterable[CrateAnalysis],
    issues: Iterable[AnalysisIssue] = (),
    *,
    mandatory_workspace_dependencies: bool = False,
) -> Report:
    """Merge results into a :class:`Report`; input order does not matter.

    Only manifests with findings are kept.
    """
    analyses = sorted(analyses, key=lambda a: a.manifest_path)
    all_issues = list(issues)

    unused: list[UsageResult] = []
    violations: list[PolicyViolation] = []
    for analysis in analyses:
        all_issues.extend(analysis.issues)
        if analysis.usage.unused_dependencies:
            unused.append(
                UsageResult(
                    manifest_path=analysis.manifest_path,
                    unused_dependencies=_sorted_deps(analysis.usage.unused_dependencies),
                )
            )
        if analysis.violation is not None and analysis.violation.dependencies:
            violations.append(
                PolicyViolation(
                    manifest_path=analysis.manifest_path,
                    dependencies=_sorted_deps(analysis.violation.dependencies),
                )
            )

    workspaces = [
        WorkspaceUsage(
            manifest_path=u.manifest_path,
            unused_dependencies=_sorted_deps(u.unused_dependencies),
            incomplete_members=sorted(u.incomplete_members),
        )
        for u in sorted(workspace_usages, key=lambda u: u.manifest_path)
        if u.unused_dependencies
    ]

    return Report(
        root=root,
        unused_workspace_dependencies=workspaces,
        unused_dependencies=unused,
        policy_violations=violations,
        issues=sorted(set(all_issues), key=lambda i: (str(i.path), i.kind, i.message)),
        mandatory_workspace_dependencies=mandatory_workspace_dependencies,
    )

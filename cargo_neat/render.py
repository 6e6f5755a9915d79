"""Console rendering of a Report as indented trees."""

from __future__ import annotations

from cargo_neat.engine.models import DependencySpec, WorkspaceUsage
from cargo_neat.engine.report import Report

_BRANCH = "├── "
_LAST = "└── "
_PIPE = "│   "
_SPACE = "    "


def render_tree(title: str, groups: list[tuple[str, list[str]]]) -> str:
    """Render ``title`` with one subtree per ``(label, leaves)`` group.

    Example::

        Unused workspace dependencies :
        └── /ws/Cargo.toml
            ├── anyhow
            └── clappen
    """
    lines = [title]
    for i, (label, leaves) in enumerate(groups):
        last_group = i == len(groups) - 1
        lines.append((_LAST if last_group else _BRANCH) + label)
        indent = _SPACE if last_group else _PIPE
        for j, leaf in enumerate(leaves):
            lines.append(indent + (_LAST if j == len(leaves) - 1 else _BRANCH) + leaf)
    return "\n".join(lines)


def _labels(deps: list[DependencySpec]) -> list[str]:
    return [d.label for d in deps]


def _workspace_label(usage: WorkspaceUsage) -> str:
    if not usage.incomplete:
        return str(usage.manifest_path)
    return f"{usage.manifest_path} (incomplete: {len(usage.incomplete_members)} member(s) failed to parse)"


def render_report(report: Report) -> str:
    sections: list[str] = []

    if report.unused_workspace_dependencies:
        sections.append(
            render_tree(
                "Unused workspace dependencies :",
                [(_workspace_label(u), _labels(u.unused_dependencies)) for u in report.unused_workspace_dependencies],
            )
        )
    else:
        sections.append("No unused workspace dependencies")

    if report.unused_dependencies:
        sections.append(
            render_tree(
                "Unused dependencies :",
                [(str(u.manifest_path), _labels(u.unused_dependencies)) for u in report.unused_dependencies],
            )
        )
    else:
        sections.append("No unused dependencies")

    if report.mandatory_workspace_dependencies:
        if report.policy_violations:
            sections.append(
                render_tree(
                    "Non workspace dependencies :",
                    [(str(v.manifest_path), _labels(v.dependencies)) for v in report.policy_violations],
                )
            )
        else:
            sections.append("No non workspace dependencies")

    if report.issues:
        by_path: dict[str, list[str]] = {}
        for issue in report.issues:
            by_path.setdefault(str(issue.path), []).append(f"[{issue.kind}] {issue.message}")
        sections.append(render_tree("Errors :", list(by_path.items())))

    return "\n\n".join(sections)

"""Manifest locator — find Cargo.toml files and group them into workspaces."""

from __future__ import annotations

import glob
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from cargo_neat.engine.manifest import MANIFEST_NAME, CargoTomlParser
from cargo_neat.engine.models import AnalysisIssue
from cargo_neat.exceptions import ManifestNotFoundError, ManifestParseError, MemberGlobError

log = structlog.get_logger("cargo_neat.engine")

# Build output and VCS directories never hold manifests worth analyzing
_SKIP_DIRS = {"target", ".git", ".hg", ".svn", "node_modules"}

_GLOB_CHARS = frozenset("*?[")


@dataclass
class WorkspaceLayout:
    """A workspace root and the member manifests its patterns resolve to."""

    manifest_path: Path
    members: list[Path] = field(default_factory=list)
    failed_members: list[Path] = field(default_factory=list)  # member manifests that did not load


@dataclass
class ManifestLayout:
    """Everything the locator found under a root directory."""

    root: Path
    documents: dict[Path, dict[str, Any]] = field(default_factory=dict)
    workspaces: list[WorkspaceLayout] = field(default_factory=list)
    # crate manifest → owning workspace manifest (None for standalone crates)
    crates: dict[Path, Path | None] = field(default_factory=dict)
    issues: list[AnalysisIssue] = field(default_factory=list)

    @property
    def standalone(self) -> list[Path]:
        return sorted(p for p, ws in self.crates.items() if ws is None)


def is_glob(pattern: str) -> bool:
    return any(c in _GLOB_CHARS for c in pattern)


def find_manifests(root: Path, issues: list[AnalysisIssue] | None = None) -> list[Path]:
    """Return every Cargo.toml under *root*, skipping build and VCS directories.

    Directories that cannot be listed are logged and, when *issues* is given,
    recorded as ``io-error`` issues.
    """

    def _onerror(exc: OSError) -> None:
        path = Path(exc.filename) if exc.filename else root
        log.warning("locator.walk_failed", path=str(path), error=exc.strerror or str(exc))
        if issues is not None:
            issues.append(AnalysisIssue("io-error", path, f"failed to list {path}: {exc.strerror or exc}"))

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_onerror):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
        if MANIFEST_NAME in filenames:
            found.append(Path(dirpath) / MANIFEST_NAME)
    return sorted(found)


def expand_pattern(base: Path, pattern: str) -> list[Path]:
    """Expand one `members`/`exclude` entry into existing, resolved paths."""
    pattern = pattern.strip().rstrip("/")
    if pattern in ("", "."):
        return [base.resolve()]
    if not is_glob(pattern):
        candidate = base / pattern
        return [candidate.resolve()] if candidate.exists() else []
    return [Path(p).resolve() for p in sorted(glob.glob(str(base / pattern)))]


def resolve_members(
    workspace_dir: Path,
    patterns: list[str],
    excludes: list[str],
) -> tuple[list[Path], list[str]]:
    """Resolve member patterns to crate manifests.

    Returns ``(member_manifests, unmatched)`` where *unmatched* lists the
    literal (non-wildcard) patterns that resolved to no crate.
    """
    excluded: set[Path] = set()
    for pattern in excludes:
        excluded.update(expand_pattern(workspace_dir, pattern))

    members: list[Path] = []
    unmatched: list[str] = []
    for pattern in patterns:
        hits = [d for d in expand_pattern(workspace_dir, pattern) if (d / MANIFEST_NAME).is_file()]
        if not hits:
            if is_glob(pattern):
                log.debug("locator.pattern_empty", workspace=str(workspace_dir), pattern=pattern)
            else:
                unmatched.append(pattern)
            continue
        for crate_dir in hits:
            if crate_dir in excluded or any(ex in crate_dir.parents for ex in excluded):
                continue
            manifest = crate_dir / MANIFEST_NAME
            if manifest not in members:
                members.append(manifest)
    return sorted(members), unmatched


def _member_lists(data: dict[str, Any]) -> tuple[list[str], list[str]] | None:
    """`(members, exclude)` string lists, or None when `[workspace]` is malformed."""
    section = data.get("workspace")
    if not isinstance(section, dict):
        return None
    patterns = section.get("members") or []
    excludes = section.get("exclude") or []
    if not isinstance(patterns, list) or not isinstance(excludes, list):
        return None
    return (
        [p for p in patterns if isinstance(p, str)],
        [p for p in excludes if isinstance(p, str)],
    )


def find_enclosing_workspace(root: Path, parser: CargoTomlParser) -> Path | None:
    """Return the directory of the workspace that has *root*'s crate as a member.

    Mirrors cargo: walk up from *root* and stop at the first `[workspace]`
    manifest whose members (or root package) include *root*'s Cargo.toml.
    """
    manifest = root / MANIFEST_NAME
    if not manifest.is_file():
        return None
    try:
        if parser.is_workspace(parser.read(manifest)):
            return None
    except ManifestParseError:
        return None

    for parent in root.parents:
        candidate = parent / MANIFEST_NAME
        if not candidate.is_file():
            continue
        try:
            data = parser.read(candidate)
        except ManifestParseError:
            continue
        if not parser.is_workspace(data):
            continue
        lists = _member_lists(data)
        if lists is None:
            return None
        members, _ = resolve_members(parent, *lists)
        if manifest in members:
            return parent
        return None
    return None


def locate_manifests(
    root: Path | str,
    *,
    parser: CargoTomlParser | None = None,
    strict_globs: bool = True,
) -> ManifestLayout:
    """Discover manifests under *root* and classify them.

    When *root* is a member crate of a workspace above it, the whole
    workspace is analyzed instead, as ``cargo`` would resolve it.

    Raises :class:`ManifestNotFoundError` when *root* holds no Cargo.toml and
    :class:`MemberGlobError` for an unmatched literal member in strict mode.
    Malformed manifests are recorded as issues and left out.
    """
    parser = parser or CargoTomlParser()
    root = Path(root).resolve()
    if root.is_file():
        root = root.parent
    if not root.is_dir():
        raise ManifestNotFoundError(root)

    enclosing = find_enclosing_workspace(root, parser)
    if enclosing is not None:
        log.debug("locator.enclosing_workspace", requested=str(root), workspace=str(enclosing))
        root = enclosing

    issues: list[AnalysisIssue] = []
    paths = find_manifests(root, issues)
    if not paths:
        raise ManifestNotFoundError(root)

    layout = ManifestLayout(root=root, issues=issues)
    attempted = set(paths)
    for path in paths:
        _load(layout, parser, path)

    for path in sorted(layout.documents):
        data = layout.documents[path]
        if not parser.is_workspace(data):
            continue
        lists = _member_lists(data)
        if lists is None:
            # parse_workspace reports the error later
            layout.workspaces.append(WorkspaceLayout(manifest_path=path))
            continue

        members, unmatched = resolve_members(path.parent, *lists)
        for pattern in unmatched:
            err = MemberGlobError(path, pattern)
            if strict_globs:
                raise err
            log.warning("locator.member_unmatched", workspace=str(path), pattern=pattern)
            layout.issues.append(AnalysisIssue("glob-error", path, str(err)))

        # The root package is always a member of its own workspace
        if parser.is_crate(data) and path not in members:
            members.insert(0, path)

        workspace = WorkspaceLayout(manifest_path=path)
        for member in members:
            if member not in layout.documents:
                if member not in attempted:
                    attempted.add(member)
                    _load(layout, parser, member)
                if member not in layout.documents:
                    workspace.failed_members.append(member)
                    continue
            owner = layout.crates.get(member)
            if owner is not None:
                log.warning(
                    "locator.member_claimed_twice",
                    manifest=str(member),
                    kept=str(owner),
                    ignored=str(path),
                )
                continue
            layout.crates[member] = path
            workspace.members.append(member)
        layout.workspaces.append(workspace)
        log.debug("locator.workspace_found", workspace=str(path), members=len(workspace.members))

    for path, data in layout.documents.items():
        if parser.is_crate(data) and path not in layout.crates:
            layout.crates[path] = None

    return layout


def _load(layout: ManifestLayout, parser: CargoTomlParser, path: Path) -> bool:
    try:
        layout.documents[path] = parser.read(path)
    except ManifestParseError as exc:
        log.warning("locator.manifest_invalid", manifest=str(path), error=exc.reason)
        layout.issues.append(AnalysisIssue("parse-error", path, str(exc)))
        return False
    return True

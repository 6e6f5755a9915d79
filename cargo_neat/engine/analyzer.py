"""WorkspaceAnalyzer — locate, parse, scan and merge into a Report."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import structlog

from cargo_neat.config import AnalysisConfig
from cargo_neat.engine.locator import ManifestLayout, locate_manifests
from cargo_neat.engine.manifest import CargoTomlParser
from cargo_neat.engine.models import AnalysisIssue, CrateAnalysis, CrateManifest, Workspace
from cargo_neat.engine.policy import check_policy
from cargo_neat.engine.report import Report, build_report
from cargo_neat.engine.source_scanner import scan_crate
from cargo_neat.engine.usage import resolve_usage, unused_workspace_dependencies
from cargo_neat.exceptions import ManifestParseError, NeatError, NoUsableManifestError

log = structlog.get_logger("cargo_neat.engine")


def analyze(config: AnalysisConfig) -> Report:
    """Run the whole pipeline for *config* (no side effects besides logging)."""
    return WorkspaceAnalyzer(config).run()


class WorkspaceAnalyzer:
    """Pipeline: locate → parse workspaces → parse crates → per-crate analysis → merge."""

    def __init__(self, config: AnalysisConfig, parser: CargoTomlParser | None = None) -> None:
        self._config = config
        self._parser = parser or CargoTomlParser()

    def run(self) -> Report:
        config = self._config
        layout = locate_manifests(
            config.root, parser=self._parser, strict_globs=config.strict_globs
        )
        issues = list(layout.issues)

        # Workspace roots first: they supply the shared tables crates inherit from
        workspaces = self._parse_workspaces(layout, issues)
        crates = self._parse_crates(layout, workspaces, issues)
        if not workspaces and not crates:
            raise NoUsableManifestError(f"no manifest under {layout.root} could be parsed")

        log.info(
            "analyzer.parsed",
            root=str(layout.root),
            workspaces=len(workspaces),
            crates=len(crates),
        )

        analyses = self._analyze_crates(crates, workspaces, issues)
        results = {a.manifest_path: a.usage for a in analyses}
        workspace_usages = []
        for entry in layout.workspaces:
            workspace = workspaces.get(entry.manifest_path)
            if workspace is None:
                continue
            usage = unused_workspace_dependencies(workspace, crates, results)
            usage.incomplete_members = sorted(
                set(entry.failed_members) | {m for m in entry.members if m not in crates}
            )
            if usage.incomplete:
                log.warning(
                    "analyzer.workspace_incomplete",
                    workspace=str(entry.manifest_path),
                    failed=len(usage.incomplete_members),
                )
                issues.append(
                    AnalysisIssue(
                        "incomplete-workspace",
                        entry.manifest_path,
                        f"{len(usage.incomplete_members)} member manifest(s) could not be parsed; "
                        "unused workspace dependencies may be over-reported",
                    )
                )
            workspace_usages.append(usage)

        return build_report(
            layout.root,
            workspace_usages,
            analyses,
            issues,
            mandatory_workspace_dependencies=config.mandatory_workspace_dependencies,
        )

    # ── parsing ──────────────────────────────────────────────────────────

    def _parse_workspaces(
        self, layout: ManifestLayout, issues: list[AnalysisIssue]
    ) -> dict[Path, Workspace]:
        workspaces: dict[Path, Workspace] = {}
        for entry in layout.workspaces:
            try:
                workspace = self._parser.parse_workspace(
                    entry.manifest_path, layout.documents[entry.manifest_path]
                )
            except ManifestParseError as exc:
                log.warning("analyzer.workspace_invalid", manifest=str(exc.manifest_path), error=exc.reason)
                issues.append(AnalysisIssue("parse-error", exc.manifest_path, str(exc)))
                continue
            workspace.members = list(entry.members)
            workspaces[entry.manifest_path] = workspace
        return workspaces

    def _parse_crates(
        self,
        layout: ManifestLayout,
        workspaces: dict[Path, Workspace],
        issues: list[AnalysisIssue],
    ) -> dict[Path, CrateManifest]:
        crates: dict[Path, CrateManifest] = {}
        for path in sorted(layout.crates):
            owner = layout.crates[path]
            workspace = workspaces.get(owner) if owner is not None else None
            try:
                crate = self._parser.parse_crate(path, layout.documents[path], workspace)
            except ManifestParseError as exc:
                log.warning("analyzer.crate_invalid", manifest=str(exc.manifest_path), error=exc.reason)
                issues.append(AnalysisIssue("parse-error", exc.manifest_path, str(exc)))
                continue
            crates[path] = crate
        return crates

    # ── per-crate analysis ───────────────────────────────────────────────

    def _analyze_one(self, crate: CrateManifest, workspace: Workspace | None) -> CrateAnalysis:
        scan = scan_crate(crate)
        usage = resolve_usage(crate, scan.identifiers)
        violation = None
        if self._config.mandatory_workspace_dependencies:
            violation = check_policy(
                crate,
                workspace,
                require_version_match=self._config.require_version_match,
            )
        return CrateAnalysis(
            manifest_path=crate.manifest_path,
            usage=usage,
            violation=violation,
            issues=list(scan.issues),
        )

    def _analyze_crates(
        self,
        crates: dict[Path, CrateManifest],
        workspaces: dict[Path, Workspace],
        issues: list[AnalysisIssue],
    ) -> list[CrateAnalysis]:
        analyses: list[CrateAnalysis] = []
        with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
            futures = {
                pool.submit(
                    self._analyze_one,
                    crate,
                    workspaces.get(crate.workspace) if crate.workspace else None,
                ): path
                for path, crate in crates.items()
            }
            for future in as_completed(futures):
                path = futures[future]
                try:
                    analyses.append(future.result())
                except (NeatError, OSError) as exc:
                    log.error("analyzer.crate_failed", manifest=str(path), error=str(exc))
                    issues.append(AnalysisIssue("analysis-error", path, str(exc)))
        # completion order is scheduling-dependent
        analyses.sort(key=lambda a: a.manifest_path)
        return analyses

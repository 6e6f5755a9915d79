"""End-to-end tests for WorkspaceAnalyzer on real directory trees."""

from __future__ import annotations

from pathlib import Path

import pytest

from cargo_neat.config import AnalysisConfig
from cargo_neat.engine.analyzer import WorkspaceAnalyzer, analyze
from cargo_neat.exceptions import ManifestNotFoundError, MemberGlobError, NoUsableManifestError


def _names(deps) -> list[str]:
    return [d.name for d in deps]


class TestScenario:
    def test_unused_workspace_dependencies(self, sample_workspace: Path):
        report = analyze(AnalysisConfig(root=sample_workspace))
        assert _names(report.unused_workspace_for(sample_workspace / "Cargo.toml")) == ["clappen"]

    def test_unused_crate_dependencies(self, sample_workspace: Path):
        report = analyze(AnalysisConfig(root=sample_workspace))
        assert report.unused_for(sample_workspace / "crates/crate1/Cargo.toml") == []
        assert _names(report.unused_for(sample_workspace / "crates/crate2/Cargo.toml")) == ["futures-lite"]
        assert report.has_unused

    def test_policy_disabled_by_default(self, sample_workspace: Path):
        report = analyze(AnalysisConfig(root=sample_workspace))
        assert report.policy_violations == []

    def test_policy_flags_local_duplicates(self, sample_workspace: Path):
        report = analyze(AnalysisConfig(root=sample_workspace, mandatory_workspace_dependencies=True))
        assert [v.manifest_path for v in report.policy_violations] == [
            sample_workspace / "crates/crate1/Cargo.toml"
        ]
        assert _names(report.policy_violations[0].dependencies) == ["serde"]
        # futures-lite has no shared entry to inherit from
        assert report.violations_for(sample_workspace / "crates/crate2/Cargo.toml") == []

    def test_clean_workspace(self, root: Path, write):
        write("Cargo.toml", '[workspace]\nmembers = ["app"]\n[workspace.dependencies]\nlog = "0.4"\n')
        write("app/Cargo.toml", '[package]\nname = "app"\n[dependencies]\nlog.workspace = true\n')
        write("app/src/main.rs", "fn main() { log::info!(\"hi\"); }\n")

        report = analyze(AnalysisConfig(root=root, mandatory_workspace_dependencies=True))
        assert not report.has_findings
        assert report.issues == []

    def test_rename_used_through_package_name(self, root: Path, write):
        write("Cargo.toml", '[package]\nname = "solo"\n[dependencies]\nfoo = { package = "real-foo", version = "1" }\n')
        write("src/lib.rs", "pub use real_foo::Thing;\n")

        report = analyze(AnalysisConfig(root=root))
        assert report.unused_dependencies == []


class TestMemberDirectory:
    def test_run_from_member_analyzes_workspace(self, sample_workspace: Path):
        report = analyze(AnalysisConfig(root=sample_workspace / "crates/crate1"))
        assert report.root == sample_workspace
        assert report.issues == []
        assert _names(report.unused_workspace_for(sample_workspace / "Cargo.toml")) == ["clappen"]
        assert _names(report.unused_for(sample_workspace / "crates/crate2/Cargo.toml")) == ["futures-lite"]

    def test_member_manifest_path_accepted(self, sample_workspace: Path):
        report = analyze(AnalysisConfig(root=sample_workspace / "crates/crate2/Cargo.toml"))
        assert report.root == sample_workspace

    def test_standalone_crate_keeps_inherited_entries(self, root: Path, write):
        write(
            "Cargo.toml",
            '[package]\nname = "solo"\n[dependencies]\nanyhow = { workspace = true }\nlog.workspace = true\n',
        )
        write("src/lib.rs", "pub fn f() -> anyhow::Result<()> { Ok(()) }\n")

        report = analyze(AnalysisConfig(root=root))
        assert report.issues == []
        assert _names(report.unused_for(root / "Cargo.toml")) == ["log"]


class TestFailureIsolation:
    def test_malformed_sibling(self, sample_workspace: Path, write):
        write("crates/crate3/Cargo.toml", "[package\nname = 'broken'")

        report = analyze(AnalysisConfig(root=sample_workspace))
        assert [(i.kind, i.path) for i in report.issues] == [
            ("incomplete-workspace", sample_workspace / "Cargo.toml"),
            ("parse-error", sample_workspace / "crates/crate3/Cargo.toml"),
        ]
        assert _names(report.unused_for(sample_workspace / "crates/crate2/Cargo.toml")) == ["futures-lite"]

    def test_unresolvable_inheritance_isolated(self, sample_workspace: Path, write):
        write(
            "crates/crate3/Cargo.toml",
            '[package]\nname = "crate3"\n[dependencies]\nmissing = { workspace = true }\n',
        )
        report = analyze(AnalysisConfig(root=sample_workspace))
        assert [i.kind for i in report.issues] == ["incomplete-workspace", "parse-error"]
        assert "not found in workspace.dependencies" in report.issues[1].message

        # crate3 may use clappen: the workspace result is flagged as partial
        [usage] = report.unused_workspace_dependencies
        assert _names(usage.unused_dependencies) == ["clappen"]
        assert usage.incomplete_members == [sample_workspace / "crates/crate3/Cargo.toml"]
        assert report.to_dict()["unused_workspace_dependencies"][0]["incomplete_members"] == [
            str(sample_workspace / "crates/crate3/Cargo.toml")
        ]

    def test_complete_workspace_not_flagged(self, sample_workspace: Path):
        report = analyze(AnalysisConfig(root=sample_workspace))
        [usage] = report.unused_workspace_dependencies
        assert usage.incomplete_members == []

    def test_everything_malformed_is_fatal(self, root: Path, write):
        write("Cargo.toml", "[package\n")
        with pytest.raises(NoUsableManifestError):
            analyze(AnalysisConfig(root=root))

    def test_no_manifest_is_fatal(self, root: Path):
        with pytest.raises(ManifestNotFoundError):
            analyze(AnalysisConfig(root=root))

    def test_strict_globs(self, sample_workspace: Path, write):
        write(
            "Cargo.toml",
            '[workspace]\nmembers = ["crates/*", "tools/gone"]\n[workspace.dependencies]\nanyhow = "1"\nserde = "1"\n',
        )
        with pytest.raises(MemberGlobError):
            analyze(AnalysisConfig(root=sample_workspace))

        report = analyze(AnalysisConfig(root=sample_workspace, strict_globs=False))
        assert [i.kind for i in report.issues] == ["glob-error"]


class TestDeterminism:
    def test_repeated_runs_identical(self, sample_workspace: Path):
        config = AnalysisConfig(root=sample_workspace, mandatory_workspace_dependencies=True)
        assert analyze(config).to_dict() == analyze(config).to_dict()

    def test_worker_count_does_not_matter(self, sample_workspace: Path):
        single = WorkspaceAnalyzer(AnalysisConfig(root=sample_workspace, jobs=1)).run()
        many = WorkspaceAnalyzer(AnalysisConfig(root=sample_workspace, jobs=8)).run()
        assert single.to_dict() == many.to_dict()

"""Tests for the textual source scanner."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from cargo_neat.engine.models import CrateManifest
from cargo_neat.engine.source_scanner import collect_source_files, scan_crate, tokenize


def _crate(crate_dir: Path, **kwargs) -> CrateManifest:
    return CrateManifest(manifest_path=crate_dir / "Cargo.toml", name="c", **kwargs)


class TestTokenize:
    def test_identifier_runs(self):
        tokens = tokenize("use serde_json::Value; let x = Foo::new(1);")
        assert {"use", "serde_json", "value", "let", "x", "foo", "new", "1"} == tokens

    def test_lowercased(self):
        assert "tokio" in tokenize("#[Tokio::main]")

    def test_string_literals_count(self):
        assert "real_foo" in tokenize('let name = "real_foo";')


class TestCollectSourceFiles:
    def test_conventional_roots(self, root: Path, write):
        write("src/lib.rs")
        write("src/nested/mod.rs")
        write("tests/it.rs")
        write("examples/demo.rs")
        write("benches/bench.rs")
        write("build.rs")
        write("src/notes.md")
        write("target/debug/out.rs")
        write("scripts/tool.rs")

        files = collect_source_files(_crate(root))
        rel = [f.relative_to(root).as_posix() for f in files]
        assert rel == [
            "benches/bench.rs",
            "build.rs",
            "examples/demo.rs",
            "src/lib.rs",
            "src/nested/mod.rs",
            "tests/it.rs",
        ]

    def test_build_disabled(self, root: Path, write):
        write("build.rs")
        write("src/lib.rs")
        files = collect_source_files(_crate(root, build_script=None))
        assert root / "build.rs" not in files

    def test_explicit_target_path(self, root: Path, write):
        write("cli/main.rs")
        write("cli/commands.rs")
        files = collect_source_files(_crate(root, target_paths=["cli/main.rs"]))
        assert files == [root / "cli/commands.rs", root / "cli/main.rs"]

    def test_target_path_at_crate_root(self, root: Path, write):
        write("lib.rs")
        write("helpers.rs")
        write("other/x.rs")
        files = collect_source_files(_crate(root, target_paths=["lib.rs"]))
        assert files == [root / "helpers.rs", root / "lib.rs"]

    def test_empty_crate(self, root: Path):
        assert collect_source_files(_crate(root)) == []


class TestScanCrate:
    def test_identifiers_across_files(self, root: Path, write):
        write("src/lib.rs", "use anyhow::Context;\n")
        write("tests/it.rs", "use pretty_assertions::assert_eq;\n")
        write("build.rs", "fn main() { cc::Build::new(); }\n")

        scan = scan_crate(_crate(root))
        assert {"anyhow", "pretty_assertions", "cc"} <= scan.identifiers
        assert scan.issues == []
        assert len(scan.files) == 3

    def test_non_utf8_content_is_tolerated(self, root: Path):
        (root / "src").mkdir()
        (root / "src" / "lib.rs").write_bytes(b"use rand;\n\xff\xfe\n")
        scan = scan_crate(_crate(root))
        assert "rand" in scan.identifiers
        assert scan.issues == []

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_unreadable_file_reported(self, root: Path, write):
        write("src/lib.rs", "use log;\n")
        os.symlink(root / "missing.rs", root / "src" / "broken.rs")

        scan = scan_crate(_crate(root))
        assert "log" in scan.identifiers
        assert [(i.kind, i.path) for i in scan.issues] == [("io-error", root / "src" / "broken.rs")]

    def test_unlistable_directory_reported(self, root: Path, write, unlistable):
        write("src/lib.rs", "use anyhow;\nmod sub;\n")
        write("src/sub/mod.rs", "use rand;\n")
        unlistable(root / "src" / "sub")

        scan = scan_crate(_crate(root))
        assert "anyhow" in scan.identifiers
        assert "rand" not in scan.identifiers
        assert [(i.kind, i.path) for i in scan.issues] == [("io-error", root / "src" / "sub")]
        assert "Permission denied" in scan.issues[0].message

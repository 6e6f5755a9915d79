"""Source scanner — collect the identifiers a crate's Rust sources reference.

The scan is textual: any identifier-shaped token counts, whether it sits in a
`use` path, an attribute, a macro invocation or a string literal.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import structlog

from cargo_neat.engine.models import AnalysisIssue, CrateManifest, SourceScan, canonical_name
from cargo_neat.exceptions import SourceReadError

log = structlog.get_logger("cargo_neat.engine")

_SOURCE_DIRS = ("src", "tests", "examples", "benches")

_SKIP_DIRS = {"target", ".git"}

_SOURCE_SUFFIX = ".rs"

_IDENT_RE = re.compile(r"[A-Za-z0-9_]+")


def tokenize(text: str) -> set[str]:
    """Split *text* into normalized identifier tokens."""
    return {canonical_name(tok) for tok in _IDENT_RE.findall(text)}


def _walk_rs(root: Path, issues: list[AnalysisIssue] | None = None) -> list[Path]:
    def _onerror(exc: OSError) -> None:
        path = Path(exc.filename) if exc.filename else root
        err = SourceReadError(path, exc.strerror or str(exc))
        log.warning("scanner.read_failed", file=str(path), error=err.reason)
        if issues is not None:
            issue = AnalysisIssue("io-error", path, str(err))
            if issue not in issues:
                issues.append(issue)

    files = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_onerror):
        dirnames[:] = [d for d in dirnames if d not in _SKIP_DIRS]
        for f in filenames:
            if f.endswith(_SOURCE_SUFFIX):
                files.append(Path(dirpath) / f)
    return files


def collect_source_files(
    crate: CrateManifest, issues: list[AnalysisIssue] | None = None
) -> list[Path]:
    """List every Rust file that may belong to *crate*.

    Covers the conventional target directories, the build script and any
    explicit `path` of a lib/bin/example/test/bench target. A target file
    outside those directories pulls in the Rust files around it. Directories
    that cannot be listed are recorded in *issues* as ``io-error``.
    """
    crate_dir = crate.crate_dir
    files: set[Path] = set()

    for name in _SOURCE_DIRS:
        directory = crate_dir / name
        if directory.is_dir():
            files.update(_walk_rs(directory, issues))

    extra = list(crate.target_paths)
    if crate.build_script:
        extra.append(crate.build_script)
    for rel in extra:
        entry = crate_dir / rel
        if not entry.is_file():
            continue
        files.add(entry)
        parent = entry.parent
        if parent == crate_dir:
            files.update(p for p in crate_dir.glob(f"*{_SOURCE_SUFFIX}") if p.is_file())
        elif parent.is_dir():
            files.update(_walk_rs(parent, issues))

    return sorted(files)


def read_source(file_path: Path) -> str:
    try:
        return file_path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise SourceReadError(file_path, exc.strerror or str(exc)) from exc


def scan_crate(crate: CrateManifest) -> SourceScan:
    """Build the identifier set for one crate.

    Unreadable files and directories are skipped and reported as
    ``io-error`` issues; the identifier set is then partial, so dependencies
    only used from those files may show up as unused.
    """
    issues: list[AnalysisIssue] = []
    files = collect_source_files(crate, issues)
    identifiers: set[str] = set()

    for file_path in files:
        try:
            content = read_source(file_path)
        except SourceReadError as exc:
            log.warning("scanner.read_failed", file=str(file_path), error=exc.reason)
            issues.append(AnalysisIssue("io-error", file_path, str(exc)))
            continue
        identifiers |= tokenize(content)

    log.debug(
        "scanner.crate_scanned",
        manifest=str(crate.manifest_path),
        files=len(files),
        identifiers=len(identifiers),
    )
    return SourceScan(identifiers=frozenset(identifiers), files=files, issues=issues)

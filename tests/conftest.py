"""Shared pytest fixtures for cargo-neat tests — everything runs on tmp_path."""

from __future__ import annotations

import errno
import logging
import os
import textwrap
from pathlib import Path
from typing import Callable

import pytest
import structlog

WriteFn = Callable[[str, str], Path]


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo setup_logging so CLI runs do not leak handlers into later tests."""
    yield
    logger = logging.getLogger("cargo_neat")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    structlog.reset_defaults()


@pytest.fixture
def root(tmp_path: Path) -> Path:
    return tmp_path.resolve()


@pytest.fixture
def write(root: Path) -> WriteFn:
    """Write a dedented file below ``root`` and return its path."""

    def _write(rel: str, content: str = "") -> Path:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip())
        return path

    return _write


@pytest.fixture
def unlistable(monkeypatch: pytest.MonkeyPatch) -> Callable[[Path], None]:
    """Make directory listing fail for the given paths, as an unreadable dir would."""
    blocked: set[Path] = set()
    real_scandir = os.scandir

    def _scandir(path=".", *args, **kwargs):
        if isinstance(path, (str, os.PathLike)) and Path(path) in blocked:
            raise PermissionError(errno.EACCES, "Permission denied", os.fspath(path))
        return real_scandir(path, *args, **kwargs)

    monkeypatch.setattr(os, "scandir", _scandir)
    return blocked.add


@pytest.fixture
def sample_workspace(root: Path, write: WriteFn) -> Path:
    """Workspace sharing anyhow/clappen/serde with two member crates.

    crate1 inherits anyhow, declares serde locally and uses both.
    crate2 uses argh and never references futures-lite.
    """
    write(
        "Cargo.toml",
        """
        [workspace]
        members = ["crates/*"]
        resolver = "2"

        [workspace.dependencies]
        anyhow = "1.0"
        clappen = "0.1"
        serde = { version = "1", features = ["derive"] }
        """,
    )
    write(
        "crates/crate1/Cargo.toml",
        """
        [package]
        name = "crate1"
        version = "0.1.0"
        edition = "2021"

        [dependencies]
        anyhow = { workspace = true }
        serde = "1"
        """,
    )
    write(
        "crates/crate1/src/lib.rs",
        """
        use anyhow::Result;

        #[derive(serde::Serialize)]
        pub struct Config;
        """,
    )
    write(
        "crates/crate2/Cargo.toml",
        """
        [package]
        name = "crate2"
        version = "0.1.0"
        edition = "2021"

        [dependencies]
        futures-lite = "2"
        argh = "0.1"
        """,
    )
    write(
        "crates/crate2/src/main.rs",
        """
        #[derive(argh::FromArgs)]
        /// cli
        struct Args {}

        fn main() {}
        """,
    )
    return root

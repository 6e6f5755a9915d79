"""Custom exceptions for cargo-neat."""

from __future__ import annotations

from pathlib import Path


class NeatError(Exception):
    """Base exception for all cargo-neat errors."""


class ManifestNotFoundError(NeatError):
    """Raised when no Cargo.toml exists under the scanned root."""

    def __init__(self, root: Path):
        self.root = root
        super().__init__(f"no Cargo.toml found under {root}")


class NoUsableManifestError(NeatError):
    """Raised when manifests were found but none of them could be parsed."""


class MemberGlobError(NeatError):
    """Raised when a literal workspace member pattern matches nothing."""

    def __init__(self, manifest_path: Path, pattern: str):
        self.manifest_path = manifest_path
        self.pattern = pattern
        super().__init__(
            f"workspace member '{pattern}' in {manifest_path} does not match any crate"
        )


class ManifestParseError(NeatError):
    """Raised when a Cargo.toml is malformed. Isolated to that manifest."""

    def __init__(self, manifest_path: Path, reason: str):
        self.manifest_path = manifest_path
        self.reason = reason
        super().__init__(f"failed to parse {manifest_path}: {reason}")


class SourceReadError(NeatError):
    """Raised when a source file cannot be read. Isolated to that file."""

    def __init__(self, file_path: Path, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"failed to read {file_path}: {reason}")

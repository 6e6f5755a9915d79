"""Parser for Cargo.toml manifests, including workspace inheritance."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from cargo_neat.engine.models import CrateManifest, DependencySpec, Workspace
from cargo_neat.exceptions import ManifestParseError

MANIFEST_NAME = "Cargo.toml"

# (table key, dependency kind); cargo still accepts the underscore spellings
_DEP_SECTIONS = (
    ("dependencies", "normal"),
    ("dev-dependencies", "dev"),
    ("dev_dependencies", "dev"),
    ("build-dependencies", "build"),
    ("build_dependencies", "build"),
)

# Cargo target tables that may carry an explicit `path`
_TARGET_TABLES = ("lib", "bin", "example", "test", "bench")


def _str_list(file_path: Path, where: str, value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ManifestParseError(file_path, f"{where} must be an array of strings")
    return list(value)


def _opt_str(file_path: Path, where: str, value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise ManifestParseError(file_path, f"{where} must be a string")


class CargoTomlParser:
    """Turn Cargo.toml documents into :class:`Workspace` / :class:`CrateManifest`."""

    file_name = MANIFEST_NAME

    def read(self, file_path: Path) -> dict[str, Any]:
        """Read and load a manifest from disk."""
        try:
            content = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ManifestParseError(file_path, exc.strerror or str(exc)) from exc
        return self.load(file_path, content)

    def load(self, file_path: Path, content: str) -> dict[str, Any]:
        try:
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as exc:
            raise ManifestParseError(file_path, str(exc)) from exc

    @staticmethod
    def is_workspace(data: dict[str, Any]) -> bool:
        return "workspace" in data

    @staticmethod
    def is_crate(data: dict[str, Any]) -> bool:
        return "package" in data

    # ── workspace ────────────────────────────────────────────────────────

    def parse_workspace(self, file_path: Path, data: dict[str, Any]) -> Workspace:
        section = data.get("workspace")
        if not isinstance(section, dict):
            raise ManifestParseError(file_path, "[workspace] must be a table")

        shared = self._parse_section(
            file_path,
            section.get("dependencies"),
            where="workspace.dependencies",
            kind="normal",
            target=None,
            workspace=None,
        )
        return Workspace(
            manifest_path=file_path,
            shared_dependencies=shared,
            member_patterns=_str_list(file_path, "workspace.members", section.get("members")),
            exclude_patterns=_str_list(file_path, "workspace.exclude", section.get("exclude")),
        )

    # ── crate ────────────────────────────────────────────────────────────

    def parse_crate(
        self,
        file_path: Path,
        data: dict[str, Any],
        workspace: Workspace | None = None,
    ) -> CrateManifest:
        """Parse a `[package]` manifest.

        ``workspace = true`` entries are resolved against *workspace*; a name
        missing from its shared table makes the whole manifest invalid, as in
        cargo. Without a workspace the entries are kept unresolved.
        """
        package = data.get("package")
        if not isinstance(package, dict):
            raise ManifestParseError(file_path, "[package] must be a table")

        crate = CrateManifest(
            manifest_path=file_path,
            name=_opt_str(file_path, "package.name", package.get("name")),
            build_script=self._build_script(file_path, package.get("build")),
            target_paths=self._target_paths(file_path, data),
            workspace=workspace.manifest_path if workspace else None,
        )

        scopes = {
            "normal": crate.dependencies,
            "dev": crate.dev_dependencies,
            "build": crate.build_dependencies,
        }
        for key, kind in _DEP_SECTIONS:
            scopes[kind].update(
                self._parse_section(
                    file_path, data.get(key), where=key, kind=kind, target=None, workspace=workspace
                )
            )

        targets = data.get("target", {})
        if not isinstance(targets, dict):
            raise ManifestParseError(file_path, "[target] must be a table")
        for cfg, table in targets.items():
            if not isinstance(table, dict):
                raise ManifestParseError(file_path, f"target.{cfg} must be a table")
            entries: list[DependencySpec] = []
            for key, kind in _DEP_SECTIONS:
                parsed = self._parse_section(
                    file_path,
                    table.get(key),
                    where=f"target.{cfg}.{key}",
                    kind=kind,
                    target=cfg,
                    workspace=workspace,
                )
                entries.extend(parsed.values())
            if entries:
                crate.target_dependencies[cfg] = entries

        return crate

    @staticmethod
    def _build_script(file_path: Path, value: Any) -> str | None:
        if value is None or value is True:
            return "build.rs"
        if value is False:
            return None
        if isinstance(value, str):
            return value
        raise ManifestParseError(file_path, "package.build must be a string or a boolean")

    @staticmethod
    def _target_paths(file_path: Path, data: dict[str, Any]) -> list[str]:
        paths: list[str] = []
        for key in _TARGET_TABLES:
            value = data.get(key)
            if value is None:
                continue
            tables = value if isinstance(value, list) else [value]
            for table in tables:
                if not isinstance(table, dict):
                    raise ManifestParseError(file_path, f"[{key}] must be a table")
                path = _opt_str(file_path, f"{key}.path", table.get("path"))
                if path:
                    paths.append(path)
        return paths

    # ── dependency tables ────────────────────────────────────────────────

    def _parse_section(
        self,
        file_path: Path,
        section: Any,
        *,
        where: str,
        kind: str,
        target: str | None,
        workspace: Workspace | None,
    ) -> dict[str, DependencySpec]:
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ManifestParseError(file_path, f"[{where}] must be a table")

        deps: dict[str, DependencySpec] = {}
        for name, raw in section.items():
            deps[name] = self._parse_entry(
                file_path,
                name,
                raw,
                where=f"{where}.{name}",
                kind=kind,
                target=target,
                workspace=workspace,
                in_workspace_table=where == "workspace.dependencies",
            )
        return deps

    def _parse_entry(
        self,
        file_path: Path,
        name: str,
        raw: Any,
        *,
        where: str,
        kind: str,
        target: str | None,
        workspace: Workspace | None,
        in_workspace_table: bool,
    ) -> DependencySpec:
        if isinstance(raw, str):
            return DependencySpec(name=name, kind=kind, target=target, version=raw)
        if not isinstance(raw, dict):
            raise ManifestParseError(
                file_path,
                f"{where}: expected a version string or a table, got {type(raw).__name__}",
            )

        features = _str_list(file_path, f"{where}.features", raw.get("features"))
        optional = raw.get("optional", False)
        if not isinstance(optional, bool):
            raise ManifestParseError(file_path, f"{where}.optional must be a boolean")

        inherit = raw.get("workspace")
        if inherit is not None:
            if in_workspace_table:
                raise ManifestParseError(
                    file_path, f"{where}: `workspace` is not allowed in workspace.dependencies"
                )
            if inherit is not True:
                raise ManifestParseError(file_path, f"{where}: `workspace` cannot be false")
            return self._inherit(file_path, name, where, kind, target, workspace, features, optional)

        return DependencySpec(
            name=name,
            kind=kind,
            target=target,
            package_rename=_opt_str(file_path, f"{where}.package", raw.get("package")),
            version=_opt_str(file_path, f"{where}.version", raw.get("version")),
            path=_opt_str(file_path, f"{where}.path", raw.get("path")),
            git=_opt_str(file_path, f"{where}.git", raw.get("git")),
            features=tuple(features),
            optional=optional,
        )

    @staticmethod
    def _inherit(
        file_path: Path,
        name: str,
        where: str,
        kind: str,
        target: str | None,
        workspace: Workspace | None,
        features: list[str],
        optional: bool,
    ) -> DependencySpec:
        if workspace is None:
            # Standalone crate: nothing to resolve against, keep the marker only
            return DependencySpec(
                name=name,
                kind=kind,
                target=target,
                inherits_workspace=True,
                features=tuple(sorted(set(features))),
                optional=optional,
            )
        shared = workspace.shared_dependencies.get(name)
        if shared is None:
            raise ManifestParseError(
                file_path,
                f"{where}: not found in workspace.dependencies of {workspace.manifest_path}",
            )
        # Local features are additive on top of the shared ones
        merged = tuple(sorted(set(shared.features) | set(features)))
        return DependencySpec(
            name=name,
            kind=kind,
            target=target,
            package_rename=shared.package_rename,
            inherits_workspace=True,
            version=shared.version,
            path=shared.path,
            git=shared.git,
            features=merged,
            optional=optional,
        )

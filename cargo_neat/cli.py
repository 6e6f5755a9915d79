"""CLI entry point: cargo-neat (also runs as ``cargo neat``).

Exit code:
    0:  when no unused dependencies are found
    1:  when at least one unused (or non workspace, with -m) dependency is found
    2:  on error
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Mapping
from pathlib import Path

import click
import structlog

from cargo_neat import __version__
from cargo_neat.config import AnalysisConfig
from cargo_neat.core.logging import setup_logging
from cargo_neat.engine.analyzer import analyze
from cargo_neat.exceptions import NeatError
from cargo_neat.render import render_report

log = structlog.get_logger("cargo_neat.cli")

EXIT_CLEAN = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2

_SUBCOMMAND = "neat"


def strip_cargo_subcommand(args: list[str], environ: Mapping[str, str] | None = None) -> list[str]:
    """Drop the ``neat`` argument cargo inserts when running ``cargo neat``.

    Cargo sets ``CARGO`` for subcommands; ``CARGO_PKG_NAME`` is only set when
    cargo runs a build script or test, which is not this case.
    """
    env = os.environ if environ is None else environ
    if "CARGO" in env and "CARGO_PKG_NAME" not in env and args[:1] == [_SUBCOMMAND]:
        return args[1:]
    return args


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("path", required=False, type=click.Path(path_type=Path))
@click.option(
    "-m",
    "--mandatory-workspace-dependencies",
    "mandatory",
    is_flag=True,
    help='Allow only workspace dependencies (ie "workspace = true").',
)
@click.option(
    "--lenient-globs",
    is_flag=True,
    help="Warn instead of failing when a workspace member matches nothing.",
)
@click.option(
    "--require-version-match",
    is_flag=True,
    help="With -m, only flag local entries whose version equals the shared one.",
)
@click.option("-j", "--jobs", type=click.IntRange(min=1), default=None, help="Worker threads")
@click.option("--json", "as_json", is_flag=True, help="Output the report as JSON")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.version_option(__version__, "-V", "--version", message="%(version)s")
def neat(
    path: Path | None,
    mandatory: bool,
    lenient_globs: bool,
    require_version_match: bool,
    jobs: int | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """cargo-neat: find unused workspace dependencies.

    PATH is the directory to scan (default: current directory).
    """
    setup_logging(verbose)
    root = path if path is not None else Path.cwd()
    log.debug("cli.start", root=str(root))

    try:
        config = AnalysisConfig.from_env(
            root,
            mandatory_workspace_dependencies=mandatory,
            strict_globs=False if lenient_globs else None,
            require_version_match=True if require_version_match else None,
            jobs=jobs,
        )
        report = analyze(config)
    except (NeatError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_ERROR)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        # findings go to stderr like cargo diagnostics; a clean run prints to stdout
        click.echo(render_report(report), err=report.has_findings)

    sys.exit(EXIT_FINDINGS if report.has_findings else EXIT_CLEAN)


def main() -> None:
    neat.main(args=strip_cargo_subcommand(sys.argv[1:]), prog_name="cargo-neat")


if __name__ == "__main__":
    main()

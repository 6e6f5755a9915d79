"""Diagnostics for the command line: structlog events rendered to stderr."""

from __future__ import annotations

import logging
import logging.config
import os
import sys

import structlog


def _level(verbose: bool) -> str:
    if verbose:
        return "DEBUG"
    return os.environ.get("CARGO_NEAT_LOG_LEVEL", "WARNING").upper()


def setup_logging(verbose: bool = False) -> None:
    """Route ``cargo_neat`` events to stderr.

    ``--verbose`` forces DEBUG. Otherwise CARGO_NEAT_LOG_LEVEL applies
    (default WARNING). CARGO_NEAT_LOG_FORMAT=json switches to one JSON
    object per line.
    """
    log_level = _level(verbose)

    # Short runs: no timestamps, no context binding
    pre_chain: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.format_exc_info,
    ]

    if os.environ.get("CARGO_NEAT_LOG_FORMAT", "console").lower() == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "cli": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": pre_chain,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "cli",
                },
            },
            "loggers": {
                "cargo_neat": {
                    "handlers": ["stderr"],
                    "level": log_level,
                    "propagate": False,
                },
            },
        }
    )

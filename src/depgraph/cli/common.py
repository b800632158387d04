"""Options and error handling shared by the ``depgraph`` subcommands."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Callable

import click

from depgraph.config import Settings, load_settings
from depgraph.exceptions import (
    BuildToolError,
    ConfigError,
    DepGraphError,
    IncompatiblePlatform,
    InvalidVersionError,
    LockFileError,
    ProjectNotFound,
    ResolutionError,
    RootNotFound,
    RootNotUnique,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RESOLUTION = 1
EXIT_USAGE = 2
EXIT_ROOT = 3

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Checked in order; the first matching class decides the exit code.
_EXIT_CODES: list[tuple[type[DepGraphError], int]] = [
    (RootNotUnique, EXIT_ROOT),
    (RootNotFound, EXIT_ROOT),
    (ResolutionError, EXIT_RESOLUTION),
    (IncompatiblePlatform, EXIT_RESOLUTION),
    (ProjectNotFound, EXIT_USAGE),
    (BuildToolError, EXIT_USAGE),
    (ConfigError, EXIT_USAGE),
    (LockFileError, EXIT_USAGE),
    (InvalidVersionError, EXIT_USAGE),
]


def exit_code_for(exc: DepGraphError) -> int:
    """Map an engine error to the process exit code."""
    for error_type, code in _EXIT_CODES:
        if isinstance(exc, error_type):
            return code
    return EXIT_RESOLUTION


def run_async(coro: object) -> object:
    """Run an async coroutine in a synchronous context."""
    return asyncio.run(coro)  # type: ignore[arg-type]


def configure_logging(level: str) -> None:
    """Send log records at *level* and above to stderr."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options every analysis command accepts."""
    options = [
        click.option(
            "-f", "--framework", required=True,
            help="Target framework, e.g. net472 or netstandard2.0.",
        ),
        click.option(
            "--format", "output_format",
            type=click.Choice(["tree", "list", "edges", "json"]),
            default="tree",
            help="Output format (default: tree).",
        ),
        click.option(
            "--policy",
            type=click.Choice(["lowest", "highest"]),
            default=None,
            help="Version selection policy (default: lowest).",
        ),
        click.option(
            "--source", "sources", multiple=True,
            help="Feed index URL or YAML feed file; repeat in priority order.",
        ),
        click.option(
            "--include-all", is_flag=True, default=False,
            help="Do not hide framework packages (System.*, NETStandard.*, ...).",
        ),
        click.option(
            "--allow-partial", is_flag=True, default=False,
            help="Keep packages without compatible assets instead of failing.",
        ),
        click.option(
            "--config", "config_path",
            type=click.Path(dir_okay=False),
            default=None,
            help="Settings file (default: $DEPGRAPH_CONFIG or ./depgraph.yaml).",
        ),
        click.option(
            "-v", "--verbosity",
            type=click.Choice(LOG_LEVELS, case_sensitive=False),
            default="WARNING",
            help="Log level for messages on stderr (default: WARNING).",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_settings(
    config_path: str | None,
    policy: str | None,
    sources: tuple[str, ...],
    allow_partial: bool,
) -> Settings:
    """Load the settings file and apply command-line overrides.

    Raises:
        ConfigError: If the settings file or an override is invalid.
    """
    settings = load_settings(config_path)
    return settings.merged(
        policy=policy,
        sources=list(sources) or None,
        allow_partial=True if allow_partial else None,
    )


def run_analysis(action: Callable[[], Any]) -> Any:
    """Run *action*, turning engine errors into a message and exit code."""
    try:
        return action()
    except DepGraphError as exc:
        logger.debug("Analysis failed", exc_info=True)
        click.echo(f"Error: {exc}", err=True)
        output = getattr(exc, "output", "")
        if output:
            click.echo(output, err=True)
        sys.exit(exit_code_for(exc))

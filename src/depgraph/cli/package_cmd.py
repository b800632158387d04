"""``depgraph package`` -- Analyze one package version from the configured feeds.

Usage::

    depgraph package Newtonsoft.Json --version 13.0.1 --framework net472
    depgraph package Serilog --version 2.10.0 -f netstandard2.0 --format edges
    depgraph package Foo --version 1.0.0 -f net45 --source feeds/local.yaml
"""

from __future__ import annotations

import click

from depgraph.cli.common import (
    build_settings,
    common_options,
    configure_logging,
    run_analysis,
    run_async,
)
from depgraph.cli.output import print_result
from depgraph.engine import DependencyGraphService


@click.command("package")
@click.argument("package_id")
@click.option("--version", "version", required=True, help="The package version to analyze.")
@common_options
def package_command(
    package_id: str,
    version: str,
    framework: str,
    output_format: str,
    policy: str | None,
    sources: tuple[str, ...],
    include_all: bool,
    allow_partial: bool,
    config_path: str | None,
    verbosity: str,
) -> None:
    """Print the resolved dependency graph of PACKAGE_ID at --version."""
    configure_logging(verbosity)

    def analyze():
        settings = build_settings(config_path, policy, sources, allow_partial)
        service = DependencyGraphService(settings)
        result = run_async(service.analyze_package(package_id, version, framework))
        return settings, result

    settings, result = run_analysis(analyze)
    ignore = () if include_all else settings.ignore_prefixes
    run_analysis(lambda: print_result(result, output_format, ignore))

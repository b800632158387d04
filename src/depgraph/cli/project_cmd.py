"""``depgraph project`` -- Analyze a project file and its project references.

The project's restore graph is produced with ``dotnet msbuild``; a restored
``project.assets.json`` in the project's output folder is used as the first
source when present.

Usage::

    depgraph project ./src/App/App.csproj --framework net472
    depgraph project . -f netcoreapp3.1 --format json
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


@click.command("project")
@click.argument("project_path", default=".", type=click.Path())
@common_options
def project_command(
    project_path: str,
    framework: str,
    output_format: str,
    policy: str | None,
    sources: tuple[str, ...],
    include_all: bool,
    allow_partial: bool,
    config_path: str | None,
    verbosity: str,
) -> None:
    """Print the resolved dependency graph of the project at PROJECT_PATH.

    PROJECT_PATH is a project file or a folder holding exactly one.
    """
    configure_logging(verbosity)

    def analyze():
        settings = build_settings(config_path, policy, sources, allow_partial)
        service = DependencyGraphService(settings)
        result = run_async(service.analyze_project(project_path, framework))
        return settings, result

    settings, result = run_analysis(analyze)
    ignore = () if include_all else settings.ignore_prefixes
    run_analysis(lambda: print_result(result, output_format, ignore))

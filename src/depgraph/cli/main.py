"""depgraph CLI -- resolved dependency graphs of NuGet packages and projects.

Entry point for the ``depgraph`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    package -- Analyze one package version from the configured feeds.
    project -- Analyze a project file and its project references.

Usage::

    depgraph package Newtonsoft.Json --version 13.0.1 --framework net472
    depgraph project ./src/App/App.csproj --framework net472 --format list

Exit codes:
    0  success
    1  versions could not be resolved, or a package has no compatible assets
    2  usage, configuration, project or build-tool error
    3  the root package was not found, or the graph root is not unique
"""

from __future__ import annotations

import click

from depgraph import __version__
from depgraph.cli.package_cmd import package_command
from depgraph.cli.project_cmd import project_command


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """depgraph: resolved package dependency graphs.

    Discovers the transitive closure of a package or project across the
    configured feeds, resolves one version per package and prints the
    resulting graph with the assemblies each package contributes.
    """


# Register all subcommands
cli.add_command(package_command)
cli.add_command(project_command)

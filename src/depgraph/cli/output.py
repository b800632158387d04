"""Rendering of analysis results for the ``depgraph`` CLI.

Tree and edge formats are plain text; the list format is a Rich table; the
JSON format is ``graph_to_dict`` plus the resolution summary. Warnings go to
stderr so stdout carries only the report.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from depgraph.core.graph.nodes import PackageNode
from depgraph.core.graph.render import (
    graph_to_dict,
    render_edges,
    render_tree,
    visible_nodes,
)
from depgraph.engine import AnalysisResult

console = Console()


def print_tree(result: AnalysisResult, ignore_prefixes: Sequence[str]) -> None:
    for line in render_tree(result.graph, ignore_prefixes):
        click.echo(line)


def print_edges(result: AnalysisResult, ignore_prefixes: Sequence[str]) -> None:
    for line in render_edges(result.graph, ignore_prefixes):
        click.echo(line)


def print_node_table(result: AnalysisResult, ignore_prefixes: Sequence[str]) -> None:
    """Print one table row per node of the graph."""
    graph = result.graph
    table = Table(
        title=f"Dependencies of {graph.root} ({result.framework})",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Package", style="bold")
    table.add_column("Version")
    table.add_column("Type", style="dim")
    table.add_column("Framework", justify="center")
    table.add_column("Assets")

    for node in sorted(visible_nodes(graph, ignore_prefixes), key=lambda n: n.key):
        files = ", ".join(node.lib_files) if isinstance(node, PackageNode) else ""
        framework = Text(node.framework_moniker or "-", style="cyan" if node.framework else "dim")
        table.add_row(node.id, str(node.version), node.type_name, framework, files or "-")

    console.print(table)


def result_to_dict(result: AnalysisResult, ignore_prefixes: Sequence[str]) -> dict[str, Any]:
    data = graph_to_dict(result.graph, ignore_prefixes)
    data["framework"] = result.framework.short_folder_name
    data["policy"] = result.resolved.policy.value
    data["resolved"] = result.resolved.as_dict()
    data["warnings"] = list(result.warnings)
    return data


def print_result(
    result: AnalysisResult, output_format: str, ignore_prefixes: Sequence[str]
) -> None:
    """Print *result* in *output_format* and its warnings on stderr."""
    if output_format == "json":
        click.echo(json.dumps(result_to_dict(result, ignore_prefixes), indent=2))
    elif output_format == "list":
        print_node_table(result, ignore_prefixes)
    elif output_format == "edges":
        print_edges(result, ignore_prefixes)
    else:
        print_tree(result, ignore_prefixes)

    if output_format != "json":
        for warning in result.warnings:
            click.echo(f"Warning: {warning}", err=True)

"""Dependency graph model, assembly and rendering."""

from depgraph.core.graph.builder import GraphAssembler
from depgraph.core.graph.nodes import DependencyGraph, Edge, Node, PackageNode, ProjectNode
from depgraph.core.graph.render import (
    DEFAULT_IGNORE_PREFIXES,
    graph_to_dict,
    is_ignored,
    render_edges,
    render_nodes,
    render_tree,
    visible_nodes,
)

__all__ = [
    "DEFAULT_IGNORE_PREFIXES",
    "DependencyGraph",
    "Edge",
    "GraphAssembler",
    "Node",
    "PackageNode",
    "ProjectNode",
    "graph_to_dict",
    "is_ignored",
    "render_edges",
    "render_nodes",
    "render_tree",
    "visible_nodes",
]

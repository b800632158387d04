"""Text and JSON renderings of a dependency graph.

``render_tree`` walks the graph from its root, two spaces of indentation per
level::

    MyApp, v1.0.0
      Newtonsoft.Json, v13.0.1
      Serilog, v2.10.0

Packages whose names start with one of the ignore prefixes (framework
packages by default) are skipped together with everything below them. The
walk is cycle safe: a node already on the current path is printed once more
with a ``(cycle)`` marker and not expanded.
"""

from __future__ import annotations

from typing import Any, Sequence

from depgraph.core.graph.nodes import DependencyGraph, Node, PackageNode, ProjectNode
from depgraph.exceptions import UnexpectedNodeType

DEFAULT_IGNORE_PREFIXES: tuple[str, ...] = (
    "System.",
    "NETStandard.",
    "Microsoft.NETCore.",
)

INDENT = "  "
CYCLE_MARKER = "(cycle)"


def is_ignored(name: str, ignore_prefixes: Sequence[str]) -> bool:
    """Check whether *name* starts with any of the prefixes (case-insensitive)."""
    lowered = name.lower()
    return any(lowered.startswith(p.lower()) for p in ignore_prefixes)


def visible_nodes(graph: DependencyGraph, ignore_prefixes: Sequence[str]) -> list[Node]:
    """Nodes not hidden by *ignore_prefixes*; the root is always visible."""
    return [
        n for n in graph.nodes
        if n == graph.root or not is_ignored(n.id, ignore_prefixes)
    ]


def render_nodes(
    graph: DependencyGraph, ignore_prefixes: Sequence[str] = DEFAULT_IGNORE_PREFIXES
) -> list[str]:
    """One line per node: ``Name 1.0.0 [package] net45 (A.dll, B.dll)``."""
    lines = []
    for node in sorted(visible_nodes(graph, ignore_prefixes), key=lambda n: n.key):
        line = f"{node} [{node.type_name}]"
        if node.framework_moniker:
            line += f" {node.framework_moniker}"
        if isinstance(node, PackageNode) and node.lib_files:
            line += f" ({', '.join(node.lib_files)})"
        lines.append(line)
    return lines


def render_edges(
    graph: DependencyGraph, ignore_prefixes: Sequence[str] = DEFAULT_IGNORE_PREFIXES
) -> list[str]:
    """One line per edge: ``A 1.0.0 ---> B 2.0.0 [2.0.0, )``."""
    visible = set(visible_nodes(graph, ignore_prefixes))
    lines = []
    for edge in sorted(graph.edges, key=lambda e: (e.source.key, e.target.key)):
        if edge.source not in visible or edge.target not in visible:
            continue
        line = str(edge)
        if edge.label:
            line += f" [{edge.label}]"
        lines.append(line)
    return lines


def render_tree(
    graph: DependencyGraph, ignore_prefixes: Sequence[str] = DEFAULT_IGNORE_PREFIXES
) -> list[str]:
    """Render the graph as an indented tree rooted at ``graph.root``.

    Args:
        graph: The graph to render.
        ignore_prefixes: Name prefixes to hide, with their subtrees. The
            filter is applied before the node type check.

    Returns:
        The lines of the tree, without trailing newlines.

    Raises:
        UnexpectedNodeType: If a package depends on a project, or a node is
            neither a package nor a project.
    """
    lines: list[str] = []
    path: set[Node] = set()

    def walk(node: Node, depth: int) -> None:
        lines.append(f"{INDENT * depth}{node.display}")
        path.add(node)
        for child in graph.successors(node):
            if is_ignored(child.id, ignore_prefixes):
                continue
            if not isinstance(child, (PackageNode, ProjectNode)):
                raise UnexpectedNodeType(f"UNEXPECTED node type {type(child).__name__}: {child}")
            if isinstance(node, PackageNode) and isinstance(child, ProjectNode):
                raise UnexpectedNodeType(f"Package {node} cannot depend on project {child}")
            if child in path:
                lines.append(f"{INDENT * (depth + 1)}{child.display} {CYCLE_MARKER}")
                continue
            walk(child, depth + 1)
        path.discard(node)

    walk(graph.root, 0)
    return lines


def graph_to_dict(
    graph: DependencyGraph, ignore_prefixes: Sequence[str] = DEFAULT_IGNORE_PREFIXES
) -> dict[str, Any]:
    """A JSON-ready mapping with ``root``, ``nodes`` and ``edges`` keys."""
    visible = visible_nodes(graph, ignore_prefixes)
    shown = set(visible)
    return {
        "root": graph.root.to_dict(),
        "nodes": [n.to_dict() for n in sorted(visible, key=lambda n: n.key)],
        "edges": [
            {"source": str(e.source), "target": str(e.target), "range": e.label}
            for e in sorted(graph.edges, key=lambda e: (e.source.key, e.target.key))
            if e.source in shown and e.target in shown
        ],
    }

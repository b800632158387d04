"""Nodes, edges and the assembled dependency graph.

Node identity is the concrete node variant plus the case-insensitive name
and the exact version; the framework and asset fields describe a node but do
not identify it. Edge identity is the (source, target) pair; the label only
records the range text the dependency was declared with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Iterator

from depgraph.core.frameworks import Framework
from depgraph.core.versioning import NuGetVersion


# ---------------------------------------------------------------------------
# Node variants
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Node:
    """A vertex in the dependency graph."""

    type_name: ClassVar[str] = "node"

    id: str
    version: NuGetVersion
    framework: Framework | None = None

    @property
    def key(self) -> tuple[str, NuGetVersion]:
        return (self.id.lower(), self.version)

    @property
    def framework_moniker(self) -> str:
        """Short folder name of ``framework``, empty when unknown."""
        return self.framework.short_folder_name if self.framework else ""

    @property
    def display(self) -> str:
        """The tree form, e.g. ``Newtonsoft.Json, v13.0.1``."""
        return f"{self.id}, v{self.version}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "id": self.id,
            "version": str(self.version),
            "framework": self.framework_moniker or None,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return type(self) is type(other) and self.key == other.key

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.key))

    def __str__(self) -> str:
        return f"{self.id} {self.version}"


@dataclass(eq=False)
class PackageNode(Node):
    """A resolved package with the lib assets it exposes to the target.

    Attributes:
        lib_files: Asset file names, unique, in first-seen order.
    """

    type_name: ClassVar[str] = "package"

    lib_files: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["lib_files"] = list(self.lib_files)
        return data


@dataclass(eq=False)
class ProjectNode(Node):
    """The analyzed project or one of its project references."""

    type_name: ClassVar[str] = "project"


# ---------------------------------------------------------------------------
# Edge
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Edge:
    """A directed dependency from ``source`` to ``target``.

    Attributes:
        source: The depending node.
        target: The node depended upon.
        label: The version range text as declared. Not part of equality.
    """

    source: Node
    target: Node
    label: str = field(default="", compare=False)

    def __str__(self) -> str:
        return f"{self.source} ---> {self.target}"


# ---------------------------------------------------------------------------
# DependencyGraph
# ---------------------------------------------------------------------------


class DependencyGraph:
    """An immutable view of the assembled nodes and edges.

    Args:
        root: The node the analysis started from. Must be in ``nodes``.
        nodes: Every node, in the order they should be reported.
        edges: Every edge, in the order they should be reported.
    """

    def __init__(self, root: Node, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        self.root = root
        self._nodes: dict[Node, Node] = {}
        for node in nodes:
            self._nodes.setdefault(node, node)
        if root not in self._nodes:
            raise ValueError(f"Root {root} is not a node of the graph")
        self._edges: dict[Edge, Edge] = {}
        self._out: dict[Node, list[Node]] = {}
        self._in: dict[Node, list[Node]] = {}
        for edge in edges:
            if edge in self._edges:
                continue
            self._edges[edge] = edge
            self._out.setdefault(edge.source, []).append(edge.target)
            self._in.setdefault(edge.target, []).append(edge.source)

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes)

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        return node in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def successors(self, node: Node) -> list[Node]:
        """Direct dependencies of *node*, sorted by name then version."""
        return sorted(self._out.get(node, []), key=lambda n: n.key)

    def predecessors(self, node: Node) -> list[Node]:
        """Nodes that depend directly on *node*, sorted by name then version."""
        return sorted(self._in.get(node, []), key=lambda n: n.key)

    def find(self, name: str) -> Node | None:
        """Return the node named *name* (case-insensitive), if present."""
        wanted = name.lower()
        for node in self._nodes:
            if node.id.lower() == wanted:
                return node
        return None

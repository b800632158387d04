"""Assemble the dependency graph from a resolved set.

One node per resolved identity and one edge per declared dependency whose
source and target were both resolved. Exactly one resolved identity must
match the root.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from depgraph.core.assets.models import PackageAssets
from depgraph.core.dependency.closure import Closure
from depgraph.core.dependency.models import PackageIdentity
from depgraph.core.graph.nodes import DependencyGraph, Edge, Node, PackageNode, ProjectNode
from depgraph.exceptions import RootNotUnique

logger = logging.getLogger(__name__)


class GraphAssembler:
    """Turn resolved identities into a ``DependencyGraph``.

    Args:
        root: The identity the analysis started from.
        project_names: Names of the analyzed project and its project
            references. Identities with these names become ``ProjectNode``
            instances; everything else becomes a ``PackageNode``.
    """

    def __init__(self, root: PackageIdentity, project_names: Iterable[str] = ()) -> None:
        self.root = root
        self.project_names = {name.lower() for name in project_names}

    def assemble(
        self,
        resolved: Iterable[PackageIdentity],
        closure: Closure,
        assets: Mapping[PackageIdentity, PackageAssets] | None = None,
    ) -> DependencyGraph:
        """Build the graph.

        Args:
            resolved: The chosen identities, one per package name.
            closure: The closure they were resolved from; supplies the
                declared dependencies and the project framework.
            assets: Selected assets per identity. Missing entries yield
                nodes without assets.

        Raises:
            RootNotUnique: If the root is not matched by exactly one resolved
                identity.
            ValueError: If two resolved identities share a package name.
        """
        assets = assets or {}
        identities = list(resolved)

        matches = [i for i in identities if i == self.root]
        if len(matches) != 1:
            raise RootNotUnique(
                f"Expected exactly one resolved identity for root {self.root}, "
                f"found {len(matches)}"
            )

        by_name: dict[str, Node] = {}
        chosen: dict[str, PackageIdentity] = {}
        nodes: list[Node] = []
        for identity in identities:
            name = identity.id.lower()
            if name in chosen:
                if chosen[name] != identity:
                    raise ValueError(
                        f"Conflicting identities for {identity.id}: "
                        f"{chosen[name]} and {identity}"
                    )
                continue
            node = self._make_node(identity, closure, assets.get(identity))
            chosen[name] = identity
            by_name[name] = node
            nodes.append(node)

        edges: list[Edge] = []
        for identity in identities:
            info = closure.get(identity)
            if info is None:
                continue
            source = by_name[identity.id.lower()]
            for dep in info.dependencies:
                target = by_name.get(dep.id.lower())
                if target is None:
                    logger.debug("%s -> %s not resolved; no edge", identity, dep.id)
                    continue
                edges.append(Edge(source, target, dep.version_range.label))

        root_node = by_name[self.root.id.lower()]
        graph = DependencyGraph(root_node, nodes, edges)
        logger.info(
            "Assembled graph rooted at %s: %d node(s), %d edge(s)",
            root_node, len(graph.nodes), len(graph.edges),
        )
        return graph

    def _make_node(
        self,
        identity: PackageIdentity,
        closure: Closure,
        selected: PackageAssets | None,
    ) -> Node:
        if identity.id.lower() in self.project_names:
            return ProjectNode(identity.id, identity.version, closure.framework)
        if selected is None:
            return PackageNode(identity.id, identity.version)
        return PackageNode(
            identity.id, identity.version, selected.framework, selected.files
        )

"""Transitive-closure discovery and version resolution.

Discovery walks the declared dependencies of a root identity across the
configured sources and produces a ``Closure``. Resolution then picks one
version per package name from that closure, producing a ``ResolvedSet``.

Public API::

    from depgraph.core.dependency import ClosureBuilder, DependencyResolver

    closure = await ClosureBuilder(sources, framework).discover(root)
    resolved = DependencyResolver(closure).resolve([root.id])
"""

from depgraph.core.dependency.closure import Closure, ClosureBuilder
from depgraph.core.dependency.models import (
    PackageDependency,
    PackageDependencyInfo,
    PackageIdentity,
)
from depgraph.core.dependency.resolver import (
    DependencyResolver,
    ResolutionPolicy,
    ResolvedSet,
)

__all__ = [
    "Closure",
    "ClosureBuilder",
    "DependencyResolver",
    "PackageDependency",
    "PackageDependencyInfo",
    "PackageIdentity",
    "ResolutionPolicy",
    "ResolvedSet",
]

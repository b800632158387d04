"""Analysis service: from a package or project to a dependency graph.

Pipeline::

    discover closure -> resolve versions -> select lib assets -> assemble graph

``analyze_package`` starts from a package identity in the configured
sources. ``analyze_project`` starts from a project's restore graph: the
project and its project references are seeded into the closure, and a
restored lock file next to the project, when present, becomes the first
source.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from depgraph.config import Settings
from depgraph.core.assets.models import PackageAssets
from depgraph.core.assets.resolver import AssetResolver
from depgraph.core.dependency.closure import Closure, ClosureBuilder
from depgraph.core.dependency.models import (
    PackageDependency,
    PackageDependencyInfo,
    PackageIdentity,
)
from depgraph.core.dependency.resolver import DependencyResolver, ResolvedSet
from depgraph.core.frameworks import Framework, nearest
from depgraph.core.graph.builder import GraphAssembler
from depgraph.core.graph.nodes import DependencyGraph
from depgraph.core.versioning import NuGetVersion, VersionRange
from depgraph.exceptions import (
    BuildToolError,
    ConfigError,
    IncompatiblePlatform,
    LockFileError,
    SourceUnavailable,
)
from depgraph.projects.dgspec import DependencyGraphSpecProvider, find_project_file
from depgraph.projects.models import ProjectDescription, RestoreGraph
from depgraph.sources.base import AssetProvider, ChainedAssetProvider, DependencySource
from depgraph.sources.lockfile import LockFileSource, read_assets_file
from depgraph.sources.memory import InMemorySource
from depgraph.sources.nuget import NuGetV3Source

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Everything an analysis produced.

    Attributes:
        graph: The assembled dependency graph.
        closure: The discovered closure.
        resolved: The resolved identities.
        framework: The framework the analysis ran for.
        warnings: Problems that did not stop the analysis.
    """

    graph: DependencyGraph
    closure: Closure
    resolved: ResolvedSet
    framework: Framework
    warnings: list[str] = field(default_factory=list)


def create_source(entry: str, request_timeout: float) -> DependencySource:
    """Create a dependency source from a settings entry.

    ``http(s)://`` URLs are NuGet V3 service indexes; ``.yaml``/``.yml``
    paths are feed files.

    Raises:
        ConfigError: If the entry is neither.
    """
    if entry.startswith(("http://", "https://")):
        return NuGetV3Source(entry, timeout=request_timeout)
    if entry.lower().endswith((".yaml", ".yml")):
        return InMemorySource.from_yaml(entry)
    raise ConfigError(f"Unsupported source {entry!r}: expected a feed URL or a YAML feed file")


class DependencyGraphService:
    """Run analyses with one set of settings.

    Args:
        settings: Engine settings; defaults apply when None.
        sources: Dependency sources in priority order. Built from
            ``settings.sources`` (and closed after each analysis) when None.
        asset_provider: Where lib items come from. Defaults to every source
            that is also an asset provider, in the same order.
        description_provider: Produces project restore graphs.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        sources: Sequence[DependencySource] | None = None,
        asset_provider: AssetProvider | None = None,
        description_provider: DependencyGraphSpecProvider | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._sources = list(sources) if sources is not None else None
        self._asset_provider = asset_provider
        self.description_provider = description_provider or DependencyGraphSpecProvider()

    # -- public API --------------------------------------------------------

    async def analyze_package(
        self,
        package_id: str,
        version: str | NuGetVersion,
        framework: str | Framework,
    ) -> AnalysisResult:
        """Analyze one package version for a target framework.

        Raises:
            RootNotFound: If no source knows the package.
            ResolutionError: If versions cannot be resolved.
            IncompatiblePlatform: If a package has no usable assets and
                partial graphs are not allowed.
        """
        target = framework if isinstance(framework, Framework) else Framework.parse(framework)
        if not isinstance(version, NuGetVersion):
            version = NuGetVersion.parse(version)
        root = PackageIdentity(package_id, version)
        logger.info("Analyzing package %s for %s", root, target)

        owned = self._sources is None
        sources = self._sources if self._sources is not None else self._build_sources()
        try:
            builder = self._closure_builder(sources, target)
            closure = await builder.discover(root)
            return await self._finish(
                root, closure, sources, target, project_names=(),
                requested=[PackageDependency(root.id, VersionRange.exact(root.version))],
            )
        finally:
            if owned:
                await _close_all(sources)

    async def analyze_project(
        self, project_path: str | Path, framework: str | Framework
    ) -> AnalysisResult:
        """Analyze a project (and its project references) for a framework.

        Raises:
            ProjectNotFound: If the path does not name one project file.
            BuildToolError: If the restore graph cannot be produced.
            IncompatiblePlatform: If the project does not target a framework
                compatible with *framework*.
            ResolutionError: If versions cannot be resolved.
        """
        target = framework if isinstance(framework, Framework) else Framework.parse(framework)
        project_file = find_project_file(project_path)
        restore_graph = await asyncio.to_thread(self.description_provider.generate, project_file)
        project = restore_graph.get(str(project_file))
        if project is None:
            roots = restore_graph.root_projects
            if not roots:
                raise BuildToolError(f"Restore graph does not describe {project_file}")
            project = roots[0]

        root = PackageIdentity(project.name, project.version)
        chosen = nearest(project.target_frameworks, target)
        if chosen is None:
            raise IncompatiblePlatform(root, target, project.target_frameworks)
        logger.info("Analyzing project %s for %s (declared %s)", root, target, chosen)

        warnings: list[str] = []
        owned = self._sources is None
        sources = self._sources if self._sources is not None else self._build_sources()
        created = list(sources) if owned else []
        lock_source = self._lock_source(project, warnings)
        if lock_source is not None:
            sources = [lock_source, *sources]
        try:
            builder = self._closure_builder(sources, chosen)
            project_names = self._seed_projects(builder, restore_graph, project, chosen, warnings)
            closure = await builder.discover(root)
            result = await self._finish(
                root, closure, sources, chosen, project_names=project_names,
                requested=[PackageDependency(root.id, VersionRange.exact(root.version))],
            )
        finally:
            if created:
                await _close_all(created)
        result.warnings[:0] = warnings
        return result

    def analyze_package_sync(
        self, package_id: str, version: str, framework: str
    ) -> AnalysisResult:
        """Run ``analyze_package`` to completion on a fresh event loop."""
        return asyncio.run(self.analyze_package(package_id, version, framework))

    def analyze_project_sync(self, project_path: str | Path, framework: str) -> AnalysisResult:
        """Run ``analyze_project`` to completion on a fresh event loop."""
        return asyncio.run(self.analyze_project(project_path, framework))

    # -- internals ---------------------------------------------------------

    def _build_sources(self) -> list[DependencySource]:
        return [create_source(s, self.settings.request_timeout) for s in self.settings.sources]

    def _closure_builder(
        self, sources: Sequence[DependencySource], framework: Framework
    ) -> ClosureBuilder:
        return ClosureBuilder(
            sources,
            framework,
            max_depth=self.settings.max_depth,
            max_concurrency=self.settings.max_concurrency,
            timeout=self.settings.timeout,
        )

    def _lock_source(
        self, project: ProjectDescription, warnings: list[str]
    ) -> LockFileSource | None:
        assets_path = project.assets_file
        if assets_path is None or not assets_path.is_file():
            return None
        try:
            source = LockFileSource(read_assets_file(assets_path))
        except LockFileError as exc:
            logger.warning("Ignoring lock file: %s", exc)
            warnings.append(f"Ignoring lock file: {exc}")
            return None
        logger.info("Using lock file %s", assets_path)
        return source

    def _seed_projects(
        self,
        builder: ClosureBuilder,
        restore_graph: RestoreGraph,
        project: ProjectDescription,
        framework: Framework,
        warnings: list[str],
    ) -> list[str]:
        """Seed *project* and its references; return every project name."""
        names: list[str] = []
        visited: set[str] = set()

        def seed(current: ProjectDescription, fw: Framework) -> None:
            if current.path.lower() in visited:
                return
            visited.add(current.path.lower())
            names.append(current.name)

            declared = current.for_framework(fw)
            dependencies = list(declared.dependencies) if declared else []
            for ref_path in declared.project_references if declared else ():
                ref = restore_graph.get(ref_path)
                if ref is None:
                    msg = f"Project reference {ref_path} of {current.name} is not in the restore graph"
                    logger.warning("%s", msg)
                    warnings.append(msg)
                    continue
                ref_fw = nearest(ref.target_frameworks, fw)
                if ref_fw is None:
                    raise IncompatiblePlatform(
                        PackageIdentity(ref.name, ref.version), fw, ref.target_frameworks
                    )
                dependencies.append(PackageDependency(ref.name, VersionRange.exact(ref.version)))
                seed(ref, ref_fw)

            builder.seed(PackageDependencyInfo(
                PackageIdentity(current.name, current.version),
                tuple(dependencies),
                source="project",
            ))

        seed(project, framework)
        return names

    async def _finish(
        self,
        root: PackageIdentity,
        closure: Closure,
        sources: Sequence[DependencySource],
        framework: Framework,
        *,
        project_names: Sequence[str],
        requested: list[PackageDependency],
    ) -> AnalysisResult:
        warnings = [f"{i} was not found in any source" for i in sorted(closure.missing, key=lambda i: i.key)]
        resolver = DependencyResolver(
            closure, self.settings.policy, self.settings.max_iterations
        )
        resolved = resolver.resolve(requested)

        project_keys = {n.lower() for n in project_names}
        packages = [i for i in resolved if i.id.lower() not in project_keys]
        provider = self._asset_provider or ChainedAssetProvider(
            [s for s in sources if isinstance(s, AssetProvider)]
        )
        assets = await self._select_assets(packages, provider, framework, warnings)

        graph = GraphAssembler(root, project_names).assemble(resolved, closure, assets)
        for warning in warnings:
            logger.debug("Warning: %s", warning)
        return AnalysisResult(graph, closure, resolved, framework, warnings)

    async def _select_assets(
        self,
        packages: list[PackageIdentity],
        provider: AssetProvider,
        framework: Framework,
        warnings: list[str],
    ) -> dict[PackageIdentity, PackageAssets]:
        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def fetch(identity: PackageIdentity):
            async with semaphore:
                try:
                    return await provider.get_lib_items(identity)
                except SourceUnavailable as exc:
                    logger.warning("%s", exc)
                    return None

        groups = await asyncio.gather(*(fetch(i) for i in packages))
        selector = AssetResolver(
            framework, self.settings.asset_extensions, self.settings.allow_partial
        )
        selected: dict[PackageIdentity, PackageAssets] = {}
        for identity, lib_groups in zip(packages, groups):
            if lib_groups is None:
                warnings.append(f"No asset information for {identity}")
            assets = selector.select(identity, lib_groups)
            if not assets.compatible:
                warnings.append(f"{identity} has no assets compatible with {framework}")
            selected[identity] = assets
        return selected


async def _close_all(sources: Sequence[DependencySource]) -> None:
    for source in sources:
        try:
            await source.aclose()
        except Exception:
            logger.debug("Failed to close source %s", source.name, exc_info=True)

"""Concurrent, memoized transitive-closure discovery.

Starting from a root identity, the ``ClosureBuilder`` asks the configured
dependency sources (in priority order) for each identity's declared
dependencies and recurses into every dependency at the *minimum* version its
range names. Sibling dependencies are explored concurrently.

Every identity is reserved in a shared map before any source is queried.
The reservation is an ``asyncio.Future`` that completes once the owner has
*fetched* the identity's declaration (not once its subtree is expanded), so
a second path reaching the same identity awaits the fetch and returns
without recursing. Because the owner completes the future before fanning
out, cycles in the dependency data terminate instead of deadlocking.

Insert-if-absent on the reservation map needs no lock: there is no
``await`` between the membership test and the insertion.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterator, Mapping, Sequence

from depgraph.core.dependency.models import (
    PackageDependency,
    PackageDependencyInfo,
    PackageIdentity,
)
from depgraph.core.frameworks import Framework
from depgraph.core.versioning import NuGetVersion
from depgraph.exceptions import (
    DiscoveryDepthExceeded,
    DiscoveryTimeout,
    RootNotFound,
    SourceUnavailable,
)
from depgraph.sources.base import DependencySource

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64
DEFAULT_MAX_CONCURRENCY = 16


# ---------------------------------------------------------------------------
# Closure: the discovered identities and their declarations
# ---------------------------------------------------------------------------


class Closure:
    """Every identity reachable from a root, with its declared dependencies.

    Holds at most one entry per identity. Identities that were reached but
    that no source could answer for are listed in ``missing``.

    Args:
        root: The identity discovery started from.
        framework: The framework dependencies were requested for.
        entries: Declarations keyed by identity.
        missing: Identities no source answered for.
    """

    def __init__(
        self,
        root: PackageIdentity,
        framework: Framework,
        entries: Mapping[PackageIdentity, PackageDependencyInfo],
        missing: Sequence[PackageIdentity] = (),
    ) -> None:
        self.root = root
        self.framework = framework
        self._entries: dict[PackageIdentity, PackageDependencyInfo] = dict(entries)
        self.missing: frozenset[PackageIdentity] = frozenset(missing)
        self._by_name: dict[str, list[PackageIdentity]] = {}
        for identity in sorted(self._entries, key=lambda i: i.key):
            self._by_name.setdefault(identity.id.lower(), []).append(identity)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __iter__(self) -> Iterator[PackageDependencyInfo]:
        """Iterate entries in (name, version) order."""
        for identity in sorted(self._entries, key=lambda i: i.key):
            yield self._entries[identity]

    def get(self, identity: PackageIdentity) -> PackageDependencyInfo | None:
        """Return the declaration for *identity*, or None if not discovered."""
        return self._entries.get(identity)

    @property
    def names(self) -> list[str]:
        """Distinct package names (lower-cased), sorted."""
        return sorted(self._by_name)

    def identities_of(self, package_id: str) -> list[PackageIdentity]:
        """All discovered identities of *package_id*, lowest version first."""
        return list(self._by_name.get(package_id.lower(), []))

    def versions_of(self, package_id: str) -> list[NuGetVersion]:
        """All discovered versions of *package_id*, lowest first."""
        return [i.version for i in self._by_name.get(package_id.lower(), [])]


# ---------------------------------------------------------------------------
# ClosureBuilder
# ---------------------------------------------------------------------------


@dataclass
class _DiscoveryState:
    reservations: dict[PackageIdentity, asyncio.Future]
    semaphore: asyncio.Semaphore


class ClosureBuilder:
    """Discover the transitive closure of a root across prioritized sources.

    The builder is reusable; each ``discover`` call starts from an empty
    reservation map and either returns a complete ``Closure`` or raises
    (partial results are discarded).

    Args:
        sources: Dependency sources in priority order.
        framework: The consumer's target framework.
        max_depth: Maximum dependency chain length below the root.
        max_concurrency: Maximum number of source queries in flight.
        timeout: Seconds allowed for the whole discovery, or None.
    """

    def __init__(
        self,
        sources: Sequence[DependencySource],
        framework: Framework,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        timeout: float | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._sources = list(sources)
        self._framework = framework
        self._max_depth = max_depth
        self._max_concurrency = max_concurrency
        self._timeout = timeout
        self._seeds: dict[PackageIdentity, PackageDependencyInfo] = {}

    @property
    def framework(self) -> Framework:
        return self._framework

    def seed(self, info: PackageDependencyInfo) -> None:
        """Register a declaration that does not come from any source.

        Used for the analyzed project and its project references, whose
        dependencies are known from the build description. A seeded
        identity is expanded like any other but never queried.
        """
        self._seeds[info.identity] = info

    async def discover(
        self,
        root: PackageIdentity,
        root_dependencies: Sequence[PackageDependency] | None = None,
    ) -> Closure:
        """Discover every identity reachable from *root*.

        Args:
            root: Identity to start from.
            root_dependencies: If given, *root* is seeded with these
                dependencies instead of being looked up in the sources.

        Returns:
            The complete closure.

        Raises:
            RootNotFound: If no source knows *root*.
            DiscoveryDepthExceeded: If a chain is deeper than ``max_depth``.
            DiscoveryTimeout: If discovery exceeds ``timeout``.
            asyncio.CancelledError: If the discovering task is cancelled;
                every in-flight source query is cancelled with it.
        """
        if root_dependencies is not None:
            self.seed(PackageDependencyInfo(root, tuple(root_dependencies), source="project"))

        state = _DiscoveryState(
            reservations={},
            semaphore=asyncio.Semaphore(self._max_concurrency),
        )
        logger.debug("Discovering closure of %s for %s", root, self._framework)
        try:
            if self._timeout is not None:
                await asyncio.wait_for(self._expand(root, 0, state), self._timeout)
            else:
                await self._expand(root, 0, state)
        except asyncio.TimeoutError:
            raise DiscoveryTimeout(
                f"Discovery of {root} did not finish within {self._timeout} seconds"
            ) from None

        entries: dict[PackageIdentity, PackageDependencyInfo] = {}
        missing: list[PackageIdentity] = []
        for identity, future in state.reservations.items():
            info = future.result()
            if info is None:
                missing.append(identity)
            else:
                entries[identity] = info

        if root not in entries:
            names = ", ".join(s.name for s in self._sources) or "no sources"
            raise RootNotFound(f"Package {root} was not found in {names}")

        logger.info(
            "Discovered %d package(s) for %s (%d missing)",
            len(entries), root, len(missing),
        )
        return Closure(root, self._framework, entries, missing)

    async def _expand(
        self, identity: PackageIdentity, depth: int, state: _DiscoveryState
    ) -> None:
        existing = state.reservations.get(identity)
        if existing is not None:
            await existing
            return

        reservation: asyncio.Future = asyncio.get_running_loop().create_future()
        state.reservations[identity] = reservation

        if depth > self._max_depth:
            reservation.set_result(None)
            raise DiscoveryDepthExceeded(
                f"Dependency chain deeper than {self._max_depth} at {identity}"
            )

        try:
            info = await self._fetch(identity, state.semaphore)
        except asyncio.CancelledError:
            reservation.cancel()
            raise
        except Exception as exc:
            reservation.set_exception(exc)
            reservation.exception()
            raise
        reservation.set_result(info)

        if info is None:
            logger.debug("No source answered for %s", identity)
            return

        children = []
        for dependency in info.dependencies:
            lowest = dependency.version_range.min_version
            if lowest is None:
                logger.warning(
                    "Skipping %s of %s: range %s has no lower bound",
                    dependency.id, identity, dependency.version_range,
                )
                continue
            child = PackageIdentity(dependency.id, lowest)
            children.append(asyncio.ensure_future(self._expand(child, depth + 1, state)))
        try:
            await asyncio.gather(*children)
        except BaseException:
            # One failed branch ends discovery; stop the siblings' queries too.
            for task in children:
                task.cancel()
            raise

    async def _fetch(
        self, identity: PackageIdentity, semaphore: asyncio.Semaphore
    ) -> PackageDependencyInfo | None:
        seeded = self._seeds.get(identity)
        if seeded is not None:
            return seeded

        for source in self._sources:
            try:
                async with semaphore:
                    info = await source.resolve_package(identity, self._framework)
            except SourceUnavailable as exc:
                logger.warning("%s", exc)
                continue
            except Exception:
                logger.warning(
                    "Source %s failed for %s", source.name, identity, exc_info=True
                )
                continue

            if info is None:
                continue
            if info.identity != identity:
                logger.warning(
                    "Source %s answered %s for %s; ignoring",
                    source.name, info.identity, identity,
                )
                continue
            logger.debug(
                "%s: %d dependencies from %s",
                identity, len(info.dependencies), source.name,
            )
            return info
        return None

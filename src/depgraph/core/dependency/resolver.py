"""Fixed-point version resolution over a discovered closure.

The resolver picks exactly one version per package name such that every
declared range among the picked identities is satisfied. It works on an
immutable selection and repeats rounds until the selection stops changing:

1. Collect constraints: the requested names (unconditional) plus the
   dependencies declared by every identity selected in the previous round.
2. For each constrained name, in sorted order, intersect all its ranges and
   choose among the versions discovered in the closure according to the
   policy (``LOWEST`` or ``HIGHEST``).
3. Stop when the new selection equals the previous one.

A name whose ranges contradict each other, or that has no discovered
versions, keeps its previous choice (or stays unselected) while the round
continues. The contradiction is only reported once a round changes nothing
else: until then a requester may still move to a version that declares a
different range.

When the rounds settle on a contradiction, or do not settle within the
round cap, a backtracking search over the discovered versions (in policy
order) looks for any assignment that satisfies every range. The
contradiction is raised only when that search finds none.

Failures carry enough context to explain themselves: the conflicting
``(requester, range)`` pairs, the chain of identities from the root to each
requester and the versions that were available.
"""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from functools import reduce
from typing import Iterable, Iterator

from depgraph.core.dependency.closure import Closure
from depgraph.core.dependency.models import PackageDependency, PackageIdentity
from depgraph.core.versioning import VersionRange
from depgraph.exceptions import (
    IdentityUnresolved,
    ResolutionDidNotConverge,
    ResolutionError,
    UnsatisfiableConstraints,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100
DEFAULT_MAX_SEARCH_STEPS = 100_000

Requirement = tuple["PackageIdentity | None", VersionRange]


class ResolutionPolicy(str, Enum):
    """Which satisfying version to pick for a package."""

    LOWEST = "lowest"
    HIGHEST = "highest"


# ---------------------------------------------------------------------------
# ResolvedSet: one identity per package name
# ---------------------------------------------------------------------------


class ResolvedSet:
    """The outcome of a successful resolution.

    Iterates identities in (name, version) order. Lookups by name are
    case-insensitive.

    Attributes:
        policy: The policy the set was resolved with.
        iterations: Number of rounds it took to reach the fixed point.
    """

    def __init__(
        self,
        identities: Iterable[PackageIdentity],
        policy: ResolutionPolicy = ResolutionPolicy.LOWEST,
        iterations: int = 0,
    ) -> None:
        self.policy = policy
        self.iterations = iterations
        self._by_name: dict[str, PackageIdentity] = {}
        for identity in identities:
            name = identity.id.lower()
            if name in self._by_name and self._by_name[name] != identity:
                raise ValueError(
                    f"Conflicting identities for {identity.id}: "
                    f"{self._by_name[name]} and {identity}"
                )
            self._by_name[name] = identity

    def __iter__(self) -> Iterator[PackageIdentity]:
        return iter(sorted(self._by_name.values(), key=lambda i: i.key))

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, identity: object) -> bool:
        if not isinstance(identity, PackageIdentity):
            return False
        return self._by_name.get(identity.id.lower()) == identity

    def get(self, package_id: str) -> PackageIdentity | None:
        """Return the identity selected for *package_id*, if any."""
        return self._by_name.get(package_id.lower())

    def as_dict(self) -> dict[str, str]:
        """Map each package name to its selected version string."""
        return {i.id: str(i.version) for i in self}


# ---------------------------------------------------------------------------
# DependencyResolver
# ---------------------------------------------------------------------------


class DependencyResolver:
    """Resolve one version per package name from a closure.

    Args:
        closure: The discovered closure. Candidates for a name are limited
            to the versions discovered in it.
        policy: ``LOWEST`` picks the smallest satisfying version,
            ``HIGHEST`` the largest.
        max_iterations: Round cap. Past it the resolver falls back to a full
            search of the candidates.
        max_search_steps: Partial assignments the fallback search may visit
            before raising ``ResolutionDidNotConverge``.
    """

    def __init__(
        self,
        closure: Closure,
        policy: ResolutionPolicy = ResolutionPolicy.LOWEST,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_search_steps: int = DEFAULT_MAX_SEARCH_STEPS,
    ) -> None:
        self.closure = closure
        self.policy = ResolutionPolicy(policy)
        self.max_iterations = max_iterations
        self.max_search_steps = max_search_steps

    def resolve(self, requested: Iterable[str | PackageDependency]) -> ResolvedSet:
        """Resolve *requested* and everything it transitively depends on.

        Args:
            requested: Package names (any version) or dependencies with
                explicit ranges that must appear in the result.

        Returns:
            A set with exactly one identity per constrained name.

        Raises:
            IdentityUnresolved: A constrained name has no discovered versions.
            UnsatisfiableConstraints: The ranges on a name do not intersect,
                or no discovered version satisfies the intersection.
            ResolutionDidNotConverge: The round cap was reached and the
                fallback search found nothing or ran out of steps.
        """
        roots = [
            r if isinstance(r, PackageDependency) else PackageDependency(r)
            for r in requested
        ]
        selection: dict[str, PackageIdentity] = {}

        for iteration in range(1, self.max_iterations + 1):
            constraints = self._collect(roots, selection)
            new_selection: dict[str, PackageIdentity] = {}
            pending: dict[str, ResolutionError] = {}
            for name, (display, requirements) in sorted(constraints.items()):
                try:
                    new_selection[name] = self._select(display, requirements)
                except (IdentityUnresolved, UnsatisfiableConstraints) as exc:
                    # Requesters may still move; keep the last choice for now.
                    pending[name] = exc
                    if name in selection:
                        new_selection[name] = selection[name]
            logger.debug(
                "Resolution round %d: %d package(s) selected, %d pending",
                iteration, len(new_selection), len(pending),
            )
            if new_selection == selection:
                if not pending:
                    return self._resolved(selection, iteration)
                first = min(pending)
                logger.debug(
                    "Rounds settled with %s unresolved; searching all candidates",
                    first,
                )
                found = self._search(roots)
                if found is None:
                    raise pending[first]
                return self._resolved(found, iteration)
            selection = new_selection

        logger.debug(
            "No fixed point within %d rounds; searching all candidates",
            self.max_iterations,
        )
        found = self._search(roots)
        if found is None:
            raise ResolutionDidNotConverge(
                f"Resolution did not reach a fixed point within "
                f"{self.max_iterations} rounds and no assignment satisfies "
                f"every range"
            )
        return self._resolved(found, self.max_iterations)

    # -- internals ---------------------------------------------------------

    def _resolved(self, selection: dict[str, PackageIdentity], iterations: int) -> ResolvedSet:
        logger.info(
            "Resolved %d package(s) in %d round(s) (%s)",
            len(selection), iterations, self.policy.value,
        )
        return ResolvedSet(selection.values(), self.policy, iterations)

    def _search(self, roots: list[PackageDependency]) -> dict[str, PackageIdentity] | None:
        """Backtracking search over the discovered versions, in policy order.

        The rounds commit to one version per name at a time, so an early
        pick can rule out the only consistent assignment. The search tries
        every candidate of each constrained name (sorted by name, then by
        policy) and returns the first assignment that satisfies every range
        it implies, or None when there is none.

        Raises:
            ResolutionDidNotConverge: If more than ``max_search_steps``
                partial assignments are visited.
        """
        highest = self.policy is ResolutionPolicy.HIGHEST
        steps = 0

        def extend(assignment: dict[str, PackageIdentity]) -> dict[str, PackageIdentity] | None:
            nonlocal steps
            steps += 1
            if steps > self.max_search_steps:
                raise ResolutionDidNotConverge(
                    f"Gave up after visiting {self.max_search_steps} candidate assignments"
                )

            constraints = self._collect(roots, assignment)
            for name, identity in assignment.items():
                if not all(rng.satisfies(identity.version) for _, rng in constraints[name][1]):
                    return None
            open_names = sorted(n for n in constraints if n not in assignment)
            if not open_names:
                return assignment

            name = open_names[0]
            display, requirements = constraints[name]
            candidates = [
                c for c in self.closure.identities_of(display)
                if all(rng.satisfies(c.version) for _, rng in requirements)
            ]
            if highest:
                candidates.reverse()
            for candidate in candidates:
                found = extend({**assignment, name: candidate})
                if found is not None:
                    return found
            return None

        return extend({})

    def _collect(
        self,
        roots: list[PackageDependency],
        selection: dict[str, PackageIdentity],
    ) -> dict[str, tuple[str, list[Requirement]]]:
        constraints: dict[str, tuple[str, list[Requirement]]] = {}

        def add(requester: PackageIdentity | None, dep: PackageDependency) -> None:
            entry = constraints.setdefault(dep.id.lower(), (dep.id, []))
            entry[1].append((requester, dep.version_range))

        for dep in roots:
            add(None, dep)
        for identity in sorted(selection.values(), key=lambda i: i.key):
            info = self.closure.get(identity)
            if info is None:
                continue
            for dep in info.dependencies:
                add(identity, dep)
        return constraints

    def _select(self, display: str, requirements: list[Requirement]) -> PackageIdentity:
        candidates = self.closure.identities_of(display)
        requesters = [req for req, _ in requirements if req is not None]
        if not candidates:
            raise IdentityUnresolved(display, [r.id for r in requesters])

        combined = reduce(
            lambda acc, rng: acc.intersect(rng),
            (rng for _, rng in requirements),
            VersionRange.all(),
        )
        available = [c.version for c in candidates]
        best = None
        if not combined.is_empty:
            best = combined.find_best_match(
                available, highest=self.policy is ResolutionPolicy.HIGHEST
            )
        if best is None:
            raise UnsatisfiableConstraints(
                display,
                requirements,
                available,
                [self._chain_to(r) for r in requesters],
            )
        return next(c for c in candidates if c.version == best)

    def _chain_to(self, target: PackageIdentity) -> list[PackageIdentity]:
        """Shortest path of identities from the closure root to *target*."""
        root = self.closure.root
        parents: dict[PackageIdentity, PackageIdentity | None] = {root: None}
        queue = deque([root])
        while queue:
            current = queue.popleft()
            if current == target:
                break
            info = self.closure.get(current)
            if info is None:
                continue
            for dep in info.dependencies:
                if dep.version_range.min_version is None:
                    continue
                child = PackageIdentity(dep.id, dep.version_range.min_version)
                if child not in parents and child in self.closure:
                    parents[child] = current
                    queue.append(child)

        if target not in parents:
            return [target]
        chain: list[PackageIdentity] = []
        node: PackageIdentity | None = target
        while node is not None:
            chain.append(node)
            node = parents[node]
        return list(reversed(chain))

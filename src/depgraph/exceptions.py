"""depgraph exception hierarchy.

All public exceptions inherit from DepGraphError, giving callers a single
base class to catch when they want to handle any depgraph-specific failure
without swallowing unrelated errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from depgraph.core.dependency.models import PackageIdentity
    from depgraph.core.frameworks.models import Framework
    from depgraph.core.versioning import NuGetVersion, VersionRange


class DepGraphError(Exception):
    """Base exception for all depgraph errors."""


class InvalidVersionError(DepGraphError, ValueError):
    """Raised when a version, version range or framework moniker is malformed."""


class ConfigError(DepGraphError):
    """Raised when a configuration file cannot be read or is invalid."""


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class SourceUnavailable(DepGraphError):
    """Raised by a dependency source that failed to answer for one identity.

    The closure builder recovers from this locally by trying the next
    source in priority order.
    """

    def __init__(self, source: str, identity: Any, reason: str = "") -> None:
        self.source = source
        self.identity = identity
        self.reason = reason
        msg = f"Source {source!r} unavailable for {identity}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class DiscoveryError(DepGraphError):
    """Raised when transitive-closure discovery cannot complete."""


class DiscoveryDepthExceeded(DiscoveryError):
    """Raised when the dependency chain is deeper than the configured cap."""


class DiscoveryTimeout(DiscoveryError):
    """Raised when closure discovery exceeds its time limit."""


class RootNotFound(DiscoveryError):
    """Raised when no source knows the analyzed root package at all."""


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class ResolutionError(DepGraphError):
    """Raised when version resolution fails.

    Covers unsatisfiable version ranges, dependencies that no source could
    answer for, and resolution that does not reach a fixed point.
    """


class IdentityUnresolved(ResolutionError):
    """Raised when a required package was never found in any source.

    Attributes:
        package_id: The package name nobody could provide.
        requesters: Display names of the packages that require it.
    """

    def __init__(self, package_id: str, requesters: Sequence[str] = ()) -> None:
        self.package_id = package_id
        self.requesters = list(requesters)
        msg = f"Unable to find package {package_id!r} in any source"
        if self.requesters:
            msg += f" (required by {', '.join(self.requesters)})"
        super().__init__(msg)


class UnsatisfiableConstraints(ResolutionError):
    """Raised when no single version of a package satisfies every range.

    Attributes:
        package_id: The package whose ranges conflict.
        requirements: ``(requester, range)`` pairs; the requester is None for
            a directly requested name.
        available: Versions of the package discovered in the closure.
        chains: For each requester, the path of identities from the root
            that led to it.
    """

    def __init__(
        self,
        package_id: str,
        requirements: Sequence[tuple[PackageIdentity | None, VersionRange]],
        available: Sequence[NuGetVersion] = (),
        chains: Sequence[Sequence[PackageIdentity]] = (),
    ) -> None:
        self.package_id = package_id
        self.requirements = list(requirements)
        self.available = list(available)
        self.chains = [list(c) for c in chains]
        parts = [
            f"{req if req is not None else '(requested)'} requires {rng}"
            for req, rng in self.requirements
        ]
        versions = ", ".join(str(v) for v in self.available) or "none"
        super().__init__(
            f"Unable to resolve {package_id!r}: {'; '.join(parts)} "
            f"(available: {versions})"
        )

    @property
    def requesters(self) -> list[str]:
        """Names of the packages that placed a range on ``package_id``."""
        return [req.id for req, _ in self.requirements if req is not None]


class ResolutionDidNotConverge(ResolutionError):
    """Raised when the resolver neither reaches a fixed point within its round
    cap nor finds an assignment by full search within its step budget.
    """


# ---------------------------------------------------------------------------
# Assets and graph
# ---------------------------------------------------------------------------


class IncompatiblePlatform(DepGraphError):
    """Raised when a package has lib assets but none usable by the target."""

    def __init__(
        self,
        identity: PackageIdentity,
        target: Framework,
        candidates: Sequence[Framework] = (),
    ) -> None:
        self.identity = identity
        self.target = target
        self.candidates = list(candidates)
        offered = ", ".join(c.short_folder_name for c in self.candidates) or "none"
        super().__init__(
            f"{identity} has no assets compatible with "
            f"{target.short_folder_name} (offers: {offered})"
        )


class RootNotUnique(DepGraphError):
    """Raised when the graph root is not matched by exactly one resolved identity.

    Always indicates a defect in discovery or resolution.
    """


class UnexpectedNodeType(DepGraphError):
    """Raised when the graph walk meets a node of a type it cannot expand."""


# ---------------------------------------------------------------------------
# External collaborators
# ---------------------------------------------------------------------------


class BuildToolError(DepGraphError):
    """Raised when the build tool cannot produce a restore graph.

    Attributes:
        output: Combined output captured from the build tool.
    """

    def __init__(self, message: str, output: str = "") -> None:
        self.output = output
        super().__init__(message)


class LockFileError(DepGraphError):
    """Raised when a lock file (project.assets.json) is missing or malformed."""


class FetchError(DepGraphError):
    """Raised by the HTTP helpers when a feed request fails.

    Attributes:
        url: The requested URL.
        status_code: HTTP status, or None for transport failures.
    """

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"{url}: {reason}")


class ProjectNotFound(DepGraphError):
    """Raised when a project path does not name exactly one project file."""

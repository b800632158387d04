"""Identities and declared dependencies.

These are pure data holders with no I/O, safe to import from every layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from depgraph.core.versioning import NuGetVersion, VersionRange


@dataclass(frozen=True, eq=False)
class PackageIdentity:
    """A package name at one concrete version.

    Equality and hashing are case-insensitive on the name and exact on the
    version, making the identity the dedup key of the whole engine.

    Attributes:
        id: Package name as spelled by the source that reported it.
        version: The concrete version.
    """

    id: str
    version: NuGetVersion

    @classmethod
    def of(cls, package_id: str, version: str) -> PackageIdentity:
        """Build an identity from a name and version text."""
        return cls(package_id, NuGetVersion.parse(version))

    @property
    def key(self) -> tuple[str, NuGetVersion]:
        """Case-folded sort and lookup key."""
        return (self.id.lower(), self.version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.id} {self.version}"


@dataclass(frozen=True)
class PackageDependency:
    """An unresolved dependency: a package name and the versions accepted.

    Attributes:
        id: Name of the required package.
        version_range: Versions of ``id`` that satisfy the requirement.
    """

    id: str
    version_range: VersionRange = field(default_factory=VersionRange.all)

    @classmethod
    def of(cls, package_id: str, version_range: str | None = None) -> PackageDependency:
        """Build a dependency from a name and range text."""
        return cls(package_id, VersionRange.parse(version_range))

    def __str__(self) -> str:
        return f"{self.id} {self.version_range}"


@dataclass(frozen=True)
class PackageDependencyInfo:
    """What one source declared about one identity for one framework.

    Attributes:
        identity: The package the declaration belongs to.
        dependencies: Declared dependencies for the requested framework.
        source: Name of the source that answered.
    """

    identity: PackageIdentity
    dependencies: tuple[PackageDependency, ...] = ()
    source: str = ""

    @property
    def id(self) -> str:
        return self.identity.id

    @property
    def version(self) -> NuGetVersion:
        return self.identity.version

"""In-memory package feed, optionally loaded from YAML.

Useful for offline analysis and as a test double for a registry. A feed
file looks like::

    name: local-feed
    packages:
      Foo:
        "1.0.0":
          dependencies:
            Bar: "[1.0.0, )"
          lib:
            net45: [Foo.dll]
            netstandard2.0: [Foo.dll]
      Bar:
        "1.0.0":
          groups:
            net45:
              Baz: "1.0.0"
            netstandard2.0: {}

``dependencies`` apply to every target framework. ``groups`` declare
dependencies per framework folder; the group nearest to the requested
framework is used. ``lib`` lists the file names shipped under each
``lib/<framework>/`` folder (``any`` for files directly under ``lib/``).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from depgraph.core.assets.models import LibItemGroup
from depgraph.core.dependency.models import (
    PackageDependency,
    PackageDependencyInfo,
    PackageIdentity,
)
from depgraph.core.frameworks import Framework, nearest
from depgraph.core.versioning import NuGetVersion
from depgraph.exceptions import ConfigError, DepGraphError
from depgraph.sources.base import AssetProvider, DependencySource

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("identity", "groups", "lib")

    def __init__(
        self,
        identity: PackageIdentity,
        groups: dict[Framework, tuple[PackageDependency, ...]],
        lib: list[LibItemGroup] | None,
    ) -> None:
        self.identity = identity
        self.groups = groups
        self.lib = lib


class InMemorySource(DependencySource, AssetProvider):
    """A dependency source and asset provider backed by a dict.

    Args:
        name: Name reported in logs and errors.
    """

    def __init__(self, name: str = "memory") -> None:
        self._name = name
        self._entries: dict[PackageIdentity, _Entry] = {}
        self.requests: list[PackageIdentity] = []

    @property
    def name(self) -> str:
        return self._name

    def add(
        self,
        package_id: str,
        version: str,
        dependencies: Mapping[str, str | None] | None = None,
        *,
        groups: Mapping[str, Mapping[str, str | None]] | None = None,
        lib: Mapping[str, list[str]] | None = None,
    ) -> PackageIdentity:
        """Register one package version.

        Args:
            package_id: Package name.
            version: Version text.
            dependencies: Dependency name to range text, for every framework.
            groups: Framework folder name to ``{dependency: range}``.
            lib: Framework folder name to file names under that folder.
                None (the default) means the feed knows nothing about the
                package's lib assets; an empty mapping marks a meta-package.

        Returns:
            The identity that was registered.

        Raises:
            InvalidVersionError: If a version, range or framework is malformed.
        """
        identity = PackageIdentity(package_id, NuGetVersion.parse(version))
        parsed: dict[Framework, tuple[PackageDependency, ...]] = {}
        if dependencies is not None or not groups:
            parsed[Framework.any()] = _parse_dependencies(dependencies or {})
        for folder, deps in (groups or {}).items():
            parsed[Framework.parse_folder(folder)] = _parse_dependencies(deps or {})

        lib_groups = None
        if lib is not None:
            lib_groups = []
            for folder, files in lib.items():
                framework = Framework.parse_folder(folder)
                prefix = "lib/" if framework == Framework.any() else f"lib/{folder}/"
                lib_groups.append(
                    LibItemGroup(framework, tuple(prefix + f for f in files or []))
                )
        self._entries[identity] = _Entry(identity, parsed, lib_groups)
        return identity

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], name: str | None = None) -> InMemorySource:
        """Build a feed from the parsed feed-file structure.

        Raises:
            ConfigError: If the structure is not a valid feed.
        """
        if not isinstance(data, Mapping):
            raise ConfigError("Feed must be a mapping with a 'packages' key")
        source = cls(name or str(data.get("name") or "memory"))
        packages = data.get("packages") or {}
        if not isinstance(packages, Mapping):
            raise ConfigError("'packages' must map package names to versions")
        for package_id, versions in packages.items():
            if not isinstance(versions, Mapping):
                raise ConfigError(f"Package {package_id!r} must map versions to entries")
            for version, entry in versions.items():
                entry = entry or {}
                try:
                    source.add(
                        str(package_id),
                        str(version),
                        entry.get("dependencies"),
                        groups=entry.get("groups"),
                        lib=entry.get("lib"),
                    )
                except (DepGraphError, AttributeError, TypeError) as exc:
                    raise ConfigError(
                        f"Invalid feed entry {package_id} {version}: {exc}"
                    ) from exc
        return source

    @classmethod
    def from_yaml(cls, path: str | Path) -> InMemorySource:
        """Load a feed file.

        Raises:
            ConfigError: If the file cannot be read or parsed.
        """
        feed_path = Path(path)
        try:
            data = yaml.safe_load(feed_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot load feed {feed_path}: {exc}") from exc
        return cls.from_mapping(data or {}, name=str(feed_path))

    def __len__(self) -> int:
        return len(self._entries)

    async def resolve_package(
        self, identity: PackageIdentity, framework: Framework
    ) -> PackageDependencyInfo | None:
        self.requests.append(identity)
        entry = self._entries.get(identity)
        if entry is None:
            logger.debug("%s: %s not in feed", self.name, identity)
            return None
        chosen = nearest(entry.groups, framework)
        dependencies = entry.groups[chosen] if chosen is not None else ()
        return PackageDependencyInfo(entry.identity, dependencies, source=self.name)

    async def get_lib_items(self, identity: PackageIdentity) -> list[LibItemGroup] | None:
        entry = self._entries.get(identity)
        return None if entry is None else entry.lib


def _parse_dependencies(deps: Mapping[str, str | None]) -> tuple[PackageDependency, ...]:
    return tuple(
        PackageDependency.of(str(dep_id), None if rng is None else str(rng))
        for dep_id, rng in deps.items()
    )

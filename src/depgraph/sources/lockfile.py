"""Lock-file (``project.assets.json``) reader and source.

A restore writes ``project.assets.json`` into the project's intermediate
output folder. Its ``targets`` section lists, per target framework, every
restored library with the dependencies it declared and its compile items;
its ``libraries`` section lists the files of every package. Reading it gives
exact answers without touching a feed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from depgraph.core.assets.models import LibItemGroup, group_lib_items
from depgraph.core.dependency.models import (
    PackageDependency,
    PackageDependencyInfo,
    PackageIdentity,
)
from depgraph.core.frameworks import Framework, nearest
from depgraph.core.versioning import NuGetVersion
from depgraph.exceptions import DepGraphError, LockFileError
from depgraph.sources.base import AssetProvider, DependencySource

logger = logging.getLogger(__name__)

ASSETS_FILE_NAME = "project.assets.json"


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TargetLibrary:
    """One library restored for one target framework."""

    identity: PackageIdentity
    type: str = "package"
    dependencies: tuple[PackageDependency, ...] = ()
    compile: tuple[str, ...] = ()


@dataclass
class AssetsFile:
    """The parts of ``project.assets.json`` the engine uses.

    Attributes:
        path: Where the file was read from.
        version: The file format version.
        targets: Framework to the libraries restored for it.
        library_files: Package files (``libraries.<id>/<ver>.files``).
        project_name: ``project.restore.projectName``, if present.
    """

    path: Path | None = None
    version: int = 0
    targets: dict[Framework, dict[PackageIdentity, TargetLibrary]] = field(default_factory=dict)
    library_files: dict[PackageIdentity, tuple[str, ...]] = field(default_factory=dict)
    project_name: str = ""

    def target_for(self, framework: Framework) -> dict[PackageIdentity, TargetLibrary] | None:
        """The target section nearest to *framework*, or None."""
        chosen = nearest(self.targets, framework)
        return None if chosen is None else self.targets[chosen]


def _split_key(key: str) -> PackageIdentity:
    package_id, sep, version = key.partition("/")
    if not sep:
        raise LockFileError(f"Invalid library key {key!r}")
    return PackageIdentity(package_id, NuGetVersion.parse(version))


def parse_assets_file(data: dict[str, Any], path: Path | None = None) -> AssetsFile:
    """Parse the JSON content of a ``project.assets.json`` file.

    Raises:
        LockFileError: If the content is not a valid assets file.
    """
    if not isinstance(data, dict) or "targets" not in data:
        raise LockFileError(f"{path or 'assets file'}: missing 'targets' section")

    assets = AssetsFile(path=path, version=int(data.get("version") or 0))
    try:
        for target_name, libraries in (data.get("targets") or {}).items():
            # "net472/win7-x86" is a runtime-specific target; keep the RID-less one.
            if "/" in target_name:
                continue
            framework = Framework.parse(target_name)
            section: dict[PackageIdentity, TargetLibrary] = {}
            for key, lib in (libraries or {}).items():
                identity = _split_key(key)
                section[identity] = TargetLibrary(
                    identity,
                    lib.get("type", "package"),
                    tuple(
                        PackageDependency.of(dep_id, str(rng))
                        for dep_id, rng in (lib.get("dependencies") or {}).items()
                    ),
                    tuple((lib.get("compile") or {}).keys()),
                )
            assets.targets[framework] = section

        for key, lib in (data.get("libraries") or {}).items():
            assets.library_files[_split_key(key)] = tuple(lib.get("files") or ())
    except LockFileError:
        raise
    except (DepGraphError, AttributeError, TypeError) as exc:
        raise LockFileError(f"{path or 'assets file'}: {exc}") from exc

    restore = (data.get("project") or {}).get("restore") or {}
    assets.project_name = restore.get("projectName", "")
    return assets


def read_assets_file(path: str | Path) -> AssetsFile:
    """Read and parse a ``project.assets.json`` file.

    Args:
        path: The file, or the folder containing it.

    Raises:
        LockFileError: If the file is missing or malformed.
    """
    assets_path = Path(path)
    if assets_path.is_dir():
        assets_path = assets_path / ASSETS_FILE_NAME
    try:
        data = json.loads(assets_path.read_text(encoding="utf-8-sig"))
    except OSError as exc:
        raise LockFileError(f"Cannot read {assets_path}: {exc}") from exc
    except ValueError as exc:
        raise LockFileError(f"{assets_path} is not valid JSON: {exc}") from exc
    logger.debug("Read lock file %s", assets_path)
    return parse_assets_file(data, assets_path)


# ---------------------------------------------------------------------------
# Lock-file source
# ---------------------------------------------------------------------------


class LockFileSource(DependencySource, AssetProvider):
    """Answer dependency and asset queries from a restored lock file.

    Only ``package`` libraries are answered; project entries come from the
    build description.
    """

    def __init__(self, assets: AssetsFile) -> None:
        self.assets = assets

    @classmethod
    def from_path(cls, path: str | Path) -> LockFileSource:
        return cls(read_assets_file(path))

    @property
    def name(self) -> str:
        return str(self.assets.path or ASSETS_FILE_NAME)

    async def resolve_package(
        self, identity: PackageIdentity, framework: Framework
    ) -> PackageDependencyInfo | None:
        section = self.assets.target_for(framework)
        if section is None:
            return None
        lib = section.get(identity)
        if lib is None or lib.type != "package":
            return None
        return PackageDependencyInfo(lib.identity, lib.dependencies, source=self.name)

    async def get_lib_items(self, identity: PackageIdentity) -> list[LibItemGroup] | None:
        files = self.assets.library_files.get(identity)
        if files is not None:
            return group_lib_items(files)

        compile_items: list[str] = []
        found = False
        for section in self.assets.targets.values():
            lib = section.get(identity)
            if lib is not None and lib.type == "package":
                found = True
                compile_items.extend(i for i in lib.compile if i not in compile_items)
        return group_lib_items(compile_items) if found else None

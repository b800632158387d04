"""Asset data models: lib item groups and the assets selected for a package."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from depgraph.core.frameworks import Framework
from depgraph.exceptions import InvalidVersionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LibItemGroup:
    """The files a package ships under ``lib/<framework>/``.

    Attributes:
        framework: Framework of the folder (``Framework.any()`` for files
            directly under ``lib/``).
        items: Package-relative paths, e.g. ``lib/net45/Foo.dll``.
    """

    framework: Framework
    items: tuple[str, ...] = ()


@dataclass(frozen=True)
class PackageAssets:
    """The assets exposed by one resolved package for the requesting target.

    Attributes:
        framework: The nearest lib framework, or None for a package without
            lib assets (a meta-package) or one skipped as incompatible.
        files: Asset file names, unique, in first-seen order.
        compatible: False when the package has lib assets but none usable by
            the target and the caller allowed a partial graph.
    """

    framework: Framework | None = None
    files: tuple[str, ...] = field(default_factory=tuple)
    compatible: bool = True

    @property
    def moniker(self) -> str:
        """Short folder name of the matched framework, empty if none."""
        return self.framework.short_folder_name if self.framework else ""


def group_lib_items(paths: Iterable[str]) -> list[LibItemGroup]:
    """Group package-relative paths under ``lib/`` by framework folder.

    Files directly under ``lib/`` belong to the framework-agnostic group.
    Folders with unknown framework names and paths outside ``lib/`` are
    skipped.

    Example::

        group_lib_items(["lib/net45/A.dll", "lib/netstandard2.0/A.dll"])
        # -> [LibItemGroup(net45, ("lib/net45/A.dll",)), LibItemGroup(netstandard2.0, ...)]
    """
    grouped: dict[Framework, list[str]] = {}
    for raw in paths:
        path = raw.replace("\\", "/")
        if not path.lower().startswith("lib/") or path.endswith("/"):
            continue
        parts = path.split("/")
        if len(parts) == 2:
            framework = Framework.any()
        else:
            try:
                framework = Framework.parse_folder(parts[1])
            except InvalidVersionError:
                logger.debug("Skipping lib folder %r", parts[1])
                continue
        grouped.setdefault(framework, []).append(path)
    return [LibItemGroup(fw, tuple(items)) for fw, items in grouped.items()]

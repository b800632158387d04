"""Select the lib assets a resolved package exposes to a target framework.

A package ships its assemblies in ``lib/<framework>/`` folders. The asset
resolver picks the folder nearest to the consumer's framework with the
compatibility reducer and exposes the file names of the items in it whose
extension is one of the configured asset extensions.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Sequence

from depgraph.core.assets.models import LibItemGroup, PackageAssets
from depgraph.core.dependency.models import PackageIdentity
from depgraph.core.frameworks import Framework, nearest
from depgraph.exceptions import IncompatiblePlatform

logger = logging.getLogger(__name__)

DEFAULT_ASSET_EXTENSIONS: tuple[str, ...] = (".dll",)


class AssetResolver:
    """Pick per-package lib assets for one target framework.

    Args:
        framework: The consumer's target framework.
        extensions: File extensions that count as assets (case-insensitive).
        allow_partial: When True, a package whose lib groups are all
            incompatible yields an empty, non-compatible asset set instead
            of raising ``IncompatiblePlatform``.
    """

    def __init__(
        self,
        framework: Framework,
        extensions: Sequence[str] = DEFAULT_ASSET_EXTENSIONS,
        allow_partial: bool = False,
    ) -> None:
        self.framework = framework
        self.extensions = tuple(e.lower() for e in extensions)
        self.allow_partial = allow_partial

    def select(
        self, identity: PackageIdentity, groups: Sequence[LibItemGroup] | None
    ) -> PackageAssets:
        """Return the assets *identity* exposes to the target framework.

        Args:
            identity: The resolved package.
            groups: Its lib item groups. None or empty marks a meta-package.

        Raises:
            IncompatiblePlatform: If lib groups exist but none is usable and
                partial graphs are not allowed.
        """
        if not groups:
            logger.debug("%s has no lib assets", identity)
            return PackageAssets()

        chosen = nearest((g.framework for g in groups), self.framework)
        if chosen is None:
            candidates = list(dict.fromkeys(g.framework for g in groups))
            if not self.allow_partial:
                raise IncompatiblePlatform(identity, self.framework, candidates)
            logger.warning(
                "%s has no assets compatible with %s; continuing without them",
                identity, self.framework,
            )
            return PackageAssets(compatible=False)

        files: list[str] = []
        for group in groups:
            if group.framework != chosen:
                continue
            for item in group.items:
                name = posixpath.basename(item.replace("\\", "/"))
                if not name or name in files:
                    continue
                if name.lower().endswith(self.extensions):
                    files.append(name)
        logger.debug("%s: %s -> %s", identity, chosen, files)
        return PackageAssets(chosen, tuple(files))

"""Base classes for dependency sources and asset providers.

A *dependency source* answers "what does package X at version V declare as
dependencies for framework F?". An *asset provider* answers "which files
does package X at version V ship under ``lib/``?". Registry adapters
usually implement both.

Sources signal a transport or protocol failure for a single identity by
raising ``SourceUnavailable``; returning None means the source does not know
the identity. Either way the closure builder moves on to the next source.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from depgraph.exceptions import SourceUnavailable

if TYPE_CHECKING:
    from depgraph.core.assets.models import LibItemGroup
    from depgraph.core.dependency.models import PackageDependencyInfo, PackageIdentity
    from depgraph.core.frameworks import Framework

logger = logging.getLogger(__name__)


class DependencySource(ABC):
    """Abstract base class for places package dependency metadata comes from."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of this source (a feed URL or a file path)."""

    @abstractmethod
    async def resolve_package(
        self, identity: PackageIdentity, framework: Framework
    ) -> PackageDependencyInfo | None:
        """Return the dependencies *identity* declares for *framework*.

        Args:
            identity: The package and exact version to look up.
            framework: The consumer's target framework.

        Returns:
            The declaration, or None if this source does not have the
            identity.

        Raises:
            SourceUnavailable: If the source failed to answer.
        """

    async def aclose(self) -> None:
        """Release network or file resources held by the source."""

    async def __aenter__(self) -> DependencySource:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class AssetProvider(ABC):
    """Abstract base class for places package lib items come from."""

    @abstractmethod
    async def get_lib_items(self, identity: PackageIdentity) -> list[LibItemGroup] | None:
        """Return the lib item groups of *identity*.

        Returns:
            One group per ``lib/<framework>/`` folder (empty for a
            meta-package), or None if the provider does not know the
            identity.

        Raises:
            SourceUnavailable: If the provider failed to answer.
        """


class ChainedAssetProvider(AssetProvider):
    """Ask several asset providers in priority order; the first answer wins."""

    def __init__(self, providers: list[AssetProvider]) -> None:
        self._providers = list(providers)

    async def get_lib_items(self, identity: PackageIdentity) -> list[LibItemGroup] | None:
        for provider in self._providers:
            try:
                groups = await provider.get_lib_items(identity)
            except SourceUnavailable as exc:
                logger.warning("%s", exc)
                continue
            if groups is not None:
                return groups
        return None

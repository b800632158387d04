"""Dependency sources and asset providers.

- ``NuGetV3Source``: a NuGet V3 feed over HTTP.
- ``InMemorySource``: a dict or YAML feed file.
- ``LockFileSource``: a restored ``project.assets.json``.
"""

from depgraph.sources.base import AssetProvider, ChainedAssetProvider, DependencySource
from depgraph.sources.lockfile import (
    AssetsFile,
    LockFileSource,
    parse_assets_file,
    read_assets_file,
)
from depgraph.sources.memory import InMemorySource
from depgraph.sources.nuget import NUGET_ORG_V3_INDEX, NuGetV3Source

__all__ = [
    "AssetProvider",
    "AssetsFile",
    "ChainedAssetProvider",
    "DependencySource",
    "InMemorySource",
    "LockFileSource",
    "NUGET_ORG_V3_INDEX",
    "NuGetV3Source",
    "parse_assets_file",
    "read_assets_file",
]

"""Lib asset selection for resolved packages."""

from depgraph.core.assets.models import LibItemGroup, PackageAssets, group_lib_items
from depgraph.core.assets.resolver import DEFAULT_ASSET_EXTENSIONS, AssetResolver

__all__ = [
    "AssetResolver",
    "DEFAULT_ASSET_EXTENSIONS",
    "LibItemGroup",
    "PackageAssets",
    "group_lib_items",
]

"""NuGet V3 feed source.

Reads declared dependencies from the registration resource and lib assets
from the flat container of any NuGet V3 feed (nuget.org by default).

Usage::

    async with NuGetV3Source() as source:
        info = await source.resolve_package(identity, Framework.parse("net472"))
        groups = await source.get_lib_items(identity)

Resources are located through the feed's service index:

- ``RegistrationsBaseUrl/3.6.0``: ``{base}{id}/index.json`` lists every
  version in pages; each leaf carries a ``catalogEntry`` with
  ``dependencyGroups`` per target framework. Pages not inlined in the index
  are fetched on demand.
- ``PackageBaseAddress/3.0.0``: ``{base}{id}/{version}/{id}.{version}.nupkg``
  is the package archive; its ``lib/<framework>/`` entries are the lib items.
"""

from __future__ import annotations

import asyncio
import io
import logging
import re
import zipfile
from typing import Any

import httpx

from depgraph.core.assets.models import LibItemGroup, group_lib_items
from depgraph.core.dependency.models import (
    PackageDependency,
    PackageDependencyInfo,
    PackageIdentity,
)
from depgraph.core.frameworks import Framework, FrameworkFamily, nearest
from depgraph.core.versioning import NuGetVersion, VersionRange
from depgraph.exceptions import FetchError, InvalidVersionError, SourceUnavailable
from depgraph.sources.base import AssetProvider, DependencySource
from depgraph.sources.http_client import DEFAULT_TIMEOUT, create_client, fetch_bytes, fetch_json

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NUGET_ORG_V3_INDEX: str = "https://api.nuget.org/v3/index.json"

REGISTRATIONS_TYPES: tuple[str, ...] = (
    "RegistrationsBaseUrl/3.6.0",
    "RegistrationsBaseUrl/3.4.0",
    "RegistrationsBaseUrl",
)
PACKAGE_BASE_ADDRESS_TYPE: str = "PackageBaseAddress/3.0.0"

_GROUP_FRAMEWORK_RE = re.compile(
    r"^\.?(?P<ident>NETFramework|NETStandard|NETCoreApp)(?P<ver>\d+(?:\.\d+){0,3})$",
    re.IGNORECASE,
)
_GROUP_FAMILIES = {
    "netframework": FrameworkFamily.NET_FRAMEWORK,
    "netstandard": FrameworkFamily.NET_STANDARD,
    "netcoreapp": FrameworkFamily.NET_CORE_APP,
}


def parse_group_framework(text: str | None) -> Framework:
    """Parse the ``targetFramework`` of a registration dependency group.

    Registration data spells frameworks as ``.NETStandard2.0`` or
    ``.NETFramework4.5`` as well as short folder names (``net6.0``). An empty
    value denotes the framework-agnostic group.

    Raises:
        InvalidVersionError: If the text is not a known framework.
    """
    stripped = (text or "").strip()
    if not stripped:
        return Framework.any()
    m = _GROUP_FRAMEWORK_RE.match(stripped)
    if m:
        family = _GROUP_FAMILIES[m.group("ident").lower()]
        parts = [int(p) for p in m.group("ver").split(".")][:4]
        parts += [0] * (4 - len(parts))
        return Framework(family, (parts[0], parts[1], parts[2], parts[3]))
    return Framework.parse(stripped)


# ---------------------------------------------------------------------------
# NuGet V3 source
# ---------------------------------------------------------------------------


class NuGetV3Source(DependencySource, AssetProvider):
    """Dependency source and asset provider for a NuGet V3 feed.

    Args:
        index_url: The feed's service index URL.
        timeout: Per-request timeout in seconds.
        client: HTTP client to use; one is created (and owned) when None.
    """

    def __init__(
        self,
        index_url: str = NUGET_ORG_V3_INDEX,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.index_url = index_url
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._resources: dict[str, str] | None = None
        self._index_lock = asyncio.Lock()
        self._registrations: dict[str, asyncio.Future[dict[str, Any] | None]] = {}

    @property
    def name(self) -> str:
        """Return the feed's service index URL."""
        return self.index_url

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = create_client(self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    # -- dependency source -------------------------------------------------

    async def resolve_package(
        self, identity: PackageIdentity, framework: Framework
    ) -> PackageDependencyInfo | None:
        """Return the dependencies *identity* declares for *framework*.

        Raises:
            SourceUnavailable: If the feed could not be queried.
        """
        try:
            entry = await self._catalog_entry(identity)
        except FetchError as exc:
            raise SourceUnavailable(self.name, identity, str(exc)) from exc
        if entry is None:
            return None

        declared_id = entry.get("id") or identity.id
        dependencies = self._select_dependencies(entry, identity, framework)
        return PackageDependencyInfo(
            PackageIdentity(declared_id, identity.version),
            tuple(dependencies),
            source=self.name,
        )

    def _select_dependencies(
        self, entry: dict[str, Any], identity: PackageIdentity, framework: Framework
    ) -> list[PackageDependency]:
        groups: dict[Framework, list[dict[str, Any]]] = {}
        for group in entry.get("dependencyGroups") or []:
            try:
                group_fw = parse_group_framework(group.get("targetFramework"))
            except InvalidVersionError:
                logger.debug(
                    "%s: skipping dependency group %r",
                    identity, group.get("targetFramework"),
                )
                continue
            groups.setdefault(group_fw, []).extend(group.get("dependencies") or [])

        if not groups:
            return []
        chosen = nearest(groups, framework)
        if chosen is None:
            logger.debug("%s: no dependency group for %s", identity, framework)
            return []

        dependencies = []
        for dep in groups[chosen]:
            try:
                dependencies.append(PackageDependency.of(dep["id"], dep.get("range")))
            except (KeyError, InvalidVersionError) as exc:
                logger.warning("%s: ignoring malformed dependency %r (%s)", identity, dep, exc)
        return dependencies

    async def _catalog_entry(self, identity: PackageIdentity) -> dict[str, Any] | None:
        index = await self._registration_index(identity.id)
        if index is None:
            return None
        for page in index.get("items") or []:
            lower, upper = page.get("lower"), page.get("upper")
            if lower and upper and not _within(identity.version, lower, upper):
                continue
            leaves = page.get("items")
            if leaves is None:
                if not page.get("@id"):
                    continue
                page_data = await fetch_json(page["@id"], client=self._http())
                leaves = (page_data or {}).get("items") or []
            for leaf in leaves:
                entry = leaf.get("catalogEntry")
                if not isinstance(entry, dict):
                    continue
                try:
                    version = NuGetVersion.parse(entry.get("version", ""))
                except InvalidVersionError:
                    continue
                if version == identity.version:
                    return entry
        return None

    async def _registration_index(self, package_id: str) -> dict[str, Any] | None:
        key = package_id.lower()
        pending = self._registrations.get(key)
        if pending is None:
            # Concurrent lookups of one id share a single request.
            pending = asyncio.ensure_future(self._fetch_registration_index(key))
            self._registrations[key] = pending
        try:
            return await asyncio.shield(pending)
        except FetchError:
            if self._registrations.get(key) is pending:
                del self._registrations[key]
            raise

    async def _fetch_registration_index(self, key: str) -> dict[str, Any] | None:
        base = await self._resource(REGISTRATIONS_TYPES)
        return await fetch_json(f"{base}{key}/index.json", client=self._http())

    async def _resource(self, types: tuple[str, ...]) -> str:
        async with self._index_lock:
            if self._resources is None:
                data = await fetch_json(self.index_url, client=self._http())
                if not isinstance(data, dict):
                    raise FetchError(self.index_url, "no service index")
                self._resources = {
                    r.get("@type", ""): r.get("@id", "")
                    for r in data.get("resources", [])
                    if isinstance(r, dict)
                }
        for resource_type in types:
            url = self._resources.get(resource_type)
            if url:
                return url if url.endswith("/") else url + "/"
        raise FetchError(self.index_url, f"service index has no {types[0]} resource")

    # -- asset provider ----------------------------------------------------

    async def get_lib_items(self, identity: PackageIdentity) -> list[LibItemGroup] | None:
        """Return the lib item groups read from the package archive.

        Raises:
            SourceUnavailable: If the feed could not be queried or the
                archive is not a valid zip file.
        """
        try:
            base = await self._resource((PACKAGE_BASE_ADDRESS_TYPE,))
            pid, ver = identity.id.lower(), identity.version.normalized.lower()
            data = await fetch_bytes(
                f"{base}{pid}/{ver}/{pid}.{ver}.nupkg", client=self._http()
            )
        except FetchError as exc:
            raise SourceUnavailable(self.name, identity, str(exc)) from exc
        if data is None:
            return None
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                names = archive.namelist()
        except zipfile.BadZipFile as exc:
            raise SourceUnavailable(self.name, identity, "invalid package archive") from exc
        return group_lib_items(names)


def _within(version: NuGetVersion, lower: str, upper: str) -> bool:
    try:
        rng = VersionRange(NuGetVersion.parse(lower), True, NuGetVersion.parse(upper), True)
    except InvalidVersionError:
        return True
    return rng.satisfies(version)

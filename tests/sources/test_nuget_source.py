"""Tests for NuGetV3Source with all HTTP calls mocked."""

from __future__ import annotations

import asyncio
import io
import zipfile
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from depgraph.core.dependency import PackageIdentity
from depgraph.core.frameworks import Framework
from depgraph.exceptions import FetchError, SourceUnavailable
from depgraph.sources.nuget import NuGetV3Source, parse_group_framework

INDEX = "https://feed.test/v3/index.json"
REG = "https://feed.test/v3/registration/"
FLAT = "https://feed.test/v3/flat/"

SERVICE_INDEX = {
    "version": "3.0.0",
    "resources": [
        {"@id": REG, "@type": "RegistrationsBaseUrl/3.6.0"},
        {"@id": FLAT.rstrip("/"), "@type": "PackageBaseAddress/3.0.0"},
    ],
}


def _leaf(package_id: str, version: str, groups: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "catalogEntry": {
            "id": package_id,
            "version": version,
            "dependencyGroups": groups,
        }
    }


FOO_REGISTRATION = {
    "items": [
        {
            "lower": "1.0.0",
            "upper": "2.0.0",
            "items": [
                _leaf("Foo", "1.0.0", [
                    {
                        "targetFramework": ".NETFramework4.5",
                        "dependencies": [{"id": "Bar", "range": "[1.0.0, )"}],
                    },
                    {
                        "targetFramework": ".NETStandard2.0",
                        "dependencies": [{"id": "Baz", "range": "[2.0.0, )"}],
                    },
                ]),
                _leaf("Foo", "2.0.0", []),
            ],
        },
        {"lower": "3.0.0", "upper": "4.0.0", "@id": REG + "foo/page/3.0.0/4.0.0.json"},
    ]
}

FOO_PAGE = {"items": [_leaf("Foo", "3.1.0", [{"dependencies": [{"id": "Qux"}]}])]}


def _urls(mapping: dict[str, Any]):
    async def fake(url: str, **kwargs: Any) -> Any:
        return mapping.get(url)

    return fake


def _patch_fetch_json(mapping: dict[str, Any]) -> Any:
    """Patch fetch_json to answer from *mapping* (None for unknown URLs)."""
    return patch(
        "depgraph.sources.nuget.fetch_json",
        new_callable=AsyncMock,
        side_effect=_urls(mapping),
    )


def _nupkg(*names: str) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name in names:
            archive.writestr(name, b"")
    return buffer.getvalue()


@pytest.fixture
def source() -> NuGetV3Source:
    return NuGetV3Source(INDEX, client=MagicMock())


def ident(package_id: str, version: str) -> PackageIdentity:
    return PackageIdentity.of(package_id, version)


# ---------------------------------------------------------------------------
# parse_group_framework
# ---------------------------------------------------------------------------


class TestParseGroupFramework:
    """Tests for registration targetFramework spellings."""

    @pytest.mark.parametrize(
        ("text", "folder"),
        [
            (".NETFramework4.5", "net45"),
            (".NETStandard2.0", "netstandard2.0"),
            (".NETCoreApp3.1", "netcoreapp3.1"),
            ("net6.0", "net6.0"),
            (".NETFramework,Version=v4.7.2", "net472"),
        ],
    )
    def test_spellings(self, text: str, folder: str) -> None:
        assert parse_group_framework(text) == Framework.parse_folder(folder)

    @pytest.mark.parametrize("text", [None, "", "  "])
    def test_empty_is_any(self, text: str | None) -> None:
        assert parse_group_framework(text) == Framework.any()


# ---------------------------------------------------------------------------
# resolve_package
# ---------------------------------------------------------------------------


class TestResolvePackage:
    """Tests for dependency lookups."""

    def _mapping(self) -> dict[str, Any]:
        return {
            INDEX: SERVICE_INDEX,
            REG + "foo/index.json": FOO_REGISTRATION,
            REG + "foo/page/3.0.0/4.0.0.json": FOO_PAGE,
        }

    def test_picks_nearest_dependency_group(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json(self._mapping()):
            info = asyncio.run(
                source.resolve_package(ident("Foo", "1.0.0"), Framework.parse_folder("net472"))
            )
        assert info is not None
        assert [str(d) for d in info.dependencies] == ["Bar [1.0.0, )"]
        assert info.dependencies[0].version_range.label == "[1.0.0, )"
        assert info.source == INDEX

    def test_standard_group_for_core_target(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json(self._mapping()):
            info = asyncio.run(
                source.resolve_package(ident("Foo", "1.0.0"), Framework.parse_folder("netcoreapp3.1"))
            )
        assert [d.id for d in info.dependencies] == ["Baz"]

    def test_no_compatible_group(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json(self._mapping()):
            info = asyncio.run(
                source.resolve_package(ident("Foo", "1.0.0"), Framework.parse_folder("net40"))
            )
        assert info.dependencies == ()

    def test_version_without_groups(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json(self._mapping()):
            info = asyncio.run(
                source.resolve_package(ident("Foo", "2.0.0"), Framework.parse_folder("net472"))
            )
        assert info.dependencies == ()

    def test_fetches_page_on_demand(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json(self._mapping()) as mock:
            info = asyncio.run(
                source.resolve_package(ident("foo", "3.1.0"), Framework.parse_folder("net472"))
            )
        assert info.identity.id == "Foo"
        assert [d.id for d in info.dependencies] == ["Qux"]
        assert any(c.args[0].endswith("4.0.0.json") for c in mock.call_args_list)

    def test_unknown_version(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json(self._mapping()):
            info = asyncio.run(
                source.resolve_package(ident("Foo", "9.0.0"), Framework.parse_folder("net472"))
            )
        assert info is None

    def test_unknown_package(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json(self._mapping()):
            info = asyncio.run(
                source.resolve_package(ident("Nope", "1.0.0"), Framework.parse_folder("net472"))
            )
        assert info is None

    def test_registration_and_index_are_cached(self, source: NuGetV3Source) -> None:
        async def twice() -> None:
            fw = Framework.parse_folder("net472")
            await source.resolve_package(ident("Foo", "1.0.0"), fw)
            await source.resolve_package(ident("Foo", "2.0.0"), fw)

        with _patch_fetch_json(self._mapping()) as mock:
            asyncio.run(twice())
        assert mock.await_count == 2

    def test_concurrent_lookups_share_registration_fetch(self, source: NuGetV3Source) -> None:
        mapping = self._mapping()
        answer = _urls(mapping)

        async def slow(url: str, **kwargs: Any) -> Any:
            await asyncio.sleep(0)
            return await answer(url, **kwargs)

        async def together() -> list[Any]:
            fw = Framework.parse_folder("net472")
            return await asyncio.gather(
                source.resolve_package(ident("Foo", "1.0.0"), fw),
                source.resolve_package(ident("Foo", "2.0.0"), fw),
            )

        with patch(
            "depgraph.sources.nuget.fetch_json", new_callable=AsyncMock, side_effect=slow
        ) as mock:
            first, second = asyncio.run(together())
        assert str(first.identity.version) == "1.0.0"
        assert str(second.identity.version) == "2.0.0"
        urls = [c.args[0] for c in mock.await_args_list]
        assert urls.count(REG + "foo/index.json") == 1

    def test_failed_registration_fetch_is_retried(self, source: NuGetV3Source) -> None:
        mapping = self._mapping()
        answer = _urls(mapping)
        failures = [FetchError(REG + "foo/index.json", "HTTP 503", 503)]

        async def flaky(url: str, **kwargs: Any) -> Any:
            if url == REG + "foo/index.json" and failures:
                raise failures.pop()
            return await answer(url, **kwargs)

        fw = Framework.parse_folder("net472")
        with patch("depgraph.sources.nuget.fetch_json", new_callable=AsyncMock, side_effect=flaky):
            with pytest.raises(SourceUnavailable):
                asyncio.run(source.resolve_package(ident("Foo", "1.0.0"), fw))
            info = asyncio.run(source.resolve_package(ident("Foo", "1.0.0"), fw))
        assert info is not None

    def test_fetch_error_becomes_source_unavailable(self, source: NuGetV3Source) -> None:
        with patch(
            "depgraph.sources.nuget.fetch_json",
            new_callable=AsyncMock,
            side_effect=FetchError(INDEX, "HTTP 503", 503),
        ):
            with pytest.raises(SourceUnavailable) as info:
                asyncio.run(
                    source.resolve_package(ident("Foo", "1.0.0"), Framework.parse_folder("net472"))
                )
        assert info.value.source == INDEX

    def test_missing_registration_resource(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json({INDEX: {"resources": []}}):
            with pytest.raises(SourceUnavailable, match="RegistrationsBaseUrl"):
                asyncio.run(
                    source.resolve_package(ident("Foo", "1.0.0"), Framework.parse_folder("net472"))
                )

    def test_malformed_dependency_is_skipped(self, source: NuGetV3Source) -> None:
        registration = {"items": [{"items": [_leaf("Foo", "1.0.0", [{
            "dependencies": [{"id": "Bar", "range": "[oops"}, {"id": "Baz", "range": "1.0.0"}],
        }])]}]}
        mapping = {INDEX: SERVICE_INDEX, REG + "foo/index.json": registration}
        with _patch_fetch_json(mapping):
            info = asyncio.run(
                source.resolve_package(ident("Foo", "1.0.0"), Framework.parse_folder("net472"))
            )
        assert [d.id for d in info.dependencies] == ["Baz"]


# ---------------------------------------------------------------------------
# get_lib_items
# ---------------------------------------------------------------------------


class TestGetLibItems:
    """Tests for reading lib items from the package archive."""

    def test_reads_lib_folders(self, source: NuGetV3Source) -> None:
        archive = _nupkg(
            "Foo.nuspec",
            "lib/net45/Foo.dll",
            "lib/netstandard2.0/Foo.dll",
            "ref/net45/Foo.dll",
        )
        with _patch_fetch_json({INDEX: SERVICE_INDEX}), patch(
            "depgraph.sources.nuget.fetch_bytes", new_callable=AsyncMock, return_value=archive
        ) as mock_bytes:
            groups = asyncio.run(source.get_lib_items(ident("Foo", "1.0.0")))
        assert {str(g.framework) for g in groups} == {"net45", "netstandard2.0"}
        assert mock_bytes.call_args.args[0] == FLAT + "foo/1.0.0/foo.1.0.0.nupkg"

    def test_normalizes_version_in_url(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json({INDEX: SERVICE_INDEX}), patch(
            "depgraph.sources.nuget.fetch_bytes", new_callable=AsyncMock, return_value=_nupkg()
        ) as mock_bytes:
            groups = asyncio.run(source.get_lib_items(ident("Foo", "1.0-Beta+build")))
        assert groups == []
        assert mock_bytes.call_args.args[0] == FLAT + "foo/1.0.0-beta/foo.1.0.0-beta.nupkg"

    def test_missing_archive(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json({INDEX: SERVICE_INDEX}), patch(
            "depgraph.sources.nuget.fetch_bytes", new_callable=AsyncMock, return_value=None
        ):
            assert asyncio.run(source.get_lib_items(ident("Foo", "1.0.0"))) is None

    def test_corrupt_archive(self, source: NuGetV3Source) -> None:
        with _patch_fetch_json({INDEX: SERVICE_INDEX}), patch(
            "depgraph.sources.nuget.fetch_bytes", new_callable=AsyncMock, return_value=b"not a zip"
        ):
            with pytest.raises(SourceUnavailable, match="invalid package archive"):
                asyncio.run(source.get_lib_items(ident("Foo", "1.0.0")))


class TestLifecycle:
    """Tests for client ownership."""

    def test_borrowed_client_is_not_closed(self) -> None:
        client = MagicMock()
        client.aclose = AsyncMock()
        asyncio.run(NuGetV3Source(INDEX, client=client).aclose())
        client.aclose.assert_not_awaited()

    def test_name_is_index_url(self, source: NuGetV3Source) -> None:
        assert source.name == INDEX

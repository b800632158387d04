"""Tests for Framework parsing and monikers."""

from __future__ import annotations

import pytest

from depgraph.core.frameworks import Framework, FrameworkFamily
from depgraph.exceptions import InvalidVersionError


class TestParseFolder:
    """Tests for Framework.parse_folder."""

    @pytest.mark.parametrize(
        ("folder", "family", "version"),
        [
            ("net45", FrameworkFamily.NET_FRAMEWORK, (4, 5, 0, 0)),
            ("net472", FrameworkFamily.NET_FRAMEWORK, (4, 7, 2, 0)),
            ("netstandard2.0", FrameworkFamily.NET_STANDARD, (2, 0, 0, 0)),
            ("netcoreapp3.1", FrameworkFamily.NET_CORE_APP, (3, 1, 0, 0)),
            ("net6.0", FrameworkFamily.NET_CORE_APP, (6, 0, 0, 0)),
            ("NET472", FrameworkFamily.NET_FRAMEWORK, (4, 7, 2, 0)),
        ],
    )
    def test_known_folders(
        self, folder: str, family: FrameworkFamily, version: tuple[int, ...]
    ) -> None:
        fw = Framework.parse_folder(folder)
        assert fw.family is family
        assert fw.version == version

    def test_platform_suffix(self) -> None:
        fw = Framework.parse_folder("net6.0-windows")
        assert fw.family is FrameworkFamily.NET_CORE_APP
        assert fw.platform == "windows"

    def test_platform_suffix_rejected_before_net5(self) -> None:
        with pytest.raises(InvalidVersionError):
            Framework.parse_folder("net45-windows")

    @pytest.mark.parametrize("folder", ["", "any"])
    def test_any(self, folder: str) -> None:
        assert Framework.parse_folder(folder) == Framework.any()

    @pytest.mark.parametrize("folder", ["portable-net45+win8", "foo", "uap10.0"])
    def test_unknown(self, folder: str) -> None:
        with pytest.raises(InvalidVersionError):
            Framework.parse_folder(folder)


class TestParseFullName:
    """Tests for Framework.parse with full framework names."""

    def test_net_framework(self) -> None:
        assert Framework.parse(".NETFramework,Version=v4.7.2") == Framework.parse_folder("net472")

    def test_net_core_app(self) -> None:
        assert Framework.parse(".NETCoreApp,Version=v3.1") == Framework.parse_folder("netcoreapp3.1")

    def test_falls_back_to_folder_name(self) -> None:
        assert Framework.parse("netstandard2.0").family is FrameworkFamily.NET_STANDARD

    def test_unknown_identifier(self) -> None:
        with pytest.raises(InvalidVersionError):
            Framework.parse("Silverlight,Version=v5.0")


class TestMonikers:
    """Tests for short and full names."""

    @pytest.mark.parametrize(
        "folder", ["net45", "net472", "net48", "netstandard2.0", "netcoreapp3.1", "net6.0", "net6.0-windows"]
    )
    def test_short_folder_name_round_trips(self, folder: str) -> None:
        assert Framework.parse_folder(folder).short_folder_name == folder

    def test_dotnet_framework_name(self) -> None:
        assert Framework.parse_folder("net472").dotnet_framework_name == ".NETFramework,Version=v4.7.2"
        assert Framework.parse_folder("netstandard2.0").dotnet_framework_name == ".NETStandard,Version=v2.0"

    def test_str_is_short_name(self) -> None:
        assert str(Framework.parse_folder("net45")) == "net45"

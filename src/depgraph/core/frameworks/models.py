"""Target frameworks (target platforms) and their textual monikers.

A ``Framework`` is a compatibility domain a consumer builds against. It is
parsed from either a short folder name, as found under a package's ``lib/``
folder and in project files::

    net45, net472, netstandard2.0, netcoreapp3.1, net6.0, net6.0-windows

or a full framework name, as found in lock files::

    .NETFramework,Version=v4.7.2
    .NETCoreApp,Version=v3.1

Folder names ``net5.0`` and later denote ``.NETCoreApp`` even though they
share the ``net`` prefix with ``.NETFramework`` folders such as ``net45``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from depgraph.exceptions import InvalidVersionError


class FrameworkFamily(Enum):
    """Framework identifiers understood by the compatibility reducer."""

    NET_FRAMEWORK = ".NETFramework"
    NET_STANDARD = ".NETStandard"
    NET_CORE_APP = ".NETCoreApp"
    ANY = "Any"


_FOLDER_RE = re.compile(r"^(?P<prefix>netstandard|netcoreapp|net)(?P<ver>\d+(?:\.\d+){0,3})$")
_FULL_NAME_RE = re.compile(
    r"^\s*(?P<ident>[.A-Za-z]+)\s*,\s*Version\s*=\s*v?(?P<ver>\d+(?:\.\d+){0,3})",
    re.IGNORECASE,
)
_FAMILIES_BY_NAME = {f.value.lower(): f for f in FrameworkFamily}

FrameworkVersion = tuple[int, int, int, int]


def _version_tuple(text: str) -> FrameworkVersion:
    # "472" -> 4.7.2 ; "2.0" -> 2.0
    parts = text.split(".") if "." in text else list(text)
    nums = [int(p) for p in parts][:4]
    nums += [0] * (4 - len(nums))
    return nums[0], nums[1], nums[2], nums[3]


@dataclass(frozen=True)
class Framework:
    """A target framework: family, version and optional OS platform.

    Attributes:
        family: The framework family.
        version: Four-part framework version.
        platform: OS platform suffix of ``net5.0+`` monikers (e.g.
            ``"windows"``), lower-cased. Empty when absent.
    """

    family: FrameworkFamily
    version: FrameworkVersion = (0, 0, 0, 0)
    platform: str = ""

    @classmethod
    def any(cls) -> Framework:
        """The framework of assets placed directly under ``lib/``."""
        return cls(FrameworkFamily.ANY)

    @classmethod
    def parse_folder(cls, folder: str) -> Framework:
        """Parse a short folder name such as ``net472`` or ``net6.0-windows``.

        Raises:
            InvalidVersionError: If the folder name is not a known moniker.
        """
        text = (folder or "").strip().lower()
        if text in ("", "any", "agnostic"):
            return cls.any()

        base, _, platform = text.partition("-")
        m = _FOLDER_RE.match(base)
        if not m:
            raise InvalidVersionError(f"Unsupported framework: {folder!r}")

        prefix, ver = m.group("prefix"), m.group("ver")
        version = _version_tuple(ver)
        if prefix == "netstandard":
            family = FrameworkFamily.NET_STANDARD
        elif prefix == "netcoreapp":
            family = FrameworkFamily.NET_CORE_APP
        elif "." in ver and version[0] >= 5:
            family = FrameworkFamily.NET_CORE_APP
        else:
            family = FrameworkFamily.NET_FRAMEWORK

        if platform and not (family is FrameworkFamily.NET_CORE_APP and version[0] >= 5):
            raise InvalidVersionError(f"Unsupported framework: {folder!r}")
        return cls(family, version, platform)

    @classmethod
    def parse(cls, text: str) -> Framework:
        """Parse a full framework name or, failing that, a folder name."""
        m = _FULL_NAME_RE.match(text or "")
        if not m:
            return cls.parse_folder(text)
        family = _FAMILIES_BY_NAME.get(m.group("ident").lower())
        if family is None:
            raise InvalidVersionError(f"Unsupported framework: {text!r}")
        return cls(family, _version_tuple(m.group("ver")))

    @property
    def short_folder_name(self) -> str:
        """The short moniker, e.g. ``net45`` or ``netstandard2.0``."""
        major, minor, patch, revision = self.version
        if self.family is FrameworkFamily.ANY:
            return "any"
        if self.family is FrameworkFamily.NET_STANDARD:
            return f"netstandard{major}.{minor}"
        if self.family is FrameworkFamily.NET_CORE_APP:
            if major >= 5:
                name = f"net{major}.{minor}"
                return f"{name}-{self.platform}" if self.platform else name
            return f"netcoreapp{major}.{minor}"
        digits = [major, minor, patch, revision]
        while len(digits) > 2 and digits[-1] == 0:
            digits.pop()
        return "net" + "".join(str(d) for d in digits)

    @property
    def dotnet_framework_name(self) -> str:
        """The full name, e.g. ``.NETFramework,Version=v4.7.2``."""
        if self.family is FrameworkFamily.ANY:
            return "Any,Version=v0.0"
        parts = list(self.version)
        while len(parts) > 2 and parts[-1] == 0:
            parts.pop()
        return f"{self.family.value},Version=v{'.'.join(str(p) for p in parts)}"

    def __str__(self) -> str:
        return self.short_folder_name

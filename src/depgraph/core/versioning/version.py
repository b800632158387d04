"""NuGet-style package versions.

A version has one to four numeric parts (``major.minor.patch.revision``),
optional dot-separated prerelease labels and optional build metadata::

    1.0             -> 1.0.0
    4.7.2           -> 4.7.2
    1.2.3.4         -> 1.2.3.4
    2.0.0-beta.11   -> prerelease, sorts before 2.0.0
    1.0.0+sha.abc   -> metadata, ignored for ordering and equality

Ordering follows SemVer 2.0.0 precedence extended with the fourth
(revision) part: numeric parts first, then a release sorts after any of its
prereleases, then prerelease labels are compared one by one. Numeric labels
compare numerically and sort before alphanumeric labels; alphanumeric
labels compare case-insensitively.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field

from depgraph.exceptions import InvalidVersionError

_VERSION_RE = re.compile(
    r"^(?P<major>\d+)"
    r"(?:\.(?P<minor>\d+))?"
    r"(?:\.(?P<patch>\d+))?"
    r"(?:\.(?P<revision>\d+))?"
    r"(?:-(?P<pre>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<meta>[0-9A-Za-z\-.]+))?$"
)


def _label_key(label: str) -> tuple[int, int, str]:
    if label.isdigit():
        return (0, int(label), "")
    return (1, 0, label.lower())


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class NuGetVersion:
    """A single concrete package version.

    Attributes:
        major: First numeric part.
        minor: Second numeric part (0 when omitted).
        patch: Third numeric part (0 when omitted).
        revision: Fourth numeric part (0 when omitted).
        release_labels: Prerelease labels, empty for a release version.
        metadata: Build metadata without the leading ``+``.
        original: The text the version was parsed from, if any.
    """

    major: int
    minor: int = 0
    patch: int = 0
    revision: int = 0
    release_labels: tuple[str, ...] = ()
    metadata: str = ""
    original: str = field(default="", repr=False)

    @classmethod
    def parse(cls, text: str) -> NuGetVersion:
        """Parse a version string.

        Args:
            text: Version text such as ``"1.0"``, ``"4.7.2"`` or
                ``"2.0.0-rc.1"``.

        Returns:
            The parsed version.

        Raises:
            InvalidVersionError: If *text* is not a valid version.
        """
        if not isinstance(text, str):
            raise InvalidVersionError(f"Invalid version: {text!r}")
        stripped = text.strip()
        m = _VERSION_RE.match(stripped)
        if not m:
            raise InvalidVersionError(f"Invalid version: {text!r}")
        pre = m.group("pre")
        return cls(
            major=int(m.group("major")),
            minor=int(m.group("minor") or 0),
            patch=int(m.group("patch") or 0),
            revision=int(m.group("revision") or 0),
            release_labels=tuple(pre.split(".")) if pre else (),
            metadata=m.group("meta") or "",
            original=stripped,
        )

    @property
    def is_prerelease(self) -> bool:
        """True when the version carries prerelease labels."""
        return bool(self.release_labels)

    @property
    def release(self) -> str:
        """The prerelease part joined with dots (empty for releases)."""
        return ".".join(self.release_labels)

    @property
    def normalized(self) -> str:
        """Normalized text without build metadata, as used in feed URLs."""
        return str(self).split("+", 1)[0]

    def _sort_key(self) -> tuple:
        return (
            self.major,
            self.minor,
            self.patch,
            self.revision,
            0 if self.release_labels else 1,
            tuple(_label_key(label) for label in self.release_labels),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._sort_key() == other._sort_key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __hash__(self) -> int:
        return hash(self._sort_key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.release_labels:
            text += f"-{self.release}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text

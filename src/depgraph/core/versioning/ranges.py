"""Version ranges in NuGet interval notation.

Supported forms::

    1.0              -> [1.0.0, )       minimum version, inclusive
    [1.0]            -> [1.0.0]         exact version
    (1.0,)           -> (1.0.0, )       minimum version, exclusive
    (,1.0]           -> (, 1.0.0]       maximum version, inclusive
    [1.0,2.0)        -> [1.0.0, 2.0.0)  mixed inclusive/exclusive bounds
    "" or *          -> (, )            any version

A range keeps the text it was parsed from (``original``) so dependency
edges can be labelled exactly as the package author declared them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from depgraph.core.versioning.version import NuGetVersion
from depgraph.exceptions import InvalidVersionError


@dataclass(frozen=True)
class VersionRange:
    """A predicate over versions with optional lower and upper bounds.

    Attributes:
        min_version: Lower bound, or None when unbounded below.
        include_min: Whether ``min_version`` itself is in the range.
        max_version: Upper bound, or None when unbounded above.
        include_max: Whether ``max_version`` itself is in the range.
        original: Text the range was parsed from. Not part of equality.
    """

    min_version: NuGetVersion | None = None
    include_min: bool = True
    max_version: NuGetVersion | None = None
    include_max: bool = False
    original: str = field(default="", compare=False, repr=False)

    # -- construction ------------------------------------------------------

    @classmethod
    def all(cls) -> VersionRange:
        """A range that every version satisfies."""
        return cls(include_min=False)

    @classmethod
    def exact(cls, version: NuGetVersion) -> VersionRange:
        """A range containing exactly *version*."""
        return cls(version, True, version, True)

    @classmethod
    def at_least(cls, version: NuGetVersion) -> VersionRange:
        """The range ``[version, )``."""
        return cls(version, True)

    @classmethod
    def parse(cls, text: str | None) -> VersionRange:
        """Parse a NuGet version range.

        Args:
            text: Range text. None, empty text and ``*`` mean any version.

        Returns:
            The parsed range with ``original`` set to the stripped text.

        Raises:
            InvalidVersionError: If the text is malformed or describes an
                empty range.
        """
        stripped = (text or "").strip()
        if stripped in ("", "*"):
            return cls(include_min=False, original=stripped)

        if stripped[0] not in "[(":
            return cls(NuGetVersion.parse(stripped), True, original=stripped)

        if len(stripped) < 3 or stripped[-1] not in "])":
            raise InvalidVersionError(f"Invalid version range: {text!r}")

        include_min = stripped[0] == "["
        include_max = stripped[-1] == "]"
        inner = stripped[1:-1]

        if "," not in inner:
            if not (include_min and include_max):
                raise InvalidVersionError(f"Invalid version range: {text!r}")
            version = NuGetVersion.parse(inner)
            return cls(version, True, version, True, original=stripped)

        parts = inner.split(",")
        if len(parts) != 2:
            raise InvalidVersionError(f"Invalid version range: {text!r}")
        left, right = parts[0].strip(), parts[1].strip()
        min_version = NuGetVersion.parse(left) if left else None
        max_version = NuGetVersion.parse(right) if right else None

        rng = cls(
            min_version,
            include_min and min_version is not None,
            max_version,
            include_max and max_version is not None,
            original=stripped,
        )
        if rng.is_empty:
            raise InvalidVersionError(f"Version range is empty: {text!r}")
        return rng

    # -- predicates --------------------------------------------------------

    @property
    def has_lower_bound(self) -> bool:
        return self.min_version is not None

    @property
    def has_upper_bound(self) -> bool:
        return self.max_version is not None

    @property
    def is_empty(self) -> bool:
        """True when no version can satisfy the range."""
        if self.min_version is None or self.max_version is None:
            return False
        if self.min_version > self.max_version:
            return True
        if self.min_version == self.max_version:
            return not (self.include_min and self.include_max)
        return False

    def satisfies(self, version: NuGetVersion) -> bool:
        """Check whether *version* lies inside the range."""
        if self.min_version is not None:
            if self.include_min:
                if version < self.min_version:
                    return False
            elif version <= self.min_version:
                return False
        if self.max_version is not None:
            if self.include_max:
                if version > self.max_version:
                    return False
            elif version >= self.max_version:
                return False
        return True

    __contains__ = satisfies

    # -- algebra -----------------------------------------------------------

    def intersect(self, other: VersionRange) -> VersionRange:
        """Return the range of versions satisfying both ranges.

        The result may be empty; check ``is_empty``.
        """
        min_version, include_min = _tighter_lower(
            (self.min_version, self.include_min),
            (other.min_version, other.include_min),
        )
        max_version, include_max = _tighter_upper(
            (self.max_version, self.include_max),
            (other.max_version, other.include_max),
        )
        return VersionRange(min_version, include_min, max_version, include_max)

    def find_best_match(
        self, versions: list[NuGetVersion], *, highest: bool = False
    ) -> NuGetVersion | None:
        """Pick the lowest (or highest) of *versions* inside the range."""
        matching = [v for v in versions if self.satisfies(v)]
        if not matching:
            return None
        return max(matching) if highest else min(matching)

    # -- display -----------------------------------------------------------

    @property
    def label(self) -> str:
        """The declared text when known, else the normalized form."""
        return self.original or str(self)

    def __str__(self) -> str:
        if (
            self.min_version is not None
            and self.min_version == self.max_version
            and self.include_min
            and self.include_max
        ):
            return f"[{self.min_version}]"
        lower = str(self.min_version) if self.min_version is not None else ""
        upper = str(self.max_version) if self.max_version is not None else ""
        return (
            f"{'[' if self.include_min else '('}{lower}, "
            f"{upper}{']' if self.include_max else ')'}"
        )


def _tighter_lower(
    a: tuple[NuGetVersion | None, bool], b: tuple[NuGetVersion | None, bool]
) -> tuple[NuGetVersion | None, bool]:
    if a[0] is None:
        return b
    if b[0] is None:
        return a
    if a[0] == b[0]:
        return a[0], a[1] and b[1]
    return a if a[0] > b[0] else b


def _tighter_upper(
    a: tuple[NuGetVersion | None, bool], b: tuple[NuGetVersion | None, bool]
) -> tuple[NuGetVersion | None, bool]:
    if a[0] is None:
        return b
    if b[0] is None:
        return a
    if a[0] == b[0]:
        return a[0], a[1] and b[1]
    return a if a[0] < b[0] else b

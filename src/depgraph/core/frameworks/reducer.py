"""Framework compatibility and the nearest-framework reducer.

``is_compatible(target, candidate)`` answers "can a project targeting
*target* consume assets built for *candidate*?". ``nearest`` picks the best
such candidate:

1. an exact match wins;
2. otherwise the candidate with the narrowest compatibility gap by family
   precedence: same family, then ``.NETStandard`` (the bridging family),
   then ``Any``;
3. ties go to the higher framework version within the family, then to a
   matching OS platform, then to the moniker text so the order is total;
4. None when nothing is compatible.

Both functions are pure.
"""

from __future__ import annotations

from typing import Iterable

from depgraph.core.frameworks.models import Framework, FrameworkFamily

# Highest .NETStandard version each consumer family/version can consume,
# checked top-down: first row whose minimum consumer version is met wins.
_NETFRAMEWORK_TO_STANDARD: list[tuple[tuple[int, ...], tuple[int, ...]]] = [
    ((4, 6, 1), (2, 0)),
    ((4, 6), (1, 3)),
    ((4, 5, 1), (1, 2)),
    ((4, 5), (1, 1)),
]

_NETCOREAPP_TO_STANDARD: list[tuple[tuple[int, ...], tuple[int, ...]]] = [
    ((3, 0), (2, 1)),
    ((2, 0), (2, 0)),
    ((1, 0), (1, 6)),
]

_FAMILY_PRECEDENCE_SAME = 2
_FAMILY_PRECEDENCE_BRIDGE = 1
_FAMILY_PRECEDENCE_ANY = 0


def _pad(version: tuple[int, ...]) -> tuple[int, ...]:
    return tuple(version) + (0,) * (4 - len(version))


def max_supported_standard(target: Framework) -> tuple[int, ...] | None:
    """Return the highest ``.NETStandard`` version *target* can consume.

    Returns:
        A four-part version tuple, or None if *target* cannot consume any
        ``.NETStandard`` assets.
    """
    if target.family is FrameworkFamily.NET_STANDARD:
        return target.version
    if target.family is FrameworkFamily.NET_FRAMEWORK:
        table = _NETFRAMEWORK_TO_STANDARD
    elif target.family is FrameworkFamily.NET_CORE_APP:
        table = _NETCOREAPP_TO_STANDARD
    else:
        return None
    for minimum, standard in table:
        if target.version >= _pad(minimum):
            return _pad(standard)
    return None


def is_compatible(target: Framework, candidate: Framework) -> bool:
    """Check whether *target* can consume assets built for *candidate*."""
    if candidate.family is FrameworkFamily.ANY:
        return True
    if target.family is FrameworkFamily.ANY:
        return False
    if candidate.family is target.family:
        if candidate.platform and candidate.platform != target.platform:
            return False
        return candidate.version <= target.version
    if candidate.family is FrameworkFamily.NET_STANDARD:
        supported = max_supported_standard(target)
        return supported is not None and candidate.version <= supported
    return False


def _precedence(target: Framework, candidate: Framework) -> int:
    if candidate.family is target.family:
        return _FAMILY_PRECEDENCE_SAME
    if candidate.family is FrameworkFamily.NET_STANDARD:
        return _FAMILY_PRECEDENCE_BRIDGE
    return _FAMILY_PRECEDENCE_ANY


def nearest(candidates: Iterable[Framework], target: Framework) -> Framework | None:
    """Pick the candidate framework nearest to *target*.

    Args:
        candidates: Frameworks a package (or project) offers assets for.
        target: The consumer's framework.

    Returns:
        The best compatible candidate, or None if none is compatible.
    """
    unique = list(dict.fromkeys(candidates))
    if target in unique:
        return target
    compatible = [c for c in unique if is_compatible(target, c)]
    if not compatible:
        return None
    return max(
        compatible,
        key=lambda c: (
            _precedence(target, c),
            c.version,
            c.platform == target.platform,
            c.short_folder_name,
        ),
    )

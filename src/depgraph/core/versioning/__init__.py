"""Package versions and version ranges.

- ``version``: ``NuGetVersion``, a four-part version with prerelease labels.
- ``ranges``: ``VersionRange``, interval-notation ranges with intersection.
"""

from depgraph.core.versioning.version import NuGetVersion
from depgraph.core.versioning.ranges import VersionRange

__all__ = [
    "NuGetVersion",
    "VersionRange",
]

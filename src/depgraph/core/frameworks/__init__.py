"""Target frameworks and the compatibility reducer.

Public API::

    from depgraph.core.frameworks import Framework, nearest

    nearest(
        [Framework.parse_folder("net45"), Framework.parse_folder("netstandard2.0")],
        Framework.parse_folder("net472"),
    )  # -> net45
"""

from depgraph.core.frameworks.models import Framework, FrameworkFamily
from depgraph.core.frameworks.reducer import (
    is_compatible,
    max_supported_standard,
    nearest,
)

__all__ = [
    "Framework",
    "FrameworkFamily",
    "is_compatible",
    "max_supported_standard",
    "nearest",
]

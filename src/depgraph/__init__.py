"""depgraph: package dependency graph resolution for NuGet packages and projects."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

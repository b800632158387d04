"""Normalized build descriptions of projects."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from depgraph.core.dependency.models import PackageDependency
from depgraph.core.frameworks import Framework
from depgraph.core.versioning import NuGetVersion


@dataclass(frozen=True)
class FrameworkDependencies:
    """What a project declares for one of its target frameworks.

    Attributes:
        framework: The target framework.
        dependencies: Package references with their ranges.
        project_references: Paths of referenced projects.
    """

    framework: Framework
    dependencies: tuple[PackageDependency, ...] = ()
    project_references: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectDescription:
    """One project of a restore graph.

    Attributes:
        name: Project name (the project file name without directory).
        path: Full path of the project file, as the build tool reported it.
        version: Project version (``1.0.0`` when unspecified).
        output_path: Intermediate output folder, where a restore writes
            ``project.assets.json``.
        frameworks: Per-framework declarations, in declaration order.
    """

    name: str
    path: str
    version: NuGetVersion = field(default_factory=lambda: NuGetVersion(1, 0, 0))
    output_path: str = ""
    frameworks: tuple[FrameworkDependencies, ...] = ()

    @property
    def target_frameworks(self) -> list[Framework]:
        return [f.framework for f in self.frameworks]

    def for_framework(self, framework: Framework) -> FrameworkDependencies | None:
        """Declarations for exactly *framework*, or None."""
        for declared in self.frameworks:
            if declared.framework == framework:
                return declared
        return None

    @property
    def assets_file(self) -> Path | None:
        """Where a restore writes the lock file, if the output path is known."""
        return Path(self.output_path) / "project.assets.json" if self.output_path else None


@dataclass
class RestoreGraph:
    """All projects of a restore graph and the ones restore started from.

    Attributes:
        roots: Paths of the projects named in the ``restore`` section.
        projects: Project path to description.
    """

    roots: list[str] = field(default_factory=list)
    projects: dict[str, ProjectDescription] = field(default_factory=dict)

    def get(self, path: str) -> ProjectDescription | None:
        """Look up a project by path (case-insensitive, separator-agnostic)."""
        wanted = _path_key(path)
        for key, project in self.projects.items():
            if _path_key(key) == wanted:
                return project
        return None

    @property
    def root_projects(self) -> list[ProjectDescription]:
        found = [self.get(r) for r in self.roots]
        return [p for p in found if p is not None]


def _path_key(path: str) -> str:
    return path.replace("\\", "/").lower()

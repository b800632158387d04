"""Restore-graph (dgspec) generation and parsing.

``dotnet msbuild <project> /t:GenerateRestoreGraphFile
/p:RestoreGraphOutputPath=<file>`` writes the restore graph of a project
(and every project it references) as JSON::

    {
      "format": 1,
      "restore": {"/src/App/App.csproj": {}},
      "projects": {
        "/src/App/App.csproj": {
          "version": "1.0.0",
          "restore": {
            "projectName": "App",
            "projectPath": "/src/App/App.csproj",
            "outputPath": "/src/App/obj/",
            "frameworks": {
              "net472": {"projectReferences": {"/src/Lib/Lib.csproj": {}}}
            }
          },
          "frameworks": {
            "net472": {
              "dependencies": {
                "Newtonsoft.Json": {"target": "Package", "version": "[13.0.1, )"}
              }
            }
          }
        }
      }
    }

``parse_dgspec`` turns that document into a ``RestoreGraph``; the provider
runs the build tool and parses its output.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from pathlib import Path, PureWindowsPath
from typing import Any

from depgraph.core.dependency.models import PackageDependency
from depgraph.core.frameworks import Framework
from depgraph.core.versioning import NuGetVersion
from depgraph.exceptions import BuildToolError, DepGraphError, ProjectNotFound
from depgraph.projects.models import FrameworkDependencies, ProjectDescription, RestoreGraph

logger = logging.getLogger(__name__)

DEFAULT_BUILD_TIMEOUT: float = 300.0


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _project_name(path: str, restore: dict[str, Any]) -> str:
    name = restore.get("projectName")
    if name:
        return str(name)
    return PureWindowsPath(path).stem if "\\" in path else Path(path).stem


def _parse_project(path: str, data: dict[str, Any]) -> ProjectDescription:
    restore = data.get("restore") or {}
    restore_frameworks = {
        k.lower(): v or {} for k, v in (restore.get("frameworks") or {}).items()
    }

    frameworks: list[FrameworkDependencies] = []
    for alias, fw_data in (data.get("frameworks") or {}).items():
        fw_data = fw_data or {}
        framework = Framework.parse_folder(fw_data.get("targetAlias") or alias)
        dependencies = []
        for dep_id, dep in (fw_data.get("dependencies") or {}).items():
            if isinstance(dep, dict):
                if dep.get("target", "Package") != "Package":
                    continue
                rng = dep.get("version")
            else:
                rng = dep
            dependencies.append(PackageDependency.of(dep_id, None if rng is None else str(rng)))
        references = tuple(
            (ref.get("projectPath") or ref_path) if isinstance(ref, dict) else ref_path
            for ref_path, ref in (
                restore_frameworks.get(alias.lower(), {}).get("projectReferences") or {}
            ).items()
        )
        frameworks.append(FrameworkDependencies(framework, tuple(dependencies), references))

    version_text = data.get("version")
    return ProjectDescription(
        name=_project_name(path, restore),
        path=str(restore.get("projectPath") or path),
        version=NuGetVersion.parse(version_text) if version_text else NuGetVersion(1, 0, 0),
        output_path=str(restore.get("outputPath") or ""),
        frameworks=tuple(frameworks),
    )


def parse_dgspec(data: dict[str, Any]) -> RestoreGraph:
    """Parse a restore-graph document.

    Raises:
        BuildToolError: If the document is not a valid restore graph.
    """
    if not isinstance(data, dict) or not isinstance(data.get("projects"), dict):
        raise BuildToolError("Restore graph has no 'projects' section")

    graph = RestoreGraph(roots=list((data.get("restore") or {}).keys()))
    for path, project in data["projects"].items():
        try:
            graph.projects[path] = _parse_project(path, project or {})
        except (DepGraphError, AttributeError, TypeError) as exc:
            raise BuildToolError(f"Invalid restore graph entry for {path}: {exc}") from exc
    logger.debug(
        "Restore graph: %d project(s), roots %s", len(graph.projects), graph.roots
    )
    return graph


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class DependencyGraphSpecProvider:
    """Obtain the restore graph of a project from the ``dotnet`` build tool.

    Args:
        dotnet: The build tool executable.
        timeout: Seconds allowed for the build tool run.
    """

    def __init__(self, dotnet: str = "dotnet", timeout: float = DEFAULT_BUILD_TIMEOUT) -> None:
        self.dotnet = dotnet
        self.timeout = timeout

    def command(self, project_path: Path, output_path: Path) -> list[str]:
        return [
            self.dotnet,
            "msbuild",
            str(project_path),
            "/t:GenerateRestoreGraphFile",
            f"/p:RestoreGraphOutputPath={output_path}",
        ]

    def generate(self, project_path: str | Path) -> RestoreGraph:
        """Run the build tool on *project_path* and parse the restore graph.

        Raises:
            BuildToolError: If the project does not exist, the tool cannot be
                run, or it fails; carries the tool output.
        """
        path = Path(project_path).resolve()
        if not path.exists():
            raise BuildToolError(f"Project {path} does not exist")

        fd, tmp_name = tempfile.mkstemp(suffix=".dgspec.json")
        os.close(fd)
        output = Path(tmp_name)
        try:
            cmd = self.command(path, output)
            logger.info("Running: %s", " ".join(cmd))
            try:
                result = subprocess.run(  # noqa: S603
                    cmd,
                    cwd=path.parent if path.is_file() else path,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except FileNotFoundError as exc:
                raise BuildToolError(f"Build tool {self.dotnet!r} not found") from exc
            except subprocess.TimeoutExpired as exc:
                raise BuildToolError(
                    f"Build tool timed out after {self.timeout} seconds", str(exc.output or "")
                ) from exc

            tool_output = (result.stdout or "") + (result.stderr or "")
            if result.returncode != 0:
                raise BuildToolError(
                    f"Unable to process the project {path}. Is it a valid SDK-style project?",
                    tool_output,
                )
            try:
                data = json.loads(output.read_text(encoding="utf-8-sig"))
            except (OSError, ValueError) as exc:
                raise BuildToolError(f"Unreadable restore graph: {exc}", tool_output) from exc
        finally:
            try:
                output.unlink()
            except OSError:
                logger.debug("Failed to remove temp file: %s", output)
        return parse_dgspec(data)


def find_project_file(path: str | Path, pattern: str = "*.csproj") -> Path:
    """Resolve *path* to a single project file.

    A file path is returned as is. A directory must contain exactly one
    project file matching *pattern* at its top level.

    Raises:
        ProjectNotFound: If the path does not exist or the directory holds
            zero or several project files.
    """
    candidate = Path(path).resolve()
    if candidate.is_file():
        return candidate
    if not candidate.is_dir():
        raise ProjectNotFound(f"Project path {candidate} does not exist")
    found = sorted(candidate.glob(pattern))
    if not found:
        raise ProjectNotFound(f"Unable to find any project files in {candidate}")
    if len(found) > 1:
        raise ProjectNotFound(f"More than one project file found in {candidate}")
    return found[0]

"""Tests for restore-graph parsing, generation and project file lookup."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from depgraph.core.frameworks import Framework
from depgraph.exceptions import BuildToolError, ProjectNotFound
from depgraph.projects import DependencyGraphSpecProvider, find_project_file, parse_dgspec

APP = "/src/App/App.csproj"
LIB = "/src/Lib/Lib.csproj"


def _dgspec() -> dict[str, Any]:
    return {
        "format": 1,
        "restore": {APP: {}},
        "projects": {
            APP: {
                "version": "2.1.0",
                "restore": {
                    "projectName": "App",
                    "projectPath": APP,
                    "outputPath": "/src/App/obj/",
                    "frameworks": {
                        "net472": {"projectReferences": {LIB: {"projectPath": LIB}}},
                    },
                },
                "frameworks": {
                    "net472": {
                        "dependencies": {
                            "Newtonsoft.Json": {"target": "Package", "version": "[13.0.1, )"},
                            "Analyzers": {"target": "Package", "version": "1.0.0"},
                            "Ref.Only": {"target": "Reference"},
                        }
                    }
                },
            },
            LIB: {
                "restore": {"projectPath": LIB},
                "frameworks": {"netstandard2.0": {}},
            },
        },
    }


# ---------------------------------------------------------------------------
# parse_dgspec
# ---------------------------------------------------------------------------


class TestParseDgspec:
    """Tests for parse_dgspec."""

    def test_projects(self) -> None:
        graph = parse_dgspec(_dgspec())
        assert graph.roots == [APP]
        app = graph.get(APP)
        assert app.name == "App"
        assert str(app.version) == "2.1.0"
        assert app.target_frameworks == [Framework.parse_folder("net472")]
        assert app.assets_file == Path("/src/App/obj/project.assets.json")

    def test_package_dependencies_only(self) -> None:
        app = parse_dgspec(_dgspec()).get(APP)
        declared = app.for_framework(Framework.parse_folder("net472"))
        assert [str(d) for d in declared.dependencies] == [
            "Newtonsoft.Json [13.0.1, )",
            "Analyzers [1.0.0, )",
        ]
        assert declared.project_references == (LIB,)

    def test_defaults(self) -> None:
        lib = parse_dgspec(_dgspec()).get(LIB)
        assert lib.name == "Lib"
        assert str(lib.version) == "1.0.0"
        assert lib.assets_file is None
        assert lib.for_framework(Framework.parse_folder("net472")) is None

    def test_lookup_ignores_case_and_separators(self) -> None:
        graph = parse_dgspec(_dgspec())
        assert graph.get("\\SRC\\App\\app.csproj") is graph.get(APP)
        assert [p.name for p in graph.root_projects] == ["App"]

    def test_windows_path_name(self) -> None:
        data = {"projects": {"C:\\src\\Tool\\Tool.csproj": {"frameworks": {"net6.0": {}}}}}
        assert parse_dgspec(data).get("c:/src/tool/tool.csproj").name == "Tool"

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"projects": []},
            {"projects": {APP: {"frameworks": {"silverlight5": {}}}}},
            {"projects": {APP: {"version": "x.y"}}},
        ],
    )
    def test_invalid(self, data: dict[str, Any]) -> None:
        with pytest.raises(BuildToolError):
            parse_dgspec(data)


# ---------------------------------------------------------------------------
# DependencyGraphSpecProvider
# ---------------------------------------------------------------------------


def _fake_run(payload: dict[str, Any] | None, returncode: int = 0, stderr: str = ""):
    """Stand-in for subprocess.run that writes *payload* to the output path."""

    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        output = Path(cmd[-1].split("=", 1)[1])
        if payload is not None:
            output.write_text(json.dumps(payload), encoding="utf-8")
        return subprocess.CompletedProcess(cmd, returncode, stdout="build output\n", stderr=stderr)

    return run


class TestDependencyGraphSpecProvider:
    """Tests for running the build tool."""

    @pytest.fixture
    def project(self, tmp_path: Path) -> Path:
        path = tmp_path / "App.csproj"
        path.write_text("<Project Sdk=\"Microsoft.NET.Sdk\" />", encoding="utf-8")
        return path

    def test_command(self) -> None:
        cmd = DependencyGraphSpecProvider("dotnet").command(Path("App.csproj"), Path("out.json"))
        assert cmd == [
            "dotnet",
            "msbuild",
            "App.csproj",
            "/t:GenerateRestoreGraphFile",
            "/p:RestoreGraphOutputPath=out.json",
        ]

    def test_generate(self, project: Path) -> None:
        with patch("depgraph.projects.dgspec.subprocess.run", side_effect=_fake_run(_dgspec())) as run:
            graph = DependencyGraphSpecProvider().generate(project)
        assert graph.get(APP).name == "App"
        output = Path(run.call_args.args[0][-1].split("=", 1)[1])
        assert not output.exists()

    def test_failure_carries_tool_output(self, project: Path) -> None:
        with patch(
            "depgraph.projects.dgspec.subprocess.run",
            side_effect=_fake_run(None, returncode=1, stderr="error MSB1009"),
        ):
            with pytest.raises(BuildToolError) as info:
                DependencyGraphSpecProvider().generate(project)
        assert "MSB1009" in info.value.output
        assert "valid SDK-style project" in str(info.value)

    def test_tool_missing(self, project: Path) -> None:
        with patch("depgraph.projects.dgspec.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(BuildToolError, match="not found"):
                DependencyGraphSpecProvider("no-such-dotnet").generate(project)

    def test_tool_timeout(self, project: Path) -> None:
        with patch(
            "depgraph.projects.dgspec.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["dotnet"], 1),
        ):
            with pytest.raises(BuildToolError, match="timed out"):
                DependencyGraphSpecProvider(timeout=1).generate(project)

    def test_unreadable_output(self, project: Path) -> None:
        def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
            Path(cmd[-1].split("=", 1)[1]).write_text("{", encoding="utf-8")
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        with patch("depgraph.projects.dgspec.subprocess.run", side_effect=run):
            with pytest.raises(BuildToolError, match="Unreadable restore graph"):
                DependencyGraphSpecProvider().generate(project)

    def test_missing_project(self, tmp_path: Path) -> None:
        with pytest.raises(BuildToolError, match="does not exist"):
            DependencyGraphSpecProvider().generate(tmp_path / "Nope.csproj")


# ---------------------------------------------------------------------------
# find_project_file
# ---------------------------------------------------------------------------


class TestFindProjectFile:
    """Tests for find_project_file."""

    def test_file_path(self, tmp_path: Path) -> None:
        path = tmp_path / "App.csproj"
        path.touch()
        assert find_project_file(path) == path.resolve()

    def test_single_project_in_folder(self, tmp_path: Path) -> None:
        (tmp_path / "App.csproj").touch()
        (tmp_path / "README.md").touch()
        assert find_project_file(tmp_path).name == "App.csproj"

    def test_no_project(self, tmp_path: Path) -> None:
        with pytest.raises(ProjectNotFound, match="Unable to find"):
            find_project_file(tmp_path)

    def test_several_projects(self, tmp_path: Path) -> None:
        (tmp_path / "A.csproj").touch()
        (tmp_path / "B.csproj").touch()
        with pytest.raises(ProjectNotFound, match="More than one"):
            find_project_file(tmp_path)

    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(ProjectNotFound, match="does not exist"):
            find_project_file(tmp_path / "nope")

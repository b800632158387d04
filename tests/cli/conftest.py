"""Shared fixtures for CLI tests.

Provides a Click runner, YAML feed files for the ``--source`` option and a
project folder whose restore graph is produced by a stand-in for the build
tool.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from click.testing import CliRunner

DIAMOND_FEED = """\
name: diamond
packages:
  Foo:
    "1.0.0":
      dependencies: {Bar: "[1.0.0, )", Baz: "[1.0.0, )", System.Memory: "4.5.4"}
      lib: {net45: [Foo.dll]}
  Bar:
    "1.0.0":
      dependencies: {Qux: "[1.0.0, )"}
      lib: {net45: [Bar.dll]}
  Baz:
    "1.0.0":
      dependencies: {Qux: "[2.0.0, )"}
      lib: {netstandard2.0: [Baz.dll]}
  Qux:
    "1.0.0":
      lib: {net45: [Qux.dll]}
    "2.0.0":
      lib: {net45: [Qux.dll]}
  System.Memory:
    "4.5.4":
      dependencies: {System.Buffers: "4.5.1"}
      lib: {netstandard2.0: [System.Memory.dll]}
  System.Buffers:
    "4.5.1":
      lib: {netstandard2.0: [System.Buffers.dll]}
"""

CONFLICT_FEED = """\
packages:
  Foo:
    "1.0.0":
      dependencies: {Bar: "[1.0.0, )", Baz: "[1.0.0, )"}
  Bar:
    "1.0.0":
      dependencies: {Qux: "[1.0.0, 2.0.0)"}
  Baz:
    "1.0.0":
      dependencies: {Qux: "[2.0.0, )"}
  Qux:
    "1.0.0": {}
    "2.0.0": {}
"""


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_logging() -> Any:
    """Drop handlers bound to the runner's streams after each command."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


@pytest.fixture
def diamond_feed_file(tmp_path: Path) -> Path:
    path = tmp_path / "diamond.yaml"
    path.write_text(DIAMOND_FEED, encoding="utf-8")
    return path


@pytest.fixture
def conflict_feed_file(tmp_path: Path) -> Path:
    path = tmp_path / "conflict.yaml"
    path.write_text(CONFLICT_FEED, encoding="utf-8")
    return path


@pytest.fixture
def app_project(tmp_path: Path) -> Path:
    """A folder holding App.csproj, which depends on Foo 1.0.0 for net472."""
    project_dir = tmp_path / "App"
    project_dir.mkdir()
    (project_dir / "App.csproj").write_text(
        '<Project Sdk="Microsoft.NET.Sdk" />', encoding="utf-8"
    )
    return project_dir


def restore_graph_for(project_file: Path, dependencies: dict[str, str]) -> dict[str, Any]:
    key = str(project_file.resolve())
    return {
        "format": 1,
        "restore": {key: {}},
        "projects": {
            key: {
                "version": "1.0.0",
                "restore": {"projectName": project_file.stem, "projectPath": key},
                "frameworks": {
                    "net472": {
                        "dependencies": {
                            name: {"target": "Package", "version": rng}
                            for name, rng in dependencies.items()
                        }
                    }
                },
            }
        },
    }


@pytest.fixture
def fake_dotnet(app_project: Path) -> Any:
    """Patch the build tool run to write App's restore graph."""
    payload = restore_graph_for(app_project / "App.csproj", {"Foo": "[1.0.0, )"})

    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        Path(cmd[-1].split("=", 1)[1]).write_text(json.dumps(payload), encoding="utf-8")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    with patch("depgraph.projects.dgspec.subprocess.run", side_effect=run) as mock:
        yield mock

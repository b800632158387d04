"""Tests for ``depgraph package``: output formats and exit codes."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from depgraph import __version__
from depgraph.cli.common import EXIT_OK, EXIT_RESOLUTION, EXIT_ROOT, EXIT_USAGE
from depgraph.cli.main import cli


def _package(runner: CliRunner, feed: Path, *args: str, package: str = "Foo"):
    return runner.invoke(
        cli,
        ["package", package, "--version", "1.0.0", "-f", "net472", "--source", str(feed), *args],
    )


class TestPackageOutput:
    """Tests for the report formats."""

    def test_tree_hides_framework_packages(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = _package(runner, diamond_feed_file)
        assert result.exit_code == EXIT_OK, result.output
        assert result.output.splitlines() == [
            "Foo, v1.0.0",
            "  Bar, v1.0.0",
            "    Qux, v2.0.0",
            "  Baz, v1.0.0",
            "    Qux, v2.0.0",
        ]

    def test_include_all(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = _package(runner, diamond_feed_file, "--include-all")
        assert result.exit_code == EXIT_OK, result.output
        assert "  System.Memory, v4.5.4" in result.output
        assert "    System.Buffers, v4.5.1" in result.output

    def test_edges(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = _package(runner, diamond_feed_file, "--format", "edges")
        assert result.exit_code == EXIT_OK, result.output
        assert "Baz 1.0.0 ---> Qux 2.0.0 [[2.0.0, )]" in result.output.splitlines()

    def test_list(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = _package(runner, diamond_feed_file, "--format", "list")
        assert result.exit_code == EXIT_OK, result.output
        assert "Qux" in result.output
        assert "Baz.dll" in result.output
        assert "System.Memory" not in result.output

    def test_json(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = _package(runner, diamond_feed_file, "--format", "json")
        assert result.exit_code == EXIT_OK, result.output
        data = json.loads(result.output)
        assert data["root"]["id"] == "Foo"
        assert data["framework"] == "net472"
        assert data["policy"] == "lowest"
        assert data["resolved"]["Qux"] == "2.0.0"
        assert data["resolved"]["System.Memory"] == "4.5.4"
        assert "System.Memory" not in [n["id"] for n in data["nodes"]]

    def test_highest_policy_flag(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = _package(runner, diamond_feed_file, "--format", "json", "--policy", "highest")
        assert result.exit_code == EXIT_OK, result.output
        assert json.loads(result.output)["policy"] == "highest"

    def test_config_file(self, runner: CliRunner, diamond_feed_file: Path, tmp_path: Path) -> None:
        config = tmp_path / "depgraph.yaml"
        config.write_text(f"sources: ['{diamond_feed_file}']\nignore_prefixes: [Ba]\n", encoding="utf-8")
        result = runner.invoke(
            cli, ["package", "Foo", "--version", "1.0.0", "-f", "net472", "--config", str(config)]
        )
        assert result.exit_code == EXIT_OK, result.output
        assert "Bar" not in result.output
        assert "System.Memory" in result.output


class TestPackageExitCodes:
    """Tests for the exit code of each failure class."""

    def test_conflict(self, runner: CliRunner, conflict_feed_file: Path) -> None:
        result = _package(runner, conflict_feed_file)
        assert result.exit_code == EXIT_RESOLUTION
        assert "Error: Unable to resolve 'Qux'" in result.output

    def test_root_not_found(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = _package(runner, diamond_feed_file, package="Nope")
        assert result.exit_code == EXIT_ROOT
        assert "was not found" in result.output

    def test_invalid_version(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = runner.invoke(
            cli, ["package", "Foo", "--version", "x.y", "-f", "net472", "--source", str(diamond_feed_file)]
        )
        assert result.exit_code == EXIT_USAGE

    def test_invalid_framework(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = runner.invoke(
            cli, ["package", "Foo", "--version", "1.0.0", "-f", "silverlight5", "--source", str(diamond_feed_file)]
        )
        assert result.exit_code == EXIT_USAGE
        assert "Unsupported framework" in result.output

    def test_unsupported_source(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["package", "Foo", "--version", "1.0.0", "-f", "net472", "--source", "feed.txt"]
        )
        assert result.exit_code == EXIT_USAGE

    def test_missing_framework_option(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["package", "Foo", "--version", "1.0.0"])
        assert result.exit_code == 2
        assert "--framework" in result.output

    def test_incompatible_assets(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = runner.invoke(
            cli,
            ["package", "Foo", "--version", "1.0.0", "-f", "net40", "--source", str(diamond_feed_file)],
        )
        assert result.exit_code == EXIT_RESOLUTION
        assert "no assets compatible" in result.output

    def test_allow_partial(self, runner: CliRunner, diamond_feed_file: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "package", "Foo", "--version", "1.0.0", "-f", "net40",
                "--source", str(diamond_feed_file), "--allow-partial",
            ],
        )
        assert result.exit_code == EXIT_OK, result.output
        assert "Warning: Foo 1.0.0 has no assets compatible with net40" in result.output


class TestMainGroup:
    """Tests for the top-level command group."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "package" in result.output
        assert "project" in result.output

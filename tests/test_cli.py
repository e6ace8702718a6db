"""Tests for the liveload CLI."""

import importlib

import click
import pytest
from click.testing import CliRunner

from liveload.cli import cli, parse_interval


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestRunCommand:
    """Tests for the run command."""

    def test_runs_target_once(self, runner: CliRunner, source_tree):
        source_tree.write("app.py", "def main():\n    print('hello from main')\n")
        target = f"{source_tree.module('app')}:main"

        result = runner.invoke(
            cli, ["run", target, "--poll-interval", "off", "--path", str(source_tree.root)]
        )

        assert result.exit_code == 0, result.output
        assert "Running" in result.output
        assert "hello from main" in result.output

    def test_broken_target_exits_nonzero(self, runner: CliRunner, source_tree):
        source_tree.write("app.py", "def main(:\n")
        target = f"{source_tree.module('app')}:main"

        result = runner.invoke(cli, ["run", target, "--poll-interval", "off"])

        assert result.exit_code == 1
        assert "Cannot start" in result.output

    def test_missing_function_exits_nonzero(self, runner: CliRunner, source_tree):
        source_tree.write("app.py", "def other():\n    pass\n")
        target = f"{source_tree.module('app')}:main"

        result = runner.invoke(cli, ["run", target, "--poll-interval", "off"])

        assert result.exit_code == 1

    def test_target_needs_function(self, runner: CliRunner):
        result = runner.invoke(cli, ["run", "just.a.module"])

        assert result.exit_code == 2
        assert "MODULE:FUNCTION" in result.output

    def test_help(self, runner: CliRunner):
        result = runner.invoke(cli, ["run", "--help"])

        assert result.exit_code == 0
        assert "--poll-interval" in result.output
        assert "--every" in result.output


class TestCheckCommand:
    """Tests for the check command."""

    def test_clean_units(self, runner: CliRunner, source_tree, tmp_path):
        source_tree.write("app.py", "X = 1\n")
        script = tmp_path / "job.py"
        script.write_text("Y = 2\n")

        result = runner.invoke(cli, ["check", source_tree.module("app"), str(script)])

        assert result.exit_code == 0, result.output
        assert "ok" in result.output
        assert "failed" not in result.output

    def test_already_imported_unit_is_tracked(self, runner: CliRunner, source_tree):
        source_tree.write("app.py", "X = 1\n")
        name = source_tree.module("app")
        importlib.import_module(name)

        result = runner.invoke(cli, ["check", name])

        assert result.exit_code == 0, result.output
        assert "tracked" in result.output
        assert "ok" not in result.output

    def test_broken_unit(self, runner: CliRunner, source_tree):
        source_tree.write("app.py", "def broken(:\n")

        result = runner.invoke(cli, ["check", source_tree.module("app")])

        assert result.exit_code == 1
        assert "failed" in result.output

    def test_protected_unit(self, runner: CliRunner):
        result = runner.invoke(cli, ["check", "liveload"])

        assert result.exit_code == 1


def test_parse_interval():
    assert parse_interval("off") is None
    assert parse_interval("0") is None
    assert parse_interval("1.5") == 1.5
    with pytest.raises(click.BadParameter):
        parse_interval("soon")

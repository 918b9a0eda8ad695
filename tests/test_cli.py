"""Tests for the repty command line interface."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from repty.__main__ import cli
from repty.store import CommandStore


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Write a config pointing the store and logs at a temp directory."""
    path = tmp_path / "repty.yaml"
    path.write_text(f"db_path: {tmp_path / 'history.db'}\nlog_dir: {tmp_path / 'logs'}\n")
    return path


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def invoke(runner: CliRunner, config_path: Path, *args: str, input: str | None = None):
    return runner.invoke(cli, ["--config", str(config_path), *args], input=input)


class TestLog:
    """Tests for the log command."""

    def test_logs_command(self, runner: CliRunner, config_path: Path, tmp_path: Path) -> None:
        result = invoke(runner, config_path, "log", "-d", "/work", "-e", "1", "git", "status")

        assert result.exit_code == 0
        assert "Command logged (ID: 1)" in result.output

        with CommandStore(tmp_path / "history.db") as store:
            [cmd] = store.get_recent_commands()
        assert cmd.command == "git status"
        assert cmd.directory == "/work"
        assert cmd.exit_code == 1

    def test_excluded_command(self, runner: CliRunner, config_path: Path) -> None:
        result = invoke(runner, config_path, "log", "echo", "$SECRET")

        assert result.exit_code == 0
        assert "Command excluded" in result.output

    def test_capture_is_silent(self, runner: CliRunner, config_path: Path, tmp_path: Path) -> None:
        result = invoke(runner, config_path, "capture", "make build", "2", "/src")

        assert result.exit_code == 0
        assert result.output == ""
        with CommandStore(tmp_path / "history.db") as store:
            [cmd] = store.get_recent_commands()
        assert cmd.exit_code == 2


class TestSearchAndRecent:
    """Tests for search, recent, stats and chains commands."""

    @pytest.fixture
    def populated(self, runner: CliRunner, config_path: Path) -> Path:
        for command in ("git add .", "git status", "npm install"):
            invoke(runner, config_path, "log", "-d", "/work", *command.split())
        return config_path

    def test_search(self, runner: CliRunner, populated: Path) -> None:
        result = invoke(runner, populated, "search", "git", "status")

        assert result.exit_code == 0
        assert "Found 1 command(s)" in result.output
        assert "git status" in result.output

    def test_search_no_results(self, runner: CliRunner, populated: Path) -> None:
        result = invoke(runner, populated, "search", "kubectl")

        assert result.exit_code == 0
        assert "No commands found" in result.output

    def test_recent(self, runner: CliRunner, populated: Path) -> None:
        result = invoke(runner, populated, "recent", "-n", "2")

        assert result.exit_code == 0
        assert "npm install" in result.output
        assert "git status" in result.output
        assert "git add ." not in result.output

    def test_stats(self, runner: CliRunner, populated: Path) -> None:
        result = invoke(runner, populated, "stats")

        assert result.exit_code == 0
        assert "Total:     3" in result.output

    def test_chains(self, runner: CliRunner, populated: Path) -> None:
        result = invoke(runner, populated, "chains")

        assert result.exit_code == 0
        assert "git status" in result.output
        assert "npm install" in result.output

    def test_clear(self, runner: CliRunner, populated: Path) -> None:
        result = invoke(runner, populated, "clear", "--yes")

        assert result.exit_code == 0
        assert "Total:     0" in invoke(runner, populated, "stats").output


class TestAlias:
    """Tests for alias commands."""

    def test_add_list_remove(self, runner: CliRunner, config_path: Path) -> None:
        result = invoke(runner, config_path, "alias", "add", "ship", "npm run build | npm publish")
        assert result.exit_code == 0
        assert "Sequence alias added" in result.output

        result = invoke(runner, config_path, "alias", "list")
        assert "ship" in result.output
        assert "npm run build && npm publish" in result.output

        result = invoke(runner, config_path, "alias", "remove", "ship")
        assert result.exit_code == 0
        assert "Alias removed: ship" in result.output

    def test_remove_missing(self, runner: CliRunner, config_path: Path) -> None:
        result = invoke(runner, config_path, "alias", "remove", "nope")

        assert result.exit_code == 1
        assert "Alias not found" in result.output

    def test_add_empty_command(self, runner: CliRunner, config_path: Path) -> None:
        result = invoke(runner, config_path, "alias", "add", "x", "|")

        assert result.exit_code == 1
        assert "Error adding alias" in result.output


class TestRun:
    """Tests for the run command."""

    def test_no_matches(self, runner: CliRunner, config_path: Path) -> None:
        result = invoke(runner, config_path, "run", "kubectl")

        assert result.exit_code == 0
        assert "No matching commands found" in result.output

    def test_cancelled(self, runner: CliRunner, config_path: Path) -> None:
        invoke(runner, config_path, "alias", "add", "hello", "echo hello")

        result = invoke(runner, config_path, "run", "hello", input="n\n")

        assert result.exit_code == 0
        assert "Execution cancelled" in result.output

    def test_runs_alias_sequence(self, runner: CliRunner, config_path: Path) -> None:
        invoke(runner, config_path, "alias", "add", "both", "true | true")

        result = invoke(runner, config_path, "run", "both", input="y\n")

        assert result.exit_code == 0
        assert "Executing: true" in result.output
        assert "Command executed successfully" in result.output

    def test_failure_sets_exit_code(self, runner: CliRunner, config_path: Path) -> None:
        invoke(runner, config_path, "alias", "add", "fail", "exit 3")

        result = invoke(runner, config_path, "run", "fail", input="y\n")

        assert result.exit_code == 3
        assert "failed with exit code 3" in result.output

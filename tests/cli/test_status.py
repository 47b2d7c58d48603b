"""CLI integration tests for the status command."""

from __future__ import annotations

import json
from pathlib import Path

import responses
from click.testing import CliRunner

from ridelog.cli import main


class TestStatus:
    """Tests for ridelog status."""

    def test_status_offline(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        backend_down: responses.RequestsMock,
    ) -> None:
        result = cli_runner.invoke(main, ["--json", "status"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        data = json.loads(result.output)
        assert data["backend_reachable"] is False
        assert data["rides_mode"] == "local"
        assert data["photos_mode"] == "local"
        assert data["offline"] is True

    def test_status_online(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        backend_up: responses.RequestsMock,
    ) -> None:
        result = cli_runner.invoke(main, ["status"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert "reachable" in result.output
        assert "unreachable" not in result.output
        assert "Rides:    0 (remote)" in result.output

    def test_writes_log_file(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        cli_data_dir: Path,
        backend_down: responses.RequestsMock,
    ) -> None:
        cli_runner.invoke(main, ["--json", "status"], env=cli_env)

        assert list((cli_data_dir / "logs").glob("ridelog-*.log"))

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "ridelog" in result.output

"""Fixtures for CLI integration tests."""

from __future__ import annotations

import re
from collections.abc import Iterator
from pathlib import Path

import pytest
import requests
import responses
from click.testing import CliRunner

CLI_API_URL = "http://journal.example.com/api"


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_data_dir(tmp_path: Path) -> Path:
    """Data directory used by CLI invocations."""
    return tmp_path / "journal"


@pytest.fixture
def cli_env(cli_data_dir: Path, tmp_path: Path) -> dict[str, str]:
    """Environment pointing the CLI at a test backend and data directory."""
    return {
        "RIDELOG_CONFIG": str(tmp_path / "no-config.toml"),
        "RIDELOG_DATA_DIR": str(cli_data_dir),
        "RIDELOG_API_URL": CLI_API_URL,
        "RIDELOG_API_TIMEOUT": "1",
    }


@pytest.fixture
def backend_down() -> Iterator[responses.RequestsMock]:
    """Every backend call fails to connect."""
    any_url = re.compile(re.escape(CLI_API_URL) + r"/.*")
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        for method in (responses.GET, responses.POST, responses.PUT, responses.DELETE):
            rsps.add(method, any_url, body=requests.ConnectionError("Connection refused"))
        yield rsps


@pytest.fixture
def backend_up() -> Iterator[responses.RequestsMock]:
    """Backend answering with empty collections; tests register more."""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.GET, f"{CLI_API_URL}/rides", json=[], status=200)
        rsps.add(responses.GET, f"{CLI_API_URL}/photos", json=[], status=200)
        rsps.add(responses.GET, f"{CLI_API_URL}/health", json={"status": "ok"}, status=200)
        yield rsps


@pytest.fixture
def cli_api_url() -> str:
    return CLI_API_URL

"""CLI integration tests for photos commands."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from ridelog.cli import main


def _add_photo(cli_runner: CliRunner, cli_env: dict[str, str], *args: str) -> dict:
    result = cli_runner.invoke(main, ["--json", "photos", "add", *args], env=cli_env)
    assert result.exit_code == 0, f"Command failed: {result.output}"
    return json.loads(result.output)["photo"]


@pytest.mark.usefixtures("backend_down")
class TestPhotos:
    """Tests for photos commands with the offline cache."""

    def test_add_and_years(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        _add_photo(cli_runner, cli_env, "--filename", "summit.jpg", "--date-taken", "2023-07-01")
        _add_photo(cli_runner, cli_env, "--filename", "lake.jpg", "--date-taken", "2024-05-01")

        result = cli_runner.invoke(main, ["--json", "photos", "years"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert json.loads(result.output)["years"] == [2024, 2023]

    def test_add_requires_filename(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        result = cli_runner.invoke(main, ["photos", "add"], env=cli_env)

        assert result.exit_code == 2

    def test_list_search_and_year(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        _add_photo(
            cli_runner, cli_env, "--filename", "a.jpg", "--tag", "alps", "--date-taken", "2024-05-01"
        )
        _add_photo(
            cli_runner, cli_env, "--filename", "b.jpg", "--tag", "alps", "--date-taken", "2023-05-01"
        )
        _add_photo(cli_runner, cli_env, "--filename", "c.jpg", "--description", "Lake view")

        result = cli_runner.invoke(
            main, ["--json", "photos", "list", "--search", "alps", "--year", "2024"], env=cli_env
        )

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert [p["filename"] for p in json.loads(result.output)["photos"]] == ["a.jpg"]

        result = cli_runner.invoke(main, ["photos", "list", "--search", "lake"], env=cli_env)
        assert "c.jpg" in result.output
        assert "a.jpg" not in result.output

    def test_update_tags(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        photo = _add_photo(cli_runner, cli_env, "--filename", "a.jpg", "--tag", "old")

        result = cli_runner.invoke(
            main,
            ["--json", "photos", "update", str(photo["id"]), "--tag", "new", "--tag", "alps"],
            env=cli_env,
        )

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert json.loads(result.output)["photo"]["tags"] == ["alps", "new"]

    def test_ride_references_photo(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        photo = _add_photo(cli_runner, cli_env, "--filename", "a.jpg", "--original-name", "Summit.jpg")
        ride_args = ["--name", "Alps Loop", "--date", "2024-05-01", "--lat", "47", "--lng", "8.5"]

        added = cli_runner.invoke(
            main, ["--json", "rides", "add", *ride_args, "--photo", str(photo["id"])], env=cli_env
        )
        assert added.exit_code == 0, f"Command failed: {added.output}"
        ride_id = json.loads(added.output)["ride"]["id"]

        shown = cli_runner.invoke(main, ["rides", "show", str(ride_id)], env=cli_env)
        assert "Summit.jpg" in shown.output

    def test_ride_with_unknown_photo(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        result = cli_runner.invoke(
            main,
            ["rides", "add", "--name", "x", "--date", "2024-05-01", "--lat", "1", "--lng", "1",
             "--photo", "999"],
            env=cli_env,
        )

        assert result.exit_code == 2
        assert "Unknown photo id: 999" in result.output

    def test_deleting_photo_keeps_ride_reference(
        self, cli_runner: CliRunner, cli_env: dict[str, str]
    ) -> None:
        photo = _add_photo(cli_runner, cli_env, "--filename", "a.jpg")
        ride_args = ["--name", "Alps Loop", "--date", "2024-05-01", "--lat", "47", "--lng", "8.5"]
        added = cli_runner.invoke(
            main, ["--json", "rides", "add", *ride_args, "--photo", str(photo["id"])], env=cli_env
        )
        ride_id = json.loads(added.output)["ride"]["id"]

        deleted = cli_runner.invoke(main, ["photos", "delete", str(photo["id"])], env=cli_env)
        shown = cli_runner.invoke(main, ["--json", "rides", "show", str(ride_id)], env=cli_env)

        assert deleted.exit_code == 0, f"Command failed: {deleted.output}"
        data = json.loads(shown.output)
        assert data["ride"]["photoIds"] == [photo["id"]]
        assert data["photos"] == []

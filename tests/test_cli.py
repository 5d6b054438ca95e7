"""
Tests for the command-line interface.

The HTTP client is replaced by FakeReplication so no network is used.
"""

import sys

import pytest
from click.testing import CliRunner
from loguru import logger

import main
from osm_diff_state.core.locator import SequenceLocator
from osm_diff_state.replication.sequence import sequence_url
from osm_diff_state.utils.timestamps import format_epoch

from conftest import BASE_URL, DAY

ROOT_URL = "https://replication.test/replication/"


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_client(monkeypatch, daily_replication):
    """Routes every locator built by the CLI to the in-memory replication."""
    def build(**kwargs):
        return SequenceLocator(client=daily_replication, **kwargs)

    monkeypatch.setattr(main, "SequenceLocator", build)
    return daily_replication


class TestLocateCommand:

    def test_prints_only_the_url(self, runner, fake_client):
        result = runner.invoke(main.cli, ["locate", "day", "2025-05-16", ROOT_URL])
        assert result.exit_code == 0
        assert result.stdout == sequence_url(BASE_URL, 4000) + "\n"
        assert "Found sequence 4000" in result.stderr

    def test_future_exits_with_2(self, runner, fake_client):
        future = format_epoch(fake_client.epochs[4629] + DAY)
        result = runner.invoke(main.cli, ["locate", "day", future, ROOT_URL])
        assert result.exit_code == 2
        assert result.stdout == sequence_url(BASE_URL, 4629) + "\n"
        assert "in the future" in result.stderr

    def test_no_suitable_sequence(self, runner, fake_client):
        past = format_epoch(fake_client.epochs[0] - DAY)
        result = runner.invoke(main.cli, ["locate", "day", past, ROOT_URL])
        assert result.exit_code == 1
        assert result.stdout == ""
        assert "No suitable state file" in result.stderr

    def test_invalid_timestamp(self, runner, fake_client):
        result = runner.invoke(main.cli, ["locate", "day", "yesterday", ROOT_URL])
        assert result.exit_code == 1
        assert result.stdout == ""
        assert "Invalid date format" in result.stderr

    def test_invalid_period_is_usage_error(self, runner, fake_client):
        result = runner.invoke(main.cli, ["locate", "week", "2025-05-16"])
        assert result.exit_code == 2
        assert result.stdout == ""

    def test_no_probe(self, runner, fake_client):
        result = runner.invoke(main.cli, ["locate", "day", "2025-05-16", ROOT_URL, "--no-probe"])
        assert result.exit_code == 0
        assert fake_client.probed == []

    def test_details_table_on_stderr(self, runner, fake_client):
        result = runner.invoke(main.cli, ["locate", "day", "2025-05-16", ROOT_URL, "--details"])
        assert result.exit_code == 0
        assert result.stdout == sequence_url(BASE_URL, 4000) + "\n"
        assert "Replication State" in result.stderr

    def test_log_level_error_silences_info(self, runner, fake_client):
        result = runner.invoke(main.cli, ["locate", "day", "2025-05-16", ROOT_URL, "--log-level", "error"])
        assert result.exit_code == 0
        assert "Found sequence" not in result.stderr

    def test_verbose_shows_debug(self, runner, fake_client):
        result = runner.invoke(main.cli, ["locate", "day", "2025-05-16", ROOT_URL, "-v"])
        assert "Initial search window" in result.stderr

    def test_osm_like_from_config(self, runner, fake_client, tmp_path):
        config_path = tmp_path / "defaults.toml"
        config_path.write_text(f'[locator]\ndefault_url = "{BASE_URL}"\nosm_like = false\n', encoding="utf-8")
        result = runner.invoke(main.cli, ["locate", "day", "2025-05-16", "--config", str(config_path)])
        assert result.exit_code == 0
        assert result.stdout == sequence_url(BASE_URL, 4000) + "\n"

    def test_invalid_config(self, runner, fake_client, tmp_path):
        config_path = tmp_path / "defaults.toml"
        config_path.write_text("[locator]\nmax_redirects = -3\n", encoding="utf-8")
        result = runner.invoke(main.cli, ["locate", "day", "2025-05-16", "--config", str(config_path)])
        assert result.exit_code == 1
        assert result.stdout == ""


class TestOtherCommands:

    def test_resolve(self, runner):
        result = runner.invoke(main.cli, ["resolve", "hour", "https://h/r/hour/000/001/234.state.txt"])
        assert result.exit_code == 0
        assert result.stdout == "https://h/r/hour/\n"

    def test_resolve_non_osm_like(self, runner):
        result = runner.invoke(main.cli, ["resolve", "hour", "https://h/custom/", "--no-osm-like"])
        assert result.stdout == "https://h/custom/\n"

    def test_resolve_invalid(self, runner):
        result = runner.invoke(main.cli, ["resolve", "hour", "nowhere", "--no-osm-like"])
        assert result.exit_code == 1
        assert result.stdout == ""

    def test_latest(self, runner, fake_client):
        result = runner.invoke(main.cli, ["latest", "day", ROOT_URL])
        assert result.exit_code == 0
        assert result.stdout == sequence_url(BASE_URL, 4629) + "\n"
        assert "4629" in result.stderr

    def test_version(self, runner):
        result = runner.invoke(main.cli, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.stdout

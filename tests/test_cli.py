"""Tests for the command line interface."""

import pytest
from typer.testing import CliRunner

from homeboard import __version__
from homeboard.cache.store import ContentCache
from homeboard.cli import app

runner = CliRunner()


@pytest.fixture
def env(cache_dir, monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CACHE_DIR", str(cache_dir))
    monkeypatch.setenv("NEXTCLOUD_SERVER_URL", "")
    return cache_dir


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_clear_cache_deletes_entries(env):
    cache = ContentCache(env)
    cache.write("weather:JP:Himeji", {"location": "Himeji, JP"})

    result = runner.invoke(app, ["clear-cache", "weather:JP:Himeji", "never-cached"])

    assert result.exit_code == 0
    assert "Deleted" in result.output
    assert "Not cached" in result.output
    assert not cache.path_for("weather:JP:Himeji").exists()


def test_tasks_without_configuration_still_renders(env):
    result = runner.invoke(app, ["tasks"])

    assert result.exit_code == 0
    assert "Tasks" in result.output
    assert "missing settings" in result.output

"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from specsync.config import SpecSyncConfig, load_config


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in ("SPECSYNC_CONFIG", "SPECSYNC_DATABASE_URL", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
project:
  module_name: MyApp
  layout:
    code_file: lib/{module_path}.py
sessions:
  max_step_attempts: 3
database_url: sqlite:///tmp/specsync.db
"""
    )
    monkeypatch.setenv("SPECSYNC_CONFIG", str(config_path))

    config = load_config()
    assert config.project.module_name == "MyApp"
    assert config.project.layout.code_file == "lib/{module_path}.py"
    assert config.project.layout.design_file == "docs/design/{module_path}.md"
    assert config.sessions.max_step_attempts == 3
    assert config.database_url == "sqlite:///tmp/specsync.db"


def test_defaults_when_no_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    config = load_config()
    assert config == SpecSyncConfig()
    assert config.sessions.max_step_attempts == 5
    assert config.database_url is None


def test_database_url_env_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "specsync.yaml"
    config_path.write_text("database_url: sqlite:///from-file.db\n")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///generic.db")
    monkeypatch.setenv("SPECSYNC_DATABASE_URL", "sqlite:///specific.db")

    config = load_config(str(config_path))
    assert config.database_url == "sqlite:///specific.db"


def test_retry_cap_can_be_disabled_but_not_zero(tmp_path):
    config_path = tmp_path / "specsync.yaml"
    config_path.write_text("sessions:\n  max_step_attempts: null\n")
    assert load_config(str(config_path)).sessions.max_step_attempts is None

    config_path.write_text("sessions:\n  max_step_attempts: 0\n")
    with pytest.raises(ValidationError):
        load_config(str(config_path))

"""Tests for settings/secrets loading."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from app.config import CONFIG_DIR_ENV, AppConfig, load_config


def test_defaults_without_files(tmp_path):
    cfg = load_config(settings_path=tmp_path / "networking.settings.yaml")
    assert cfg.server.port == 5000
    assert cfg.auth.token_expire_minutes == 60 * 24 * 7
    assert cfg.ai.model == "gpt-3.5-turbo"
    assert cfg.secrets.openai.api_key is None


def test_settings_and_secrets_are_merged(tmp_path):
    settings_file = tmp_path / "networking.settings.yaml"
    settings_file.write_text(
        "server:\n"
        "  port: 8080\n"
        "ai:\n"
        "  max_matches: 3\n"
        "  min_match_score: 70\n",
        encoding="utf-8",
    )
    (tmp_path / "networking.secrets.yaml").write_text(
        "jwt:\n"
        "  secret_key: s3cret\n"
        "openai:\n"
        "  api_key: sk-test\n",
        encoding="utf-8",
    )

    cfg = load_config(settings_path=settings_file)

    assert cfg.server.port == 8080
    assert cfg.ai.max_matches == 3
    assert cfg.ai.min_match_score == 70
    assert cfg.secrets.jwt.secret_key == "s3cret"
    assert cfg.secrets.openai.api_key == "sk-test"


def test_relative_database_path_resolves_from_settings_dir(tmp_path):
    settings_file = tmp_path / "networking.settings.yaml"
    settings_file.write_text("database:\n  path: data/app.duckdb\n", encoding="utf-8")

    cfg = load_config(settings_path=settings_file)
    assert Path(cfg.database.path) == tmp_path / "data" / "app.duckdb"


def test_memory_database_is_left_alone(tmp_path):
    settings_file = tmp_path / "networking.settings.yaml"
    settings_file.write_text("database:\n  path: ':memory:'\n", encoding="utf-8")
    assert load_config(settings_path=settings_file).database.path == ":memory:"


def test_config_dir_from_environment(tmp_path, monkeypatch):
    (tmp_path / "networking.settings.yaml").write_text("server:\n  port: 9001\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path))
    assert load_config().server.port == 9001


def test_bcrypt_rounds_bounds():
    with pytest.raises(ValidationError):
        AppConfig(auth={"bcrypt_rounds": 2})

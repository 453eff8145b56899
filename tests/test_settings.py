from __future__ import annotations

import pytest

import settings
from core.config import TargetScope
from core.errors import ConfigError


@pytest.fixture
def target_env(monkeypatch):
    monkeypatch.setenv("TARGET_COMMUNITY_ID", "-1001234567")
    monkeypatch.setenv("TARGET_CHANNEL_ID", "1")
    monkeypatch.setenv("API_ID", "12345")
    monkeypatch.setenv("API_HASH", "abcdef")
    monkeypatch.delenv("SESSION_NAME", raising=False)
    return monkeypatch


def test_target_scope_is_normalized(target_env) -> None:
    assert settings.load_target_scope() == TargetScope(community_id=1234567, channel_id=1)


@pytest.mark.parametrize("name", ["TARGET_COMMUNITY_ID", "TARGET_CHANNEL_ID"])
def test_missing_target_is_fatal(target_env, name: str) -> None:
    target_env.delenv(name)
    with pytest.raises(ConfigError, match=name):
        settings.load_target_scope()


def test_non_integer_target_is_fatal(target_env) -> None:
    target_env.setenv("TARGET_CHANNEL_ID", "general")
    with pytest.raises(ConfigError, match="not a valid integer"):
        settings.load_target_scope()


def test_non_positive_topic_is_fatal(target_env) -> None:
    target_env.setenv("TARGET_CHANNEL_ID", "0")
    with pytest.raises(ConfigError):
        settings.load_target_scope()


def test_api_credentials_default_session_name(target_env) -> None:
    assert settings.load_api_credentials() == (12345, "abcdef", "ephemera")


def test_missing_api_hash_is_fatal(target_env) -> None:
    target_env.delenv("API_HASH")
    with pytest.raises(ConfigError, match="API_HASH"):
        settings.load_api_credentials()


def test_missing_config_json_means_default_logging(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(settings, "CONFIG_PATH", str(tmp_path / "config.json"))
    assert settings.load_logging_config() == {}


def test_logging_section_is_read_from_config_json(monkeypatch, tmp_path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text('{"logging": {"level": "DEBUG"}}', encoding="utf-8")
    monkeypatch.setattr(settings, "CONFIG_PATH", str(config_path))
    assert settings.load_logging_config() == {"level": "DEBUG"}


def test_malformed_config_json_is_a_config_error(monkeypatch, tmp_path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not json", encoding="utf-8")
    monkeypatch.setattr(settings, "CONFIG_PATH", str(config_path))
    with pytest.raises(ConfigError, match="Cannot read"):
        settings.load_logging_config()

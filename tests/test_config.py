"""Tests for environment configuration."""

import pytest

from config import ServerConfig, ConfigMissingError, DEFAULT_REPO_URL, DEFAULT_REFRESH_INTERVAL


ENV_VARS = [
    "PACKS_S3_SERVER", "PACKS_S3_BUCKET", "HOMESERVER", "PACKS_S3_REGION",
    "PACKS_S3_ACCESS_KEY_ID", "PACKS_S3_SECRET_ACCESS_KEY", "PACKS_S3_TIMEOUT",
    "MIRROR_REPO_URL", "MIRROR_BRANCH", "MIRROR_REFRESH_INTERVAL", "MIRROR_GIT_TIMEOUT",
    "MIRROR_SNAPSHOT_GRACE", "HOST", "PORT", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def required_env(monkeypatch):
    monkeypatch.setenv("PACKS_S3_SERVER", "https://s3.example.com")
    monkeypatch.setenv("PACKS_S3_BUCKET", "packs")
    monkeypatch.setenv("HOMESERVER", "https://matrix.example.org")


def test_missing_variables_are_all_reported():
    with pytest.raises(ConfigMissingError) as exc_info:
        ServerConfig.from_env(dotenv=False)

    assert exc_info.value.missing == ["PACKS_S3_SERVER", "PACKS_S3_BUCKET", "HOMESERVER"]


def test_empty_variable_counts_as_missing(required_env, monkeypatch):
    monkeypatch.setenv("HOMESERVER", "")

    with pytest.raises(ConfigMissingError) as exc_info:
        ServerConfig.from_env(dotenv=False)

    assert exc_info.value.missing == ["HOMESERVER"]


def test_defaults(required_env):
    config = ServerConfig.from_env(dotenv=False)

    assert config.s3_server == "https://s3.example.com"
    assert config.s3_bucket == "packs"
    assert config.homeserver_url == "https://matrix.example.org"
    assert config.s3_access_key_id is None
    assert config.repo_url == DEFAULT_REPO_URL
    assert config.branch == "master"
    assert config.refresh_interval == DEFAULT_REFRESH_INTERVAL
    assert config.port == 8080
    assert config.log_level == "INFO"


def test_overrides(required_env, monkeypatch):
    monkeypatch.setenv("MIRROR_REPO_URL", "https://git.example.org/picker")
    monkeypatch.setenv("MIRROR_BRANCH", "main")
    monkeypatch.setenv("MIRROR_REFRESH_INTERVAL", "60")
    monkeypatch.setenv("PACKS_S3_ACCESS_KEY_ID", "id")
    monkeypatch.setenv("PACKS_S3_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = ServerConfig.from_env(dotenv=False)

    assert config.repo_url == "https://git.example.org/picker"
    assert config.branch == "main"
    assert config.refresh_interval == 60
    assert config.s3_access_key_id == "id"
    assert config.s3_secret_access_key == "secret"
    assert config.port == 9000
    assert config.log_level == "DEBUG"


def test_invalid_number_falls_back_to_default(required_env, monkeypatch):
    monkeypatch.setenv("MIRROR_REFRESH_INTERVAL", "hourly")

    config = ServerConfig.from_env(dotenv=False)

    assert config.refresh_interval == DEFAULT_REFRESH_INTERVAL

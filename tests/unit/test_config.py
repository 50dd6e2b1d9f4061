"""Tests for configuration loading."""

import pytest

import flux_engine.persistence as persistence
from flux_engine import InMemoryStorage, SQLiteStorage, get_storage
from flux_engine.config import load_config


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "flux.yaml"
    config_path.write_text(
        """
default_retries: 2
default_timeout_ms: 1500
retry_backoff_base: 1.5
log_level: DEBUG
"""
    )
    monkeypatch.setenv("FLUX_CONFIG", str(config_path))
    monkeypatch.delenv("FLUX_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    config = load_config()
    assert config.default_retries == 2
    assert config.default_timeout_ms == 1500
    assert config.retry_backoff_base == 1.5
    assert config.log_level == "DEBUG"
    assert config.database_url is None


def test_missing_config_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("FLUX_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    config = load_config(str(tmp_path / "absent.yaml"))
    assert config.default_retries == 0
    assert config.default_timeout_ms is None
    assert config.retry_backoff_base is None


def test_env_database_url_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "flux.yaml"
    config_path.write_text("database_url: sqlite://from-file.db\n")
    monkeypatch.setenv("FLUX_DATABASE_URL", "sqlite://from-env.db")

    config = load_config(str(config_path))
    assert config.database_url == "sqlite://from-env.db"


def test_get_storage_uses_config(tmp_path, monkeypatch):
    db_path = tmp_path / "runs.db"
    config_path = tmp_path / "flux.yaml"
    config_path.write_text(f"database_url: sqlite://{db_path}\n")
    monkeypatch.setenv("FLUX_CONFIG", str(config_path))
    monkeypatch.delenv("FLUX_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setattr(persistence, "_storage_instance", None)

    storage = get_storage()
    assert isinstance(storage, SQLiteStorage)
    assert storage.db_path == str(db_path)
    assert get_storage() is storage


def test_get_storage_defaults_to_memory(tmp_path, monkeypatch):
    monkeypatch.setenv("FLUX_CONFIG", str(tmp_path / "absent.yaml"))
    monkeypatch.delenv("FLUX_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setattr(persistence, "_storage_instance", None)

    assert isinstance(get_storage(), InMemoryStorage)


def test_get_storage_rejects_unknown_scheme(monkeypatch):
    monkeypatch.setattr(persistence, "_storage_instance", None)

    with pytest.raises(ValueError, match="Unsupported database backend"):
        get_storage("mongodb://localhost")

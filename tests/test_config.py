"""Tests for settings and logging setup."""

import logging

from record_components.core.config import Settings, get_settings
from record_components.core.log import configure_logging


def test_defaults():
    settings = Settings()

    assert settings.sql_identifier_quote == '"'
    assert settings.save_hook_max_attempts == 3
    assert settings.datetime_format == "%Y-%m-%dT%H:%M:%S%z"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CACHE_NAMESPACE", "tenant-a")
    monkeypatch.setenv("CACHE_FLUSH_NAMESPACE", "true")
    monkeypatch.setenv("SQL_IDENTIFIER_QUOTE", "`")

    settings = Settings()

    assert settings.cache_namespace == "tenant-a"
    assert settings.cache_flush_namespace is True
    assert settings.sql_identifier_quote == "`"


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_configure_logging_sets_root_level(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)

    configure_logging("debug")

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1

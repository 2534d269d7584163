"""Unit tests for settings loading and logging setup."""

import logging
from unittest.mock import patch

import pytest

from airlink.core.config import DEFAULT_CHUNK_SIZE, CryptoSettings
from airlink.core.exceptions import InvalidInputError
from airlink.core.logging_config import configure_logging


ENV_VARS = [
    "AIRLINK_CHUNK_SIZE",
    "AIRLINK_WORKERS",
    "AIRLINK_SESSION_TTL",
    "AIRLINK_SESSION_MAX_MESSAGES",
    "AIRLINK_SESSION_ROTATION",
    "AIRLINK_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = CryptoSettings.from_env()
    assert settings == CryptoSettings()
    assert settings.chunk_size == DEFAULT_CHUNK_SIZE == 1024 * 1024
    assert settings.session_ttl_seconds is None


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("AIRLINK_CHUNK_SIZE", "65536")
    monkeypatch.setenv("AIRLINK_WORKERS", "4")
    monkeypatch.setenv("AIRLINK_SESSION_TTL", "300")
    monkeypatch.setenv("AIRLINK_LOG_LEVEL", "debug")

    settings = CryptoSettings.from_env()
    assert settings.chunk_size == 65536
    assert settings.workers == 4
    assert settings.session_ttl_seconds == 300
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("value", ["abc", "0", "-5"])
def test_invalid_env_values(monkeypatch, value):
    monkeypatch.setenv("AIRLINK_CHUNK_SIZE", value)
    with pytest.raises(InvalidInputError, match="AIRLINK_CHUNK_SIZE"):
        CryptoSettings.from_env()


def test_settings_are_frozen():
    with pytest.raises(AttributeError):
        CryptoSettings().chunk_size = 1


def test_configure_logging_accepts_names():
    with patch("airlink.core.logging_config.logging.basicConfig") as mock_basic:
        configure_logging("debug")
    assert mock_basic.call_args.kwargs["level"] == logging.DEBUG


def test_configure_logging_unknown_name_falls_back_to_info():
    with patch("airlink.core.logging_config.logging.basicConfig") as mock_basic:
        configure_logging("chatty")
    assert mock_basic.call_args.kwargs["level"] == logging.INFO


def test_configure_logging_uses_settings_level(monkeypatch):
    monkeypatch.setenv("AIRLINK_LOG_LEVEL", "warning")
    settings = CryptoSettings.from_env()
    with patch("airlink.core.logging_config.logging.basicConfig") as mock_basic:
        configure_logging(settings=settings)
    assert mock_basic.call_args.kwargs["level"] == logging.WARNING


def test_configure_logging_explicit_level_wins_over_settings():
    with patch("airlink.core.logging_config.logging.basicConfig") as mock_basic:
        configure_logging("error", settings=CryptoSettings(log_level="DEBUG"))
    assert mock_basic.call_args.kwargs["level"] == logging.ERROR


def test_configure_logging_defaults_to_info():
    with patch("airlink.core.logging_config.logging.basicConfig") as mock_basic:
        configure_logging()
    assert mock_basic.call_args.kwargs["level"] == logging.INFO
